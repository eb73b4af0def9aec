"""
BOQ service: await the fetch, run the pure engine, await the save.

Only ``generate`` retries, once, when a concurrent call took its version
number. There is no other write-conflict detection. A ``BackendUnavailable``
from a repository is passed straight to the caller.
"""
import logging
import time
from typing import List, Optional

from core.exceptions import AlreadyApproved, DuplicateVersion, VersionNotFound
from dto.request_dto.boq import ApplyMarginRequest, CompareRequest, GenerateBOQRequest, UpdateItemPriceRequest
from dto.response_dto.boq import (
    ApprovalResult,
    AreaBucketResponse,
    BOQDetail,
    BOQVersionHeader,
    CompareItem,
    CompareResponse,
    DiagnosticResponse,
    HeaderDiffResponse,
    PreviewResponse,
    TypeSummaryResponse,
)
from models.domain import BOQVersion
from repositories.boq_repository import BOQRepository
from repositories.configuration_repository import ConfigurationRepository
from services import boq_lifecycle
from services.aggregator import aggregate, summarize_by_type
from services.diff_engine import diff
from services.normalizer import Diagnostic, normalize_all

logger = logging.getLogger(__name__)

GENERATE_ATTEMPTS = 2


class BOQService:
    """Generates, prices, approves and compares BOQ versions."""

    def __init__(
        self,
        boq_repo: Optional[BOQRepository] = None,
        config_repo: Optional[ConfigurationRepository] = None,
    ):
        self.boq_repo = boq_repo or BOQRepository()
        self.config_repo = config_repo or ConfigurationRepository()

    async def _current_buckets(self, project_id: int):
        """Fetch live configuration and roll it up."""
        mode = await self.config_repo.get_inquiry_mode(project_id)
        areas = await self.config_repo.list_areas(project_id)
        records = await self.config_repo.list_configuration_records(project_id)
        catalogs = await self.config_repo.load_catalogs()

        lines, diagnostics = normalize_all(records, catalogs)
        buckets = aggregate(lines, areas, mode)
        return mode, buckets, diagnostics

    async def preview(self, project_id: int) -> PreviewResponse:
        """Live rollup of the current configuration, without creating a version."""
        mode, buckets, diagnostics = await self._current_buckets(project_id)
        return PreviewResponse(
            project_id=project_id,
            mode=mode.value,
            buckets=[AreaBucketResponse.from_bucket(bucket) for bucket in buckets],
            summary=TypeSummaryResponse.from_summary(summarize_by_type(buckets)),
            diagnostics=[_diagnostic_response(d) for d in diagnostics],
        )

    async def list_versions(self, project_id: int) -> List[BOQVersionHeader]:
        rows = await self.boq_repo.list_versions(project_id)
        return [BOQVersionHeader(**row) for row in rows]

    async def generate(self, project_id: int, request: Optional[GenerateBOQRequest] = None) -> BOQVersionHeader:
        """Snapshot the current configuration as a new DRAFT version."""
        request = request or GenerateBOQRequest()
        start_time = time.time()

        if request.request_key:
            existing = await self.boq_repo.find_by_request_key(project_id, request.request_key)
            if existing is not None:
                logger.info(f"Generate for project {project_id} with key {request.request_key!r} already produced v{existing.version_number}")
                return BOQVersionHeader.from_snapshot(existing)

        _, buckets, diagnostics = await self._current_buckets(project_id)
        if diagnostics:
            logger.warning(f"Project {project_id}: {len(diagnostics)} configuration diagnostic(s) while generating BOQ")

        for attempt in range(1, GENERATE_ATTEMPTS + 1):
            numbers = await self.boq_repo.get_version_numbers(project_id)
            snapshot = boq_lifecycle.build_version(project_id, buckets, numbers)
            try:
                saved = await self.boq_repo.insert_version(
                    snapshot, request_key=request.request_key, created_by=request.created_by
                )
                break
            except DuplicateVersion:
                # a concurrent call with the same key won; hand back its version
                if request.request_key:
                    existing = await self.boq_repo.find_by_request_key(project_id, request.request_key)
                    if existing is not None:
                        return BOQVersionHeader.from_snapshot(existing)
                if attempt == GENERATE_ATTEMPTS:
                    raise
                logger.warning(f"Version number {snapshot.version_number} taken for project {project_id}; renumbering")

        logger.info(f"Generated BOQ v{saved.version_number} (id {saved.id}) in {time.time() - start_time:.2f}s")
        return BOQVersionHeader.from_snapshot(saved)

    async def get_detail(self, version_id: int) -> BOQDetail:
        snapshot = await self.boq_repo.get_version(version_id)
        return BOQDetail.from_snapshot(snapshot)

    async def apply_margin(self, version_id: int, request: ApplyMarginRequest) -> BOQDetail:
        snapshot = await self.boq_repo.get_version(version_id)
        updated = boq_lifecycle.apply_margin(snapshot, request.markup_pct)
        saved = await self.boq_repo.save_version(updated)
        logger.info(f"Applied {request.markup_pct}% margin to BOQ {version_id}: grand total {saved.grand_total}")
        return BOQDetail.from_snapshot(saved)

    async def update_item_price(self, item_id: int, request: UpdateItemPriceRequest) -> BOQDetail:
        version_id = await self.boq_repo.find_version_id_for_item(item_id)
        snapshot = await self.boq_repo.get_version(version_id)
        updated = boq_lifecycle.update_unit_rate(snapshot, item_id, request.unit_price)
        saved = await self.boq_repo.save_version(updated)
        return BOQDetail.from_snapshot(saved)

    async def approve(self, version_id: int) -> ApprovalResult:
        """
        Approve a DRAFT version.

        Approving an approved (or final) version is reported back as a no-op
        with ``already_approved`` set, never as a fresh approval.
        """
        snapshot = await self.boq_repo.get_version(version_id)
        try:
            approved = boq_lifecycle.approve(snapshot)
        except AlreadyApproved as e:
            logger.info(str(e))
            return ApprovalResult(
                id=snapshot.id,
                version=snapshot.version_number,
                status=snapshot.status.value,
                approved=False,
                already_approved=True,
                message=str(e),
            )

        saved = await self.boq_repo.save_version(approved)
        return ApprovalResult(
            id=saved.id,
            version=saved.version_number,
            status=saved.status.value,
            approved=True,
            message=f"BOQ v{saved.version_number} approved",
        )

    async def finalize(self, version_id: int) -> BOQDetail:
        snapshot = await self.boq_repo.get_version(version_id)
        saved = await self.boq_repo.save_version(boq_lifecycle.finalize(snapshot))
        return BOQDetail.from_snapshot(saved)

    async def _snapshot_by_number(self, project_id: int, number: int) -> Optional[BOQVersion]:
        if number == 0:
            return None
        snapshot = await self.boq_repo.get_version_by_number(project_id, number)
        if snapshot is None:
            raise VersionNotFound(f"{project_id}/v{number}")
        return snapshot

    async def compare(self, project_id: int, request: CompareRequest) -> CompareResponse:
        """Compare two versions of a project by version number; 0 is the empty BOQ."""
        old = await self._snapshot_by_number(project_id, request.v1)
        new = await self._snapshot_by_number(project_id, request.v2)

        report = diff(old, new)
        return CompareResponse(
            version_1=request.v1,
            version_2=request.v2,
            header_diff=HeaderDiffResponse.from_header(report.header),
            items=[CompareItem.from_record(record) for record in report.records],
            counts={status.value: count for status, count in report.counts().items()},
        )


def _diagnostic_response(diagnostic: Diagnostic) -> DiagnosticResponse:
    return DiagnosticResponse(
        kind=diagnostic.kind.value,
        line_id=diagnostic.line_id,
        field=diagnostic.field,
        detail=diagnostic.detail,
    )
