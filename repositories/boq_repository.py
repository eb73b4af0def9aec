"""
Async repository for BOQ versions and their line items.

Edits are last-writer-wins; nothing here detects concurrent edits of the
same version. Concurrent inserts that collide on version number or request
key raise ``DuplicateVersion``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from core.exceptions import DuplicateVersion, LineItemNotFound, VersionNotFound
from models.boq_models import BoqItem, BoqVersion
from models.domain import BOQLineItem, BOQVersion, VersionStatus, check_totals
from repositories.session import AsyncRepository
from utils.parsing import parse_decimal, parse_quantity

logger = logging.getLogger(__name__)


def _to_line_item(row: BoqItem) -> BOQLineItem:
    return BOQLineItem(
        id=row.item_id,
        area_name=row.area_name,
        item_type=row.item_type,
        item_name=row.item_name or "",
        qty=parse_quantity(row.quantity).value,
        unit_rate=parse_decimal(row.unit_rate).value,
        total=parse_decimal(row.total).value,
        catalog_key=row.catalog_key or "",
    )


def _to_snapshot(row: BoqVersion) -> BOQVersion:
    try:
        status = VersionStatus(row.status)
    except ValueError:
        # an unknown status must never unlock a stored version
        logger.warning(f"BOQ version {row.boq_id} has unknown status {row.status!r}; treating as FINAL")
        status = VersionStatus.FINAL

    snapshot = BOQVersion(
        id=row.boq_id,
        project_id=row.project_id,
        version_number=row.version_number,
        status=status,
        margin_percent=parse_decimal(row.margin_percent).value,
        items=tuple(_to_line_item(item) for item in row.items),
        subtotal=parse_decimal(row.subtotal).value,
        grand_total=parse_decimal(row.grand_total).value,
        created_at=row.created_at,
    )
    if not check_totals(snapshot):
        logger.warning(f"BOQ version {row.boq_id}: stored totals do not match its line items")
    return snapshot


class BOQRepository(AsyncRepository):
    """Async repository for BOQ version operations."""

    async def list_versions(self, project_id: int) -> List[Dict[str, Any]]:
        async with self.session("list BOQ versions") as session:
            result = await session.execute(
                select(BoqVersion.boq_id, BoqVersion.version_number, BoqVersion.status, BoqVersion.created_at)
                .where(BoqVersion.project_id == project_id)
                .order_by(BoqVersion.version_number.desc())
            )
            return [
                {
                    "id": row.boq_id,
                    "version": row.version_number,
                    "status": row.status,
                    "created_at": row.created_at,
                }
                for row in result.fetchall()
            ]

    async def get_version_numbers(self, project_id: int) -> List[int]:
        async with self.session("list BOQ version numbers") as session:
            result = await session.execute(
                select(BoqVersion.version_number).where(BoqVersion.project_id == project_id)
            )
            return [number for number in result.scalars().all()]

    async def get_version(self, version_id: int) -> BOQVersion:
        async with self.session("fetch BOQ detail") as session:
            row = await self._load(session, BoqVersion.boq_id == version_id)
            if row is None:
                raise VersionNotFound(version_id)
            return _to_snapshot(row)

    async def get_version_by_number(self, project_id: int, version_number: int) -> Optional[BOQVersion]:
        async with self.session("fetch BOQ by number") as session:
            row = await self._load(
                session,
                BoqVersion.project_id == project_id,
                BoqVersion.version_number == version_number,
            )
            return _to_snapshot(row) if row is not None else None

    async def find_by_request_key(self, project_id: int, request_key: str) -> Optional[BOQVersion]:
        async with self.session("find BOQ by request key") as session:
            row = await self._load(
                session,
                BoqVersion.project_id == project_id,
                BoqVersion.request_key == request_key,
            )
            return _to_snapshot(row) if row is not None else None

    async def find_version_id_for_item(self, item_id: int) -> int:
        async with self.session("find BOQ item") as session:
            result = await session.execute(select(BoqItem.boq_id).where(BoqItem.item_id == item_id))
            version_id = result.scalar_one_or_none()
            if version_id is None:
                raise LineItemNotFound(item_id)
            return version_id

    async def insert_version(
        self,
        snapshot: BOQVersion,
        request_key: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> BOQVersion:
        """Persist a freshly built version; returns it with database ids."""
        async with self.session("generate BOQ") as session:
            row = BoqVersion(
                project_id=snapshot.project_id,
                version_number=snapshot.version_number,
                status=snapshot.status.value,
                margin_percent=snapshot.margin_percent,
                subtotal=snapshot.subtotal,
                grand_total=snapshot.grand_total,
                request_key=request_key,
                created_by=created_by,
                created_at=snapshot.created_at,
                items=[
                    BoqItem(
                        area_name=item.area_name,
                        item_type=item.item_type,
                        catalog_key=item.catalog_key,
                        item_name=item.item_name,
                        quantity=item.qty,
                        unit_rate=item.unit_rate,
                        total=item.total,
                    )
                    for item in snapshot.items
                ],
            )
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"BOQ v{snapshot.version_number} for project {snapshot.project_id} lost an insert race: {e.orig}")
                raise DuplicateVersion(snapshot.project_id, snapshot.version_number, request_key) from e
            logger.info(f"Inserted BOQ v{snapshot.version_number} for project {snapshot.project_id} as id {row.boq_id}")
            version_id = row.boq_id

        return await self.get_version(version_id)

    async def save_version(self, snapshot: BOQVersion) -> BOQVersion:
        """Write status, margin, totals and item rates of an existing version."""
        async with self.session("save BOQ") as session:
            row = await self._load(session, BoqVersion.boq_id == snapshot.id)
            if row is None:
                raise VersionNotFound(snapshot.id)

            if row.status != VersionStatus.APPROVED.value and snapshot.status is VersionStatus.APPROVED:
                row.approved_at = datetime.now(timezone.utc)
            row.status = snapshot.status.value
            row.margin_percent = snapshot.margin_percent
            row.subtotal = snapshot.subtotal
            row.grand_total = snapshot.grand_total
            row.updated_at = datetime.now(timezone.utc)

            items = {item.id: item for item in snapshot.items}
            for item_row in row.items:
                item = items.get(item_row.item_id)
                if item is None:
                    continue
                item_row.unit_rate = item.unit_rate
                item_row.total = item.total

            await session.commit()

        return await self.get_version(snapshot.id)

    @staticmethod
    async def _load(session, *criteria) -> Optional[BoqVersion]:
        result = await session.execute(
            select(BoqVersion).options(selectinload(BoqVersion.items)).where(*criteria)
        )
        return result.scalar_one_or_none()
