"""
Margin & lock state machine for BOQ versions.

DRAFT -> APPROVED -> FINAL, one way only. Every function takes a snapshot
and returns a new one; the input is never modified. Anything that would
change margin or rates on a non-DRAFT version raises ``VersionLocked``.
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from core.exceptions import (
    AlreadyApproved,
    InvalidAmount,
    InvalidTransition,
    LineItemNotFound,
    VersionLocked,
)
from models.domain import (
    AreaBucket,
    BOQLineItem,
    BOQVersion,
    VersionStatus,
    compute_grand_total,
)
from utils.parsing import Defaulted, parse_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def validate_amount(field: str, value: Any) -> Decimal:
    """
    Strict counterpart of ``parse_decimal`` for user input.

    Upstream data degrades to zero; a margin or rate typed by a user is
    rejected instead.
    """
    parsed = parse_decimal(value)
    if isinstance(parsed, Defaulted):
        raise InvalidAmount(field, value)
    return parsed.value


def _ensure_draft(version: BOQVersion, action: str) -> None:
    if version.status is not VersionStatus.DRAFT:
        logger.warning(f"Rejected {action} on BOQ version {version.id} ({version.status.value})")
        raise VersionLocked(version.id, version.status.value, action)


def next_version_number(existing: Iterable[int]) -> int:
    return max(existing, default=0) + 1


def items_from_buckets(buckets: Iterable[AreaBucket]) -> tuple:
    """Flatten bucket entries into BOQ line items, numbered from 1."""
    items = []
    for bucket in buckets:
        for entry in bucket.entries:
            items.append(BOQLineItem(
                id=len(items) + 1,
                area_name=bucket.area_name,
                item_type=entry.item_type.value,
                item_name=entry.item_name,
                qty=entry.qty,
                unit_rate=entry.unit_price,
                total=entry.total,
                catalog_key=entry.catalog_key,
            ))
    return tuple(items)


def build_version(
    project_id: Any,
    buckets: Iterable[AreaBucket],
    existing_version_numbers: Iterable[int] = (),
    created_at: Optional[datetime] = None,
) -> BOQVersion:
    """Materialize the current aggregation as a new DRAFT version with zero margin."""
    items = items_from_buckets(buckets)
    subtotal = sum((item.total for item in items), ZERO)
    version = BOQVersion(
        id=None,
        project_id=project_id,
        version_number=next_version_number(existing_version_numbers),
        status=VersionStatus.DRAFT,
        margin_percent=ZERO,
        items=items,
        subtotal=subtotal,
        grand_total=compute_grand_total(subtotal, ZERO),
        created_at=created_at or datetime.now(timezone.utc),
    )
    logger.info(f"Built BOQ v{version.version_number} for project {project_id}: {len(items)} items, subtotal {subtotal}")
    return version


def apply_margin(version: BOQVersion, percent: Any) -> BOQVersion:
    _ensure_draft(version, "apply margin to")
    margin = validate_amount("margin_percent", percent)
    return replace(
        version,
        margin_percent=margin,
        grand_total=compute_grand_total(version.subtotal, margin),
    )


def update_unit_rate(version: BOQVersion, item_id: Any, rate: Any) -> BOQVersion:
    """Edit one line's unit rate, recomputing line total, subtotal and grand total."""
    _ensure_draft(version, "edit prices on")
    unit_rate = validate_amount("unit_rate", rate)

    found = False
    items = []
    for item in version.items:
        if item.id == item_id:
            item = replace(item, unit_rate=unit_rate, total=item.qty * unit_rate)
            found = True
        items.append(item)
    if not found:
        raise LineItemNotFound(item_id, version.id)

    subtotal = sum((item.total for item in items), ZERO)
    return replace(
        version,
        items=tuple(items),
        subtotal=subtotal,
        grand_total=compute_grand_total(subtotal, version.margin_percent),
    )


def approve(version: BOQVersion) -> BOQVersion:
    if version.status in (VersionStatus.APPROVED, VersionStatus.FINAL):
        raise AlreadyApproved(version.id, version.status.value)
    logger.info(f"Approving BOQ version {version.id} (v{version.version_number})")
    return replace(version, status=VersionStatus.APPROVED)


def finalize(version: BOQVersion) -> BOQVersion:
    if version.status is VersionStatus.FINAL:
        raise VersionLocked(version.id, version.status.value, "finalize")
    if version.status is not VersionStatus.APPROVED:
        raise InvalidTransition(version.id, version.status.value, VersionStatus.FINAL.value)
    logger.info(f"Finalizing BOQ version {version.id} (v{version.version_number})")
    return replace(version, status=VersionStatus.FINAL)
