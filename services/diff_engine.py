"""
Version diff engine.

Line items are matched on (catalog key, area name), never on line-item ids,
because ids change every time a version is regenerated. Header totals are
compared as independent sums of each snapshot so that a margin-only change
still shows up in the grand total.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from models.domain import (
    BOQLineItem,
    BOQVersion,
    DiffRecord,
    DiffSide,
    DiffStatus,
    HeaderDiff,
    MoneyDelta,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DiffKey = Tuple[str, str]


@dataclass(frozen=True)
class _Merged:
    side: DiffSide
    item_type: str
    item_name: str


@dataclass(frozen=True)
class DiffReport:
    records: Tuple[DiffRecord, ...]
    header: HeaderDiff
    old_version: Optional[int] = None
    new_version: Optional[int] = None

    def counts(self) -> Dict[DiffStatus, int]:
        tally = Counter(record.status for record in self.records)
        return {status: tally.get(status, 0) for status in DiffStatus}

    def changed(self) -> List[DiffRecord]:
        return [record for record in self.records if record.status is not DiffStatus.UNCHANGED]


def item_key(item: BOQLineItem) -> DiffKey:
    return (item.key, item.area_name)


def index_items(items: Iterable[BOQLineItem]) -> Dict[DiffKey, _Merged]:
    """
    Index a snapshot's items by key.

    Two items sharing a key (same catalog item priced differently in one
    area) are merged: quantities and totals add up and the unit price becomes
    the average.
    """
    grouped: Dict[DiffKey, List[BOQLineItem]] = {}
    for item in items:
        grouped.setdefault(item_key(item), []).append(item)

    index = {}
    for key, group in grouped.items():
        if len(group) == 1:
            only = group[0]
            side = DiffSide(qty=only.qty, unit_price=only.unit_rate, total=only.total)
        else:
            logger.debug(f"Merging {len(group)} BOQ items sharing key {key}")
            qty = sum(item.qty for item in group)
            total = sum((item.total for item in group), ZERO)
            unit_price = total / qty if qty else max(item.unit_rate for item in group)
            side = DiffSide(qty=qty, unit_price=unit_price, total=total)
        first = min(group, key=lambda item: (item.item_type, item.item_name))
        index[key] = _Merged(side=side, item_type=first.item_type, item_name=first.item_name)
    return index


def classify(key: DiffKey, old: Optional[_Merged], new: Optional[_Merged]) -> DiffRecord:
    """Classify a single key present in at least one snapshot."""
    meta = new or old
    if new is None:
        return DiffRecord(key, DiffStatus.REMOVED, old.side, None, -old.side.total, meta.item_type, meta.item_name)
    if old is None:
        return DiffRecord(key, DiffStatus.ADDED, None, new.side, new.side.total, meta.item_type, meta.item_name)
    if old.side.qty == new.side.qty and old.side.unit_price == new.side.unit_price:
        return DiffRecord(key, DiffStatus.UNCHANGED, old.side, new.side, ZERO, meta.item_type, meta.item_name)
    return DiffRecord(
        key,
        DiffStatus.MODIFIED,
        old.side,
        new.side,
        new.side.total - old.side.total,
        meta.item_type,
        meta.item_name,
    )


def _delta(old: Decimal, new: Decimal) -> MoneyDelta:
    return MoneyDelta(old=old, new=new, difference=new - old)


def header_diff(snapshot_a: Optional[BOQVersion], snapshot_b: Optional[BOQVersion]) -> HeaderDiff:
    old_sub = snapshot_a.subtotal if snapshot_a else ZERO
    new_sub = snapshot_b.subtotal if snapshot_b else ZERO
    old_grand = snapshot_a.grand_total if snapshot_a else ZERO
    new_grand = snapshot_b.grand_total if snapshot_b else ZERO
    return HeaderDiff(subtotal=_delta(old_sub, new_sub), grand_total=_delta(old_grand, new_grand))


def diff(snapshot_a: Optional[BOQVersion], snapshot_b: Optional[BOQVersion]) -> DiffReport:
    """
    Compare two snapshots.

    Either side may be None (or have no items) to compare against "version
    zero". Records come back sorted by (area name, catalog key).
    """
    old_index = index_items(snapshot_a.items if snapshot_a else ())
    new_index = index_items(snapshot_b.items if snapshot_b else ())

    keys = sorted(set(old_index) | set(new_index), key=lambda key: (key[1], key[0]))
    records = tuple(classify(key, old_index.get(key), new_index.get(key)) for key in keys)

    report = DiffReport(
        records=records,
        header=header_diff(snapshot_a, snapshot_b),
        old_version=snapshot_a.version_number if snapshot_a else 0,
        new_version=snapshot_b.version_number if snapshot_b else 0,
    )
    counts = report.counts()
    logger.info(
        f"Compared v{report.old_version} -> v{report.new_version}: "
        + ", ".join(f"{status.value.lower()}={count}" for status, count in counts.items())
    )
    return report
