"""
Price rollup aggregator.

Groups canonical configuration lines by area and catalog key. Everything
here is pure: the same lines and areas always produce the same buckets, and
totals do not depend on input ordering because all money is Decimal.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models.domain import (
    Area,
    AreaBucket,
    BucketEntry,
    CatalogItem,
    ConfigurationLine,
    InquiryMode,
    ItemKind,
    TypeSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PROJECT_WIDE_AREA = "Project-wide"

_KIND_ORDER = {ItemKind.PRODUCT: 0, ItemKind.DRIVER: 1, ItemKind.ACCESSORY: 2}


def unit_total(line: ConfigurationLine) -> Decimal:
    """Price of one unit of a line including attached driver and accessories."""
    total = line.item.unit_price
    if line.driver is not None:
        total += line.driver.unit_price
    for accessory in line.accessories:
        total += accessory.unit_price
    return total


def line_total(line: ConfigurationLine) -> Decimal:
    return line.quantity * unit_total(line)


def _components(line: ConfigurationLine) -> List[CatalogItem]:
    """Every catalog item priced by a line, host item first."""
    items = [line.item]
    if line.driver is not None:
        items.append(line.driver)
    items.extend(line.accessories)
    return items


def _line_sort_key(line: ConfigurationLine) -> Tuple:
    return (
        str(line.id),
        _KIND_ORDER[line.item.kind],
        line.item.key,
        line.quantity,
    )


def _entry_sort_key(entry: BucketEntry) -> Tuple:
    return (_KIND_ORDER[entry.item_type], entry.catalog_key, entry.unit_price)


def build_entries(lines: Iterable[ConfigurationLine]) -> Tuple[BucketEntry, ...]:
    """
    Roll lines up into one entry per (item type, catalog key, unit price).

    Attached drivers and accessories become their own entries carrying the
    host line's quantity.
    """
    grouped: Dict[Tuple, Dict] = {}
    for line in lines:
        for item in _components(line):
            group_key = (item.kind, item.key, item.unit_price)
            group = grouped.get(group_key)
            if group is None:
                group = grouped[group_key] = {"item": item, "qty": 0, "names": set()}
            group["qty"] += line.quantity
            group["names"].add(item.display_name)

    entries = []
    for (kind, key, unit_price), group in grouped.items():
        item = group["item"]
        entries.append(BucketEntry(
            item_type=kind,
            catalog_key=key,
            item_name=min(group["names"]),
            qty=group["qty"],
            unit_price=unit_price,
            total=group["qty"] * unit_price,
            wattage=item.wattage,
        ))
    return tuple(sorted(entries, key=_entry_sort_key))


def _bucket(area_id, area_name: str, lines: List[ConfigurationLine]) -> AreaBucket:
    ordered = tuple(sorted(lines, key=_line_sort_key))
    subtotal = sum((line_total(line) for line in ordered), ZERO)
    return AreaBucket(
        area_id=area_id,
        area_name=area_name,
        lines=ordered,
        entries=build_entries(ordered),
        subtotal=subtotal,
    )


def aggregate(
    lines: Iterable[ConfigurationLine],
    areas: Optional[Sequence[Area]],
    mode: InquiryMode = InquiryMode.AREA_WISE,
) -> List[AreaBucket]:
    """
    Group lines into area buckets.

    PROJECT_LEVEL mode, or an empty area list, collapses every line into a
    single project-wide bucket. Otherwise lines whose area id matches no
    known area are left out of every bucket.
    """
    lines = list(lines or ())
    areas = list(areas or ())

    if mode is InquiryMode.PROJECT_LEVEL or not areas:
        return [_bucket(None, PROJECT_WIDE_AREA, lines)]

    by_area: "OrderedDict[object, List[ConfigurationLine]]" = OrderedDict((area.id, []) for area in areas)
    names = {area.id: area.name for area in areas}
    orphaned = 0
    for line in lines:
        bucket_lines = by_area.get(line.area_id)
        if bucket_lines is None:
            orphaned += 1
            continue
        bucket_lines.append(line)

    if orphaned:
        logger.debug(f"{orphaned} configuration line(s) reference unknown areas and were not bucketed")

    return [_bucket(area_id, names[area_id], bucket_lines) for area_id, bucket_lines in by_area.items()]


def grand_subtotal(buckets: Iterable[AreaBucket]) -> Decimal:
    return sum((bucket.subtotal for bucket in buckets), ZERO)


def summarize_by_type(buckets: Iterable[AreaBucket]) -> TypeSummary:
    """Quantity and amount per item kind, plus total luminaire wattage."""
    quantities = {kind: 0 for kind in ItemKind}
    amounts = {kind: ZERO for kind in ItemKind}
    wattage = ZERO
    subtotal = ZERO
    for bucket in buckets:
        subtotal += bucket.subtotal
        for entry in bucket.entries:
            quantities[entry.item_type] += entry.qty
            amounts[entry.item_type] += entry.total
            if entry.item_type is ItemKind.PRODUCT and entry.wattage is not None:
                wattage += entry.qty * entry.wattage
    return TypeSummary(
        quantities=quantities,
        amounts=amounts,
        total_wattage=wattage,
        subtotal=subtotal,
    )
