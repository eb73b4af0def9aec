"""
Record normalizer.

Upstream configuration records reference catalog items either through a
nested detail object or through a bare id that has to be looked up in a
caller-supplied catalog map. ``normalize`` turns either shape into a
``ConfigurationLine`` and never raises on bad data: malformed numbers become
zero, unresolved references drop the line (or the attachment) and are
reported as diagnostics.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from models.domain import CatalogItem, CatalogMaps, ConfigurationLine, ItemKind
from utils.parsing import (
    Defaulted,
    ParseResult,
    is_blank,
    parse_decimal,
    parse_optional_decimal,
    parse_quantity,
)

logger = logging.getLogger(__name__)

# reference field name on the configuration record, per kind
ROLE_FIELDS = {
    ItemKind.PRODUCT: "product",
    ItemKind.DRIVER: "driver",
    ItemKind.ACCESSORY: "accessory",
}

PRICE_FIELDS = ("price", "base_price")
KEY_FIELDS = ("order_code", "driver_code", "code", "name")
MAKE_FIELDS = ("make", "driver_make", "brand")
ID_FIELDS = {
    ItemKind.PRODUCT: ("id", "prod_id", "product_id"),
    ItemKind.DRIVER: ("id", "driver_id"),
    ItemKind.ACCESSORY: ("id", "accessory_id"),
}


class DiagnosticKind(str, Enum):
    MALFORMED_FIELD = "MALFORMED_FIELD"
    UNRESOLVED_REFERENCE = "UNRESOLVED_REFERENCE"


@dataclass(frozen=True)
class Diagnostic:
    kind: DiagnosticKind
    line_id: Any
    field: str
    raw: Any = None
    detail: str = ""


class _Collector:
    """Collects diagnostics for one record and logs them."""

    def __init__(self, line_id, sink: Optional[List[Diagnostic]]):
        self.line_id = line_id
        self.sink = sink

    def report(self, kind: DiagnosticKind, field_name: str, raw: Any = None, detail: str = ""):
        logger.warning(f"Configuration line {self.line_id}: {kind.value} on '{field_name}' ({detail}): {raw!r}")
        if self.sink is not None:
            self.sink.append(Diagnostic(kind, self.line_id, field_name, raw, detail))

    def value(self, result: ParseResult, field_name: str):
        if isinstance(result, Defaulted):
            self.report(DiagnosticKind.MALFORMED_FIELD, field_name, result.raw, result.reason)
        return result.value


def _first_present(data: Mapping, names: Iterable[str]) -> Tuple[Optional[str], Any]:
    for name in names:
        if name in data and not is_blank(data[name]):
            return name, data[name]
    return None, None


def catalog_item_from_record(kind: ItemKind, data: Any, collector: Optional[_Collector] = None) -> Optional[CatalogItem]:
    """
    Build a ``CatalogItem`` from a raw catalog record.

    Price precedence is ``price``, then ``base_price``, then zero.
    """
    if isinstance(data, CatalogItem):
        return data
    if not isinstance(data, Mapping):
        return None
    collector = collector or _Collector(None, None)

    price_field, raw_price = _first_present(data, PRICE_FIELDS)
    if price_field is None:
        unit_price = parse_decimal(None).value
    else:
        unit_price = collector.value(parse_decimal(raw_price), f"{kind.value.lower()}.{price_field}")

    _, key = _first_present(data, KEY_FIELDS)
    _, make = _first_present(data, MAKE_FIELDS)
    _, item_id = _first_present(data, ID_FIELDS[kind])
    wattage = collector.value(parse_optional_decimal(data.get("wattage")), f"{kind.value.lower()}.wattage")

    return CatalogItem(
        kind=kind,
        key=str(key).strip() if key is not None else "",
        make=str(make).strip() if make is not None else "",
        unit_price=unit_price,
        wattage=wattage,
        id=item_id,
        name=str(data.get("name") or "").strip(),
    )


# ----------------------------------------------------------------------------
# Reference resolution chain. Each resolver receives the raw reference value
# (or the nested detail) and returns a CatalogItem or None; the first hit wins.
# ----------------------------------------------------------------------------

Resolver = Callable[[Mapping, str, ItemKind, CatalogMaps, _Collector], Optional[CatalogItem]]


def _from_nested_detail(record, role, kind, catalogs, collector):
    for suffix in ("_detail", "_details", "Data"):
        detail = record.get(f"{role}{suffix}")
        if isinstance(detail, Mapping) and detail:
            return catalog_item_from_record(kind, detail, collector)
    return None


def _from_inline_object(record, role, kind, catalogs, collector):
    ref = record.get(role)
    if isinstance(ref, (Mapping, CatalogItem)):
        return catalog_item_from_record(kind, ref, collector)
    return None


def _from_catalog_lookup(record, role, kind, catalogs, collector):
    ref = record.get(role)
    if is_blank(ref) or isinstance(ref, (Mapping, CatalogItem, list, tuple)):
        return None
    return lookup_catalog(catalogs.for_kind(kind), ref, kind, collector)


_REFERENCE_RESOLVERS: Tuple[Resolver, ...] = (
    _from_nested_detail,
    _from_inline_object,
    _from_catalog_lookup,
)


def lookup_catalog(catalog: Mapping, ref: Any, kind: ItemKind, collector: Optional[_Collector] = None) -> Optional[CatalogItem]:
    """Look up a bare id, tolerating int/str key mismatches."""
    if isinstance(ref, (list, tuple, set, dict)):
        return None
    if ref in catalog:
        return catalog_item_from_record(kind, catalog[ref], collector)
    text = str(ref).strip()
    for candidate in (text, _as_int(text)):
        if candidate is not None and candidate in catalog:
            return catalog_item_from_record(kind, catalog[candidate], collector)
    return None


def _as_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def resolve_reference(record: Mapping, kind: ItemKind, catalogs: CatalogMaps, collector: _Collector, role: Optional[str] = None) -> Optional[CatalogItem]:
    role = role or ROLE_FIELDS[kind]
    for resolver in _REFERENCE_RESOLVERS:
        item = resolver(record, role, kind, catalogs, collector)
        if item is not None:
            return item
    return None


def has_reference(record: Mapping, role: str) -> bool:
    if not is_blank(record.get(role)):
        return True
    return any(record.get(f"{role}{suffix}") for suffix in ("_detail", "_details", "Data"))


def _resolve_accessories(record: Mapping, catalogs: CatalogMaps, collector: _Collector) -> Tuple[CatalogItem, ...]:
    """
    Attached accessories arrive as ids, inline objects, or detail lists.

    A product record may also carry a single ``accessory`` reference next to
    the list; it is priced too, unless the list already holds the same id.
    """
    details = record.get("accessories_detail") or record.get("accessory_details") or record.get("accessoriesData")
    refs = details if isinstance(details, (list, tuple)) else record.get("accessories")
    if is_blank(refs):
        refs = []
    elif not isinstance(refs, (list, tuple)):
        refs = [refs]

    resolved = []
    single = record.get("accessory")
    single_detail = any(isinstance(record.get(f"accessory{suffix}"), Mapping) for suffix in ("_detail", "_details", "Data"))
    if (single_detail or not is_blank(single)) and not _listed(single, refs):
        item = resolve_reference(record, ItemKind.ACCESSORY, catalogs, collector)
        if item is None:
            collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, "accessory", single, "accessory dropped")
        else:
            resolved.append(item)

    for index, ref in enumerate(refs):
        # {"accessory": 7, "accessory_detail": {...}} rows go through the full chain
        if isinstance(ref, Mapping) and has_reference(ref, "accessory"):
            item = resolve_reference(ref, ItemKind.ACCESSORY, catalogs, collector)
        elif isinstance(ref, (Mapping, CatalogItem)):
            item = catalog_item_from_record(ItemKind.ACCESSORY, ref, collector)
        else:
            item = lookup_catalog(catalogs.accessories, ref, ItemKind.ACCESSORY, collector)
        if item is None:
            collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, f"accessories[{index}]", ref, "accessory dropped")
            continue
        resolved.append(item)
    return tuple(resolved)


def _listed(ref: Any, refs) -> bool:
    """True when a bare accessory id already appears in the accessories list."""
    if is_blank(ref) or isinstance(ref, (Mapping, CatalogItem)):
        return False
    text = str(ref).strip()
    for entry in refs:
        if isinstance(entry, Mapping):
            entry = entry.get("accessory", entry.get("accessory_id", entry.get("id")))
        if not is_blank(entry) and not isinstance(entry, (Mapping, CatalogItem)) and str(entry).strip() == text:
            return True
    return False


def detect_kind(record: Mapping) -> Optional[ItemKind]:
    """Primary kind of a raw record: product first, then standalone driver/accessory."""
    for kind in (ItemKind.PRODUCT, ItemKind.DRIVER, ItemKind.ACCESSORY):
        if has_reference(record, ROLE_FIELDS[kind]):
            return kind
    return None


def _parse_created_at(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def normalize(
    raw: Mapping,
    catalogs: CatalogMaps,
    kind: Optional[ItemKind] = None,
    diagnostics: Optional[List[Diagnostic]] = None,
) -> Optional[ConfigurationLine]:
    """
    Canonicalize one raw configuration record.

    Returns None when the primary reference cannot be resolved; the line is
    then excluded from aggregation and an UNRESOLVED_REFERENCE diagnostic is
    recorded.
    """
    line_id = raw.get("id") if isinstance(raw, Mapping) else None
    collector = _Collector(line_id, diagnostics)
    if not isinstance(raw, Mapping):
        collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, "record", raw, "record is not a mapping")
        return None

    kind = kind or detect_kind(raw)
    if kind is None:
        collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, "product", None, "record references no catalog item")
        return None

    role = ROLE_FIELDS[kind]
    item = resolve_reference(raw, kind, catalogs, collector)
    if item is None:
        collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, role, raw.get(role), "line dropped")
        return None

    driver = None
    accessories: Tuple[CatalogItem, ...] = ()
    if kind is ItemKind.PRODUCT:
        if has_reference(raw, "driver"):
            driver = resolve_reference(raw, ItemKind.DRIVER, catalogs, collector)
            if driver is None:
                collector.report(DiagnosticKind.UNRESOLVED_REFERENCE, "driver", raw.get("driver"), "driver dropped")
        accessories = _resolve_accessories(raw, catalogs, collector)

    quantity = collector.value(parse_quantity(_first_present(raw, ("quantity", "qty"))[1]), "quantity")

    return ConfigurationLine(
        id=line_id,
        area_id=_first_present(raw, ("area", "area_id"))[1],
        item=item,
        quantity=quantity,
        driver=driver,
        accessories=accessories,
        created_at=_parse_created_at(raw.get("created_at")),
        subarea_id=_first_present(raw, ("subarea", "subarea_id"))[1],
    )


def normalize_all(
    records: Iterable[Mapping],
    catalogs: CatalogMaps,
    kind: Optional[ItemKind] = None,
) -> Tuple[List[ConfigurationLine], List[Diagnostic]]:
    """Normalize a batch, returning the kept lines and every diagnostic."""
    diagnostics: List[Diagnostic] = []
    lines = []
    dropped = 0
    for raw in records or ():
        line = normalize(raw, catalogs, kind=kind, diagnostics=diagnostics)
        if line is None:
            dropped += 1
            continue
        lines.append(line)
    if dropped:
        logger.warning(f"Dropped {dropped} configuration line(s) with unresolved references")
    return lines, diagnostics
