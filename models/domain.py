"""
Domain models for configuration lines, area buckets and BOQ snapshots.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


class ItemKind(str, Enum):
    PRODUCT = "PRODUCT"
    DRIVER = "DRIVER"
    ACCESSORY = "ACCESSORY"


class InquiryMode(str, Enum):
    """How a project groups its configuration."""
    AREA_WISE = "AREA_WISE"
    PROJECT_LEVEL = "PROJECT_LEVEL"


class VersionStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    FINAL = "FINAL"


@dataclass(frozen=True)
class CatalogItem:
    """Product, driver or accessory master record with its resolved price."""
    kind: ItemKind
    key: str
    make: str = ""
    unit_price: Decimal = Decimal("0")
    wattage: Optional[Decimal] = None
    id: Any = None
    name: str = ""

    @property
    def display_name(self) -> str:
        if self.make and self.key:
            return f"{self.make} {self.key}"
        return self.name or self.key or self.make


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class CatalogMaps:
    """
    Read-only id -> catalog record lookups, one per item kind.

    Values may be ``CatalogItem`` instances or raw catalog dicts.
    """
    products: Mapping = field(default_factory=dict)
    drivers: Mapping = field(default_factory=dict)
    accessories: Mapping = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "products", _frozen(self.products))
        object.__setattr__(self, "drivers", _frozen(self.drivers))
        object.__setattr__(self, "accessories", _frozen(self.accessories))

    def for_kind(self, kind: ItemKind) -> Mapping:
        if kind is ItemKind.PRODUCT:
            return self.products
        if kind is ItemKind.DRIVER:
            return self.drivers
        return self.accessories


@dataclass(frozen=True)
class Area:
    id: Any
    name: str


@dataclass(frozen=True)
class ConfigurationLine:
    """
    Canonical configuration line.

    ``item`` is the primary catalog item: a PRODUCT for luminaire lines, or
    the driver/accessory itself for a standalone line.
    """
    id: Any
    area_id: Any
    item: CatalogItem
    quantity: int
    driver: Optional[CatalogItem] = None
    accessories: Tuple[CatalogItem, ...] = ()
    created_at: Optional[datetime] = None
    subarea_id: Any = None

    @property
    def kind(self) -> ItemKind:
        return self.item.kind

    @property
    def is_standalone(self) -> bool:
        return self.item.kind is not ItemKind.PRODUCT


@dataclass(frozen=True)
class BucketEntry:
    """One catalog key rolled up inside an area bucket."""
    item_type: ItemKind
    catalog_key: str
    item_name: str
    qty: int
    unit_price: Decimal
    total: Decimal
    wattage: Optional[Decimal] = None


@dataclass(frozen=True)
class AreaBucket:
    area_id: Any
    area_name: str
    lines: Tuple[ConfigurationLine, ...]
    entries: Tuple[BucketEntry, ...]
    subtotal: Decimal


@dataclass(frozen=True)
class TypeSummary:
    """Quantities and amounts per item kind across a set of buckets."""
    quantities: Mapping
    amounts: Mapping
    total_wattage: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class BOQLineItem:
    id: Any
    area_name: str
    item_type: str
    item_name: str
    qty: int
    unit_rate: Decimal
    total: Decimal
    catalog_key: str = ""

    @property
    def key(self) -> str:
        return self.catalog_key or self.item_name


@dataclass(frozen=True)
class BOQVersion:
    """Materialized, versioned BOQ snapshot."""
    id: Any
    project_id: Any
    version_number: int
    status: VersionStatus
    margin_percent: Decimal
    items: Tuple[BOQLineItem, ...]
    subtotal: Decimal
    grand_total: Decimal
    created_at: Optional[datetime] = None

    @property
    def is_locked(self) -> bool:
        return self.status is not VersionStatus.DRAFT

    @property
    def margin_amount(self) -> Decimal:
        return self.grand_total - self.subtotal


def compute_grand_total(subtotal: Decimal, margin_percent: Decimal) -> Decimal:
    return subtotal * (1 + margin_percent / Decimal("100"))


def check_totals(version: BOQVersion, tolerance: Decimal = Decimal("0.000001")) -> bool:
    """True when the stored totals agree with the line items and margin."""
    items_total = sum((item.total for item in version.items), Decimal("0"))
    expected_grand = compute_grand_total(version.subtotal, version.margin_percent)
    return (
        abs(items_total - version.subtotal) <= tolerance
        and abs(expected_grand - version.grand_total) <= tolerance
    )


class DiffStatus(str, Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"
    UNCHANGED = "UNCHANGED"


@dataclass(frozen=True)
class DiffSide:
    qty: int
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class DiffRecord:
    key: Tuple[str, str]
    status: DiffStatus
    old: Optional[DiffSide]
    new: Optional[DiffSide]
    difference: Decimal
    item_type: str = ""
    item_name: str = ""

    @property
    def catalog_key(self) -> str:
        return self.key[0]

    @property
    def area_name(self) -> str:
        return self.key[1]


@dataclass(frozen=True)
class MoneyDelta:
    old: Decimal
    new: Decimal
    difference: Decimal


@dataclass(frozen=True)
class HeaderDiff:
    subtotal: MoneyDelta
    grand_total: MoneyDelta
