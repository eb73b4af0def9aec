from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel

from models.domain import (
    AreaBucket,
    BOQLineItem,
    BOQVersion,
    DiffRecord,
    HeaderDiff,
    ItemKind,
    MoneyDelta,
    TypeSummary,
)


class BOQVersionHeader(BaseModel):
    id: int
    version: int
    status: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_snapshot(cls, snapshot: BOQVersion) -> "BOQVersionHeader":
        return cls(
            id=snapshot.id,
            version=snapshot.version_number,
            status=snapshot.status.value,
            created_at=snapshot.created_at,
        )


class BOQItemResponse(BaseModel):
    id: int
    area: str
    item_type: str
    item_name: str
    catalog_key: str
    qty: int
    unit_rate: Decimal
    total: Decimal

    @classmethod
    def from_item(cls, item: BOQLineItem) -> "BOQItemResponse":
        return cls(
            id=item.id,
            area=item.area_name,
            item_type=item.item_type,
            item_name=item.item_name,
            catalog_key=item.catalog_key,
            qty=item.qty,
            unit_rate=item.unit_rate,
            total=item.total,
        )


class BOQDetail(BaseModel):
    id: int
    project_id: int
    version: int
    status: str
    is_locked: bool
    margin_percent: Decimal
    margin_amount: Decimal
    subtotal: Decimal
    grand_total: Decimal
    items: List[BOQItemResponse] = []

    @classmethod
    def from_snapshot(cls, snapshot: BOQVersion) -> "BOQDetail":
        return cls(
            id=snapshot.id,
            project_id=snapshot.project_id,
            version=snapshot.version_number,
            status=snapshot.status.value,
            is_locked=snapshot.is_locked,
            margin_percent=snapshot.margin_percent,
            margin_amount=snapshot.margin_amount,
            subtotal=snapshot.subtotal,
            grand_total=snapshot.grand_total,
            items=[BOQItemResponse.from_item(item) for item in snapshot.items],
        )


class ApprovalResult(BaseModel):
    id: int
    version: int
    status: str
    approved: bool
    already_approved: bool = False
    message: str


class MoneyDeltaResponse(BaseModel):
    old: Decimal
    new: Decimal
    difference: Decimal

    @classmethod
    def from_delta(cls, delta: MoneyDelta) -> "MoneyDeltaResponse":
        return cls(old=delta.old, new=delta.new, difference=delta.difference)


class HeaderDiffResponse(BaseModel):
    subtotal: MoneyDeltaResponse
    grand_total: MoneyDeltaResponse

    @classmethod
    def from_header(cls, header: HeaderDiff) -> "HeaderDiffResponse":
        return cls(
            subtotal=MoneyDeltaResponse.from_delta(header.subtotal),
            grand_total=MoneyDeltaResponse.from_delta(header.grand_total),
        )


class CompareItem(BaseModel):
    catalog_key: str
    area: str
    item_type: str
    item_name: str
    status: str
    qty_v1: Optional[int] = None
    qty_v2: Optional[int] = None
    price_v1: Optional[Decimal] = None
    price_v2: Optional[Decimal] = None
    total_v1: Optional[Decimal] = None
    total_v2: Optional[Decimal] = None
    difference: Decimal

    @classmethod
    def from_record(cls, record: DiffRecord) -> "CompareItem":
        old, new = record.old, record.new
        return cls(
            catalog_key=record.catalog_key,
            area=record.area_name,
            item_type=record.item_type,
            item_name=record.item_name,
            status=record.status.value,
            qty_v1=old.qty if old else None,
            qty_v2=new.qty if new else None,
            price_v1=old.unit_price if old else None,
            price_v2=new.unit_price if new else None,
            total_v1=old.total if old else None,
            total_v2=new.total if new else None,
            difference=record.difference,
        )


class CompareResponse(BaseModel):
    version_1: int
    version_2: int
    header_diff: HeaderDiffResponse
    items: List[CompareItem] = []
    counts: Dict[str, int] = {}


class BucketEntryResponse(BaseModel):
    item_type: str
    catalog_key: str
    item_name: str
    qty: int
    unit_price: Decimal
    total: Decimal


class AreaBucketResponse(BaseModel):
    area_id: Optional[Any] = None
    area_name: str
    line_count: int
    subtotal: Decimal
    entries: List[BucketEntryResponse] = []

    @classmethod
    def from_bucket(cls, bucket: AreaBucket) -> "AreaBucketResponse":
        return cls(
            area_id=bucket.area_id,
            area_name=bucket.area_name,
            line_count=len(bucket.lines),
            subtotal=bucket.subtotal,
            entries=[
                BucketEntryResponse(
                    item_type=entry.item_type.value,
                    catalog_key=entry.catalog_key,
                    item_name=entry.item_name,
                    qty=entry.qty,
                    unit_price=entry.unit_price,
                    total=entry.total,
                )
                for entry in bucket.entries
            ],
        )


class TypeSummaryResponse(BaseModel):
    total_luminaires: int
    total_drivers: int
    total_accessories: int
    total_power: Decimal
    product_cost: Decimal
    driver_cost: Decimal
    accessory_cost: Decimal
    subtotal: Decimal

    @classmethod
    def from_summary(cls, summary: TypeSummary) -> "TypeSummaryResponse":
        return cls(
            total_luminaires=summary.quantities[ItemKind.PRODUCT],
            total_drivers=summary.quantities[ItemKind.DRIVER],
            total_accessories=summary.quantities[ItemKind.ACCESSORY],
            total_power=summary.total_wattage,
            product_cost=summary.amounts[ItemKind.PRODUCT],
            driver_cost=summary.amounts[ItemKind.DRIVER],
            accessory_cost=summary.amounts[ItemKind.ACCESSORY],
            subtotal=summary.subtotal,
        )


class DiagnosticResponse(BaseModel):
    kind: str
    line_id: Optional[Any] = None
    field: str
    detail: str = ""


class PreviewResponse(BaseModel):
    project_id: int
    mode: str
    buckets: List[AreaBucketResponse] = []
    summary: TypeSummaryResponse
    diagnostics: List[DiagnosticResponse] = []
