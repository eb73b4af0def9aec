from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class GenerateBOQRequest(BaseModel):
    request_key: Optional[str] = Field(default=None, max_length=100, description="Client key that makes repeated generate calls return the same version")
    created_by: str = "user"


class ApplyMarginRequest(BaseModel):
    markup_pct: Decimal = Field(..., ge=0, description="Margin percent over subtotal")


class UpdateItemPriceRequest(BaseModel):
    unit_price: Decimal = Field(..., ge=0, description="New unit rate for the line item")


class CompareRequest(BaseModel):
    v1: int = Field(..., ge=0, description="Old version number; 0 compares against an empty BOQ")
    v2: int = Field(..., ge=0, description="New version number; 0 compares against an empty BOQ")
