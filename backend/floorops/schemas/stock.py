"""Stock schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class StockItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = "food"
    current_stock: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    min_stock: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)
    max_stock: Decimal = Field(..., gt=0, decimal_places=3)
    unit: str = "pcs"
    cost_per_unit: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    supplier: Optional[str] = None
    expiry_date: Optional[date] = None
    consumption_rate: Decimal = Field(Decimal("0"), ge=0, decimal_places=3)


class StockItemUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    min_stock: Optional[Decimal] = Field(None, ge=0, decimal_places=3)
    max_stock: Optional[Decimal] = Field(None, gt=0, decimal_places=3)
    unit: Optional[str] = None
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    supplier: Optional[str] = None
    expiry_date: Optional[date] = None
    consumption_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=3)
    expected_version: Optional[int] = None


class StockQuantityRequest(BaseModel):
    """Restock or consume request."""

    quantity: Decimal = Field(..., gt=0, decimal_places=3)
    expected_version: Optional[int] = None
    notes: Optional[str] = None


class StockItemResponse(BaseModel):
    id: int
    name: str
    category: str
    current_stock: Decimal
    min_stock: Decimal
    max_stock: Decimal
    unit: str
    cost_per_unit: Decimal
    supplier: Optional[str] = None
    expiry_date: Optional[date] = None
    consumption_rate: Decimal
    last_restocked: Optional[datetime] = None
    version: int
    status: Optional[str] = None

    model_config = {"from_attributes": True}


class StockReportRow(BaseModel):
    id: int
    name: str
    category: str
    unit: str
    current_stock: Decimal
    min_stock: Decimal
    max_stock: Decimal
    status: str
    days_until_empty: Optional[int] = None  # None = never at current usage
    days_until_expiry: Optional[int] = None
    value: Decimal


class StockMovementResponse(BaseModel):
    id: int
    ts: datetime
    stock_item_id: int
    qty_delta: Decimal
    reason: str
    ref_type: Optional[str] = None
    ref_id: Optional[int] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None

    model_config = {"from_attributes": True}


class RecipeLineIn(BaseModel):
    stock_item_id: int
    quantity: Decimal = Field(..., gt=0, decimal_places=3)


class RecipeSet(BaseModel):
    lines: List[RecipeLineIn]


class RecipeLineResponse(BaseModel):
    id: int
    menu_item_id: int
    stock_item_id: int
    quantity: Decimal

    model_config = {"from_attributes": True}
