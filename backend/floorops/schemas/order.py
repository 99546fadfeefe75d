"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OrderLineCreate(BaseModel):
    """One line of a submitted cart."""

    menu_item_id: int
    quantity: int = Field(1, ge=1)
    options: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    table_id: Optional[int] = None
    items: List[OrderLineCreate]
    notes: Optional[str] = None
    check_in: bool = False


class OrderLineAdd(OrderLineCreate):
    expected_version: Optional[int] = None


class OrderLineQuantity(BaseModel):
    quantity: int = Field(..., ge=1)
    expected_version: Optional[int] = None


class OrderStatusUpdate(BaseModel):
    status: str
    expected_version: Optional[int] = None
    reason: Optional[str] = None


class OrderItemResponse(BaseModel):
    id: int
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    options: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    order_number: str
    table_id: Optional[int] = None
    waiter_id: Optional[int] = None
    status: str
    total_amount: Decimal
    notes: Optional[str] = None
    version: int
    stock_deducted: bool
    created_at: datetime
    started_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}
