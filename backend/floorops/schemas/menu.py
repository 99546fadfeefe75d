"""Menu schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: Optional[str] = None
    preparation_time: Optional[int] = Field(None, ge=0)
    is_available: bool = True


class MenuItemAvailability(BaseModel):
    is_available: bool


class MenuItemResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    category: Optional[str] = None
    is_available: bool
    preparation_time: Optional[int] = None

    model_config = {"from_attributes": True}
