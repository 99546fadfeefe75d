"""Table schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field


class TableCreate(BaseModel):
    number: int = Field(..., gt=0)
    capacity: int = Field(4, gt=0)
    area: Optional[str] = None


class TableResponse(BaseModel):
    id: int
    number: int
    capacity: int
    status: str
    area: Optional[str] = None
    active_order_id: Optional[int] = None
    version: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class TableStateChange(BaseModel):
    """Body for staff-driven table transitions."""

    expected_version: Optional[int] = None


class TableOccupyRequest(TableStateChange):
    order_id: int


class TableStatsResponse(BaseModel):
    total: int
    by_status: Dict[str, int]
    occupancy_rate: float
