"""Staff profile schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from floorops.core.rbac import StaffRole


class StaffProfileCreate(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    full_name: Optional[str] = None
    role: StaffRole = StaffRole.WAITER
    permissions: Optional[Dict[str, bool]] = None


class PermissionsUpdate(BaseModel):
    permissions: Dict[str, bool]


class RoleUpdate(BaseModel):
    role: StaffRole
    reset_permissions: bool = False


class ActiveUpdate(BaseModel):
    is_active: bool


class StaffProfileResponse(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: StaffRole
    permissions: Dict[str, bool]
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
