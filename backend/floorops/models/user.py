"""Staff profile model."""

from __future__ import annotations

from typing import Dict, Optional

from sqlalchemy import JSON, Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from floorops.core.rbac import StaffRole
from floorops.db.base import Base, TimestampMixin
from floorops.models.validators import validate_dict


class StaffProfile(Base, TimestampMixin):
    """Staff member acting on the floor. Carries role and capability map for RBAC."""

    __tablename__ = "staff_profiles"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[StaffRole] = mapped_column(
        Enum(StaffRole, values_callable=lambda roles: [r.value for r in roles]),
        default=StaffRole.WAITER,
        nullable=False,
    )
    permissions: Mapped[Dict[str, bool]] = mapped_column(JSON, default=dict, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @validates("permissions")
    def _validate_permissions(self, key, value):
        return validate_dict(key, value)
