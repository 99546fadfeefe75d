"""Staff directory: profiles, roles and capability maps."""

import logging
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from floorops.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailed
from floorops.core.rbac import (
    Capability,
    StaffRole,
    default_permissions,
    is_master,
    normalize_permissions,
    require_capability,
)
from floorops.db.session import atomic
from floorops.models.user import StaffProfile

logger = logging.getLogger(__name__)


def _coerce_role(role) -> StaffRole:
    try:
        return StaffRole(role)
    except ValueError:
        raise ValidationFailed(f"Unknown role '{role}'", field="role")


class StaffService:
    """Service for staff profiles. Every write needs the ``users`` capability."""

    def __init__(self, db: Session):
        self.db = db

    def get_profile(self, profile_id: int) -> StaffProfile:
        profile = self.db.get(StaffProfile, profile_id)
        if profile is None:
            raise NotFoundError("StaffProfile", profile_id)
        return profile

    def list_profiles(self, role: Optional[str] = None, active_only: bool = False) -> List[StaffProfile]:
        stmt = select(StaffProfile).order_by(StaffProfile.id)
        if role:
            stmt = stmt.where(StaffProfile.role == _coerce_role(role))
        if active_only:
            stmt = stmt.where(StaffProfile.is_active.is_(True))
        return list(self.db.scalars(stmt))

    def create_profile(
        self,
        actor,
        email: str,
        role: str = StaffRole.WAITER.value,
        full_name: Optional[str] = None,
        permissions: Optional[Dict[str, bool]] = None,
    ) -> StaffProfile:
        require_capability(actor, Capability.USERS)
        role = _coerce_role(role)
        self._guard_master(actor, role)
        email = (email or "").strip().lower()
        if not email:
            raise ValidationFailed("Email is required", field="email")
        if permissions is None:
            permissions = default_permissions(role)
        else:
            permissions = normalize_permissions(permissions)

        existing = self.db.scalar(select(StaffProfile.id).where(StaffProfile.email == email))
        if existing is not None:
            raise ConflictError(f"A profile with email {email} already exists", email=email)

        with atomic(self.db):
            profile = StaffProfile(
                email=email,
                full_name=full_name,
                role=role,
                permissions=permissions,
                is_active=True,
            )
            self.db.add(profile)

        logger.info(f"Staff profile {profile.id} ({role.value}) created by profile {actor.id}")
        return profile

    def update_permissions(self, actor, profile_id: int, permissions: Dict[str, bool]) -> StaffProfile:
        """Replace a profile's capability map."""
        require_capability(actor, Capability.USERS)
        normalized = normalize_permissions(permissions)
        with atomic(self.db):
            profile = self.get_profile(profile_id)
            self._guard_master(actor, profile.role)
            profile.permissions = normalized

        logger.info(f"Permissions of profile {profile_id} set to {normalized} by profile {actor.id}")
        return profile

    def set_role(self, actor, profile_id: int, role: str, reset_permissions: bool = False) -> StaffProfile:
        require_capability(actor, Capability.USERS)
        new_role = _coerce_role(role)
        with atomic(self.db):
            profile = self.get_profile(profile_id)
            self._guard_master(actor, profile.role)
            self._guard_master(actor, new_role)
            profile.role = new_role
            if reset_permissions:
                profile.permissions = default_permissions(new_role)

        logger.info(f"Profile {profile_id} role set to {new_role.value} by profile {actor.id}")
        return profile

    def set_active(self, actor, profile_id: int, is_active: bool) -> StaffProfile:
        require_capability(actor, Capability.USERS)
        if profile_id == actor.id and not is_active:
            raise ConflictError("A profile cannot deactivate itself", profile_id=profile_id)
        with atomic(self.db):
            profile = self.get_profile(profile_id)
            self._guard_master(actor, profile.role)
            profile.is_active = is_active

        logger.info(f"Profile {profile_id} {'activated' if is_active else 'deactivated'} by profile {actor.id}")
        return profile

    @staticmethod
    def _guard_master(actor, role: StaffRole) -> None:
        if StaffRole(role) == StaffRole.MASTER and not is_master(actor):
            logger.warning(f"Profile {actor.id} tried to manage a master profile")
            raise PermissionDeniedError("Only a master profile can manage master profiles")
