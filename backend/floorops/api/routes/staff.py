"""Staff directory routes."""

from typing import List, Optional

from fastapi import APIRouter, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.schemas.staff import (
    ActiveUpdate,
    PermissionsUpdate,
    RoleUpdate,
    StaffProfileCreate,
    StaffProfileResponse,
)
from floorops.services.staff_service import StaffService

router = APIRouter()


@router.get("/me", response_model=StaffProfileResponse)
def get_me(profile: CurrentProfile):
    return profile


@router.get("/", response_model=List[StaffProfileResponse])
def list_profiles(
    db: DbSession,
    profile: CurrentProfile,
    role: Optional[str] = None,
    active_only: bool = False,
):
    return StaffService(db).list_profiles(role=role, active_only=active_only)


@router.get("/{profile_id}", response_model=StaffProfileResponse)
def get_profile(db: DbSession, profile: CurrentProfile, profile_id: int):
    return StaffService(db).get_profile(profile_id)


@router.post("/", response_model=StaffProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(db: DbSession, profile: CurrentProfile, body: StaffProfileCreate):
    return StaffService(db).create_profile(
        profile,
        email=body.email,
        role=body.role.value,
        full_name=body.full_name,
        permissions=body.permissions,
    )


@router.put("/{profile_id}/permissions", response_model=StaffProfileResponse)
def update_permissions(db: DbSession, profile: CurrentProfile, profile_id: int, body: PermissionsUpdate):
    return StaffService(db).update_permissions(profile, profile_id, body.permissions)


@router.put("/{profile_id}/role", response_model=StaffProfileResponse)
def set_role(db: DbSession, profile: CurrentProfile, profile_id: int, body: RoleUpdate):
    return StaffService(db).set_role(profile, profile_id, body.role.value, reset_permissions=body.reset_permissions)


@router.put("/{profile_id}/active", response_model=StaffProfileResponse)
def set_active(db: DbSession, profile: CurrentProfile, profile_id: int, body: ActiveUpdate):
    return StaffService(db).set_active(profile, profile_id, body.is_active)
