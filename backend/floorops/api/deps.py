"""Request-scoped dependencies: the acting staff profile."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from floorops.core.security import decode_access_token
from floorops.db.session import DbSession
from floorops.models.user import StaffProfile

logger = logging.getLogger(__name__)


def get_current_profile(request: Request, db: DbSession) -> StaffProfile:
    """Resolve the bearer token to an active staff profile.

    The profile is passed explicitly into every service call; nothing reads
    it from ambient state.
    """
    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        profile_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    profile = db.get(StaffProfile, profile_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown profile",
        )
    if not profile.is_active:
        logger.warning(f"Inactive profile {profile_id} presented a valid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile is inactive",
        )
    return profile


CurrentProfile = Annotated[StaffProfile, Depends(get_current_profile)]
