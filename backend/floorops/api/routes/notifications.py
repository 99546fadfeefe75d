"""Notifications API routes."""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.schemas.notification import AlertRefreshResponse, NotificationResponse
from floorops.services.alert_service import AlertService

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
def list_notifications(
    db: DbSession,
    profile: CurrentProfile,
    unread_only: bool = False,
    category: Optional[str] = None,
    include_resolved: bool = False,
    limit: int = Query(100, ge=1, le=500),
):
    """Recompute alerts, then list them by priority."""
    return AlertService(db).list_notifications(
        unread_only=unread_only, category=category, include_resolved=include_resolved, limit=limit
    )


@router.post("/refresh", response_model=AlertRefreshResponse)
def refresh_alerts(db: DbSession, profile: CurrentProfile):
    return AlertService(db).refresh()


@router.post("/read-all")
def mark_all_read(db: DbSession, profile: CurrentProfile):
    return {"updated": AlertService(db).mark_all_read()}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(db: DbSession, profile: CurrentProfile, notification_id: int):
    return AlertService(db).mark_read(notification_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss(db: DbSession, profile: CurrentProfile, notification_id: int):
    AlertService(db).dismiss(notification_id)
