"""Notification schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: int
    subject_key: str
    category: str
    type: str
    priority: str
    title: str
    message: str
    is_read: bool
    action_required: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AlertRefreshResponse(BaseModel):
    created: int
    resolved: int
    active: int
