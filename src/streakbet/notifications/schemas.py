"""Pydantic response models for notification endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    subtype: str
    title: str
    description: str | None = None
    metadata: dict[str, Any] = {}
    timestamp: datetime | None = None
    read: bool


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    unread_count: int
