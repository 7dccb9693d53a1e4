"""Notification creation and query service.

Notifications are:
1. Persisted in the database
2. Pushed to the user via Redis pub/sub when a client is configured

Types: wager, streak, system
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.db.models import Notification
from streakbet.notifications.push import push_notification_to_user

logger = logging.getLogger(__name__)

VALID_TYPES = {"wager", "streak", "system"}

# subtype → (type, title)
SUBTYPES: dict[str, tuple[str, str]] = {
    "bet_won": ("wager", "Bet Won"),
    "bet_lost": ("wager", "Bet Lost"),
    "challenge_received": ("wager", "New Challenge"),
    "challenge_accepted": ("wager", "Challenge Accepted"),
    "challenge_declined": ("wager", "Challenge Declined"),
    "challenge_won": ("wager", "Challenge Won"),
    "challenge_lost": ("wager", "Challenge Lost"),
    "challenge_tied": ("wager", "Challenge Tied"),
    "challenge_expired": ("wager", "Challenge Expired"),
    "streak_reminder": ("streak", "Streak Reminder"),
}


async def create_notification(
    db: AsyncSession,
    user_id: int,
    subtype: str,
    description: str,
    metadata: dict[str, Any] | None = None,
    redis: Any | None = None,
) -> Notification:
    """Persist a notification and push it via Redis."""
    type_, title = SUBTYPES.get(subtype, ("system", subtype.replace("_", " ").title()))
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        subtype=subtype,
        title=title,
        description=description,
        read=False,
        notification_metadata=metadata or {},
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()

    await push_notification_to_user(redis, notification)
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Notification], int]:
    """Get user's notifications (paginated, most recent first)."""
    offset = (page - 1) * per_page

    total_result = await db.execute(
        select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    notifications = list(result.scalars().all())
    return notifications, total


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return result.scalar_one()
