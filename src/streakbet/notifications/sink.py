"""Fire-and-forget notification sink used by the streak and wager engines.

Engines call ``notify`` while their transaction is open; nothing is written
until ``deliver`` runs after the triggering transaction has committed. A
delivery failure is logged and never undoes the committed state change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.notifications.service import create_notification

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    user_id: int
    subtype: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)


class NotificationSink:
    """Collects notifications during a transaction and delivers them afterwards."""

    def __init__(self, db: AsyncSession, redis: Any | None = None) -> None:
        self.db = db
        self.redis = redis
        self.pending: list[PendingNotification] = []

    def notify(self, user_id: int, subtype: str, message: str, data: dict[str, Any] | None = None) -> None:
        self.pending.append(PendingNotification(user_id, subtype, message, dict(data or {})))

    def discard(self) -> None:
        """Drop queued notifications (the triggering transaction rolled back)."""
        self.pending.clear()

    async def deliver(self) -> int:
        """Persist and push queued notifications. Returns the number delivered."""
        batch, self.pending = self.pending, []
        if not batch:
            return 0

        delivered = 0
        try:
            for item in batch:
                await create_notification(
                    self.db,
                    item.user_id,
                    item.subtype,
                    item.message,
                    metadata=item.data,
                    redis=self.redis,
                )
                delivered += 1
            await self.db.commit()
        except Exception:
            logger.warning(
                "Notification delivery failed (%d of %d queued)",
                len(batch) - delivered,
                len(batch),
                exc_info=True,
            )
            # Callers still read the committed objects; detached ones are not expired.
            self.db.expunge_all()
            await self.db.rollback()
            return 0
        return delivered
