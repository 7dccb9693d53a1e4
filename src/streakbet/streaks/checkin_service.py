"""Season check-in engine: the streak state machine.

A check-in against a season is one of three transitions on the user's
season streak entry, decided by the calendar-day distance to the previous
check-in:

    0 days   -> no-op ("Already checked in today")
    1 day    -> streak + 1
    2+ days  -> streak reset to 1, open wagers settled as a break

The whole transition, including the wager cascade, commits as one
transaction while the user (and every challenge counterpart) is locked.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.db.models import Season, SeasonStreak
from streakbet.errors import InvalidStateError, NotFoundError
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.calendar import as_utc, calendar_day, day_delta, utcnow, within_window
from streakbet.streaks.locks import UserLockRegistry
from streakbet.streaks.rewards import enqueue_rewards, season_streak_rewards
from streakbet.users.service import get_user_for_update
from streakbet.wagers.resolution import WagerResolver

logger = structlog.get_logger()

MSG_CHECKED_IN = "Checked in successfully."
MSG_ALREADY = "Already checked in today."
MSG_BROKEN = "Streak broken but checked in."

# Lock acquisition is retried when a challenge becomes active between
# collecting counterparts and taking the locks.
_MAX_LOCK_ATTEMPTS = 5


class CheckInStatus(str, enum.Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"
    STREAK_BROKEN = "streak_broken"


@dataclass
class CheckInResult:
    message: str
    streak: int
    xp_gained: int
    total_xp: int
    status: CheckInStatus

    def to_dict(self) -> dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


class CheckInEngine:
    """Applies season check-ins for one request/session."""

    def __init__(
        self,
        db: AsyncSession,
        resolver: WagerResolver,
        notifier: NotificationSink,
        locks: UserLockRegistry,
    ) -> None:
        self.db = db
        self.resolver = resolver
        self.notifier = notifier
        self.locks = locks

    async def check_in(self, user_id: int, season_id: int, when: datetime | None = None) -> CheckInResult:
        """Check ``user_id`` into ``season_id`` on ``when`` (default: now).

        Raises:
            NotFoundError: user or season does not exist.
            InvalidStateError: the date is outside the season window.
        """
        moment = as_utc(when) if when is not None else utcnow()

        for _ in range(_MAX_LOCK_ATTEMPTS):
            partners = await self.resolver.active_counterparts(user_id)
            async with self.locks.hold(user_id, *partners):
                current = await self.resolver.active_counterparts(user_id)
                if not set(current) <= set(partners):
                    await self.db.rollback()
                    continue
                result = await self._check_in_locked(user_id, season_id, moment)
            await self.notifier.deliver()
            return result

        msg = "Could not acquire a stable lock set for check-in"
        raise InvalidStateError(msg)

    async def _check_in_locked(self, user_id: int, season_id: int, moment: datetime) -> CheckInResult:
        try:
            user = await get_user_for_update(self.db, user_id)
            season = await self.db.get(Season, season_id)
            if season is None:
                raise NotFoundError("Season not found")

            if not within_window(moment, season.start_date, season.end_date):
                raise InvalidStateError("Season is not currently active")

            # Any check-in counts as daily activity; never move the date backwards.
            if user.last_login_date is None or calendar_day(user.last_login_date) < calendar_day(moment):
                user.last_login_date = moment

            entry = await self._get_entry(user_id, season_id)
            if entry is None:
                entry = SeasonStreak(user_id=user_id, season_id=season_id, streak=1, last_login_date=moment)
                self.db.add(entry)
                status, message = CheckInStatus.CHECKED_IN, MSG_CHECKED_IN
            else:
                diff_days = day_delta(moment, entry.last_login_date or moment)
                if diff_days == 0:
                    result = CheckInResult(MSG_ALREADY, entry.streak, 0, user.xp, CheckInStatus.ALREADY_CHECKED_IN)
                    await self.db.commit()
                    return result
                if diff_days == 1:
                    entry.streak += 1
                    status, message = CheckInStatus.CHECKED_IN, MSG_CHECKED_IN
                else:
                    previous = entry.streak
                    entry.streak = 1
                    status, message = CheckInStatus.STREAK_BROKEN, MSG_BROKEN
                    logger.info(
                        "season_streak_broken",
                        user_id=user_id,
                        season_id=season_id,
                        previous_streak=previous,
                        gap_days=diff_days,
                    )
                    await self.resolver.settle_streak_break(user)
                entry.last_login_date = moment

            enqueue_rewards(self.db, user_id, season_streak_rewards(entry.streak), moment)

            result = CheckInResult(message, entry.streak, 0, user.xp, status)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            self.notifier.discard()
            raise

        logger.info(
            "season_check_in",
            user_id=user_id,
            season_id=season_id,
            status=result.status.value,
            streak=result.streak,
        )
        return result

    async def _get_entry(self, user_id: int, season_id: int) -> SeasonStreak | None:
        result = await self.db.execute(
            select(SeasonStreak)
            .where(SeasonStreak.user_id == user_id, SeasonStreak.season_id == season_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()


async def get_season_streak(db: AsyncSession, user_id: int, season_id: int) -> SeasonStreak | None:
    result = await db.execute(
        select(SeasonStreak).where(SeasonStreak.user_id == user_id, SeasonStreak.season_id == season_id)
    )
    return result.scalar_one_or_none()


async def list_season_streaks(db: AsyncSession, user_id: int) -> list[SeasonStreak]:
    result = await db.execute(
        select(SeasonStreak).where(SeasonStreak.user_id == user_id).order_by(SeasonStreak.id)
    )
    return list(result.scalars().all())
