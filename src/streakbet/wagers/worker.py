"""Wager arq worker: daily settlement of matured wagers and streak reminders.

Run with: arq streakbet.workers.settings.WagerWorkerSettings
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import get_settings
from streakbet.database import close_db, get_session, init_db
from streakbet.db.models import FriendChallenge, SoloBet, User
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.calendar import calendar_day, kept_streak_until, start_of_day, utcnow
from streakbet.streaks.locks import UserLockRegistry, get_lock_registry
from streakbet.users.service import get_user_for_update
from streakbet.wagers import states
from streakbet.wagers.bet_service import BetService
from streakbet.wagers.resolution import WagerResolver

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def _matured_bets(db: AsyncSession, today_start: datetime) -> list[tuple[int, datetime, datetime | None]]:
    result = await db.execute(
        select(SoloBet.id, SoloBet.bet_end_date, User.last_login_date)
        .join(User, User.id == SoloBet.user_id)
        .where(SoloBet.status == states.ACTIVE, SoloBet.bet_end_date < today_start)
        .order_by(SoloBet.id)
    )
    return [tuple(row) for row in result]


def _first_to_lapse(end: datetime, challenger: User, opponent: User) -> User | None:
    """The participant whose streak lapsed first, or None for a tie.

    Both current, or both lapsed on the same day, is a tie.
    """
    lapsed = [u for u in (challenger, opponent) if not kept_streak_until(u.last_login_date, end)]
    if not lapsed:
        return None
    if len(lapsed) == 1:
        return lapsed[0]

    def last_day(user: User) -> date:
        return calendar_day(user.last_login_date) if user.last_login_date is not None else date.min

    if last_day(challenger) == last_day(opponent):
        return None
    return challenger if last_day(challenger) < last_day(opponent) else opponent


async def settle_matured(
    db: AsyncSession,
    locks: UserLockRegistry,
    redis: Any | None = None,
    now: datetime | None = None,
) -> dict[str, int]:
    """Close every wager whose end date lies before today.

    A solo bet is won when its owner was still active on the day before the
    end date, otherwise lost. An active challenge goes to the counterpart of
    whoever lapsed first and is tied with both stakes refunded when neither
    did. Pending challenges nobody answered expire without moving XP.
    """
    today_start = start_of_day(calendar_day(now or utcnow()))
    counts = {
        "bets_won": 0,
        "bets_lost": 0,
        "challenges_settled": 0,
        "challenges_tied": 0,
        "challenges_expired": 0,
    }

    for bet_id, end_date, last_activity in await _matured_bets(db, today_start):
        outcome = states.WON if kept_streak_until(last_activity, end_date) else states.LOST
        notifier = NotificationSink(db, redis)
        service = BetService(db, WagerResolver(db, notifier), notifier, locks)
        resolved = await service.resolve_bet(bet_id, outcome)
        if resolved.get("success"):
            counts["bets_won" if outcome == states.WON else "bets_lost"] += 1

    challenge_rows = (
        await db.execute(
            select(FriendChallenge.id, FriendChallenge.challenger_id, FriendChallenge.opponent_id).where(
                or_(
                    FriendChallenge.challenge_status == states.ACTIVE,
                    FriendChallenge.challenge_status == states.PENDING,
                ),
                FriendChallenge.bet_end_date < today_start,
            )
        )
    ).all()
    for challenge_id, challenger_id, opponent_id in challenge_rows:
        notifier = NotificationSink(db, redis)
        resolver = WagerResolver(db, notifier)
        async with locks.hold(challenger_id, opponent_id):
            try:
                result = await db.execute(
                    select(FriendChallenge)
                    .where(FriendChallenge.id == challenge_id)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                challenge = result.scalar_one_or_none()
                if challenge is None:
                    await db.rollback()
                    continue
                if challenge.challenge_status == states.ACTIVE:
                    challenger = await get_user_for_update(db, challenger_id, label="Challenger")
                    opponent = await get_user_for_update(db, opponent_id, label="Opponent")
                    loser = _first_to_lapse(challenge.bet_end_date, challenger, opponent)
                    if loser is None:
                        await resolver.tie_challenge(challenge)
                        key = "challenges_tied"
                    else:
                        await resolver.settle_challenge(challenge, loser)
                        key = "challenges_settled"
                elif challenge.challenge_status == states.PENDING:
                    states.validate_challenge_transition(challenge.challenge_status, states.DECLINED)
                    challenge.challenge_status = states.DECLINED
                    challenge.status = states.LOST
                    challenge.resolved_at = utcnow()
                    notifier.notify(
                        challenge.challenger_id,
                        "challenge_expired",
                        f"Your {challenge.amount} XP challenge expired before it was accepted.",
                        {"challenge_id": challenge.id},
                    )
                    key = "challenges_expired"
                else:
                    await db.rollback()
                    continue
                await db.commit()
            except Exception:
                await db.rollback()
                notifier.discard()
                raise
        await notifier.deliver()
        counts[key] += 1

    return counts


async def send_reminders(db: AsyncSession, redis: Any | None = None, now: datetime | None = None) -> int:
    """Remind users with a running login streak who have not logged in today."""
    today_start = start_of_day(calendar_day(now or utcnow()))
    result = await db.execute(
        select(User.id, User.overall_streak).where(
            User.role != "admin",
            User.overall_streak > 0,
            or_(User.last_login_date.is_(None), User.last_login_date < today_start),
        )
    )
    notifier = NotificationSink(db, redis)
    for user_id, streak in result.all():
        notifier.notify(
            user_id,
            "streak_reminder",
            f"Don't break your {streak}-day streak! Check in now to keep it alive.",
            {"current_streak": streak},
        )
    return await notifier.deliver()


# ---------------------------------------------------------------------------
# arq entry points
# ---------------------------------------------------------------------------


async def wager_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    logger.info("Wager worker started")


async def wager_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Wager worker shut down")


async def settle_matured_wagers(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Scheduled arq task: runs daily at 00:05 UTC."""
    db = await _get_db_session()
    try:
        counts = await settle_matured(db, get_lock_registry(), ctx.get("redis"))
        logger.info(
            "Matured wagers settled: %d bets won, %d bets lost, %d challenges won, "
            "%d challenges tied, %d challenges expired",
            counts["bets_won"],
            counts["bets_lost"],
            counts["challenges_settled"],
            counts["challenges_tied"],
            counts["challenges_expired"],
        )
        return counts
    except Exception:
        logger.exception("Failed to settle matured wagers")
        raise
    finally:
        await db.close()


async def send_streak_reminders(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled arq task: runs daily at ``reminder_hour_utc``."""
    db = await _get_db_session()
    try:
        sent = await send_reminders(db, ctx.get("redis"))
        logger.info("Sent %d streak reminders", sent)
        return sent
    finally:
        await db.close()


class WagerWorkerSettings:
    """arq worker settings for wager maturity and reminders."""

    functions = [settle_matured_wagers, send_streak_reminders]
    cron_jobs = [
        cron(settle_matured_wagers, hour=0, minute=5),
        cron(send_streak_reminders, hour=get_settings().reminder_hour_utc, minute=0),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    on_startup = wager_startup
    on_shutdown = wager_shutdown
    max_jobs = 4
    job_timeout = 300
    allow_abort_jobs = True
