"""Shared FastAPI dependencies.

Engines are assembled per request around the request's session. The lock
registry is process-wide; the Redis client is optional.
"""

from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import Settings, get_settings
from streakbet.database import get_session as _get_session
from streakbet.notifications.sink import NotificationSink
from streakbet.redis_client import get_optional_redis
from streakbet.streaks.checkin_service import CheckInEngine
from streakbet.streaks.locks import UserLockRegistry, get_lock_registry
from streakbet.wagers.bet_service import BetService
from streakbet.wagers.challenge_service import ChallengeService
from streakbet.wagers.resolution import WagerResolver

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[Any, None]:
    """Yield the Redis client, or None when Redis is not configured."""
    yield get_optional_redis()


def get_locks() -> UserLockRegistry:
    return get_lock_registry()


def get_notifier(
    db: AsyncSession = Depends(get_db),
    redis: Any = Depends(get_redis_dep),
) -> NotificationSink:
    return NotificationSink(db, redis)


def get_resolver(
    db: AsyncSession = Depends(get_db),
    notifier: NotificationSink = Depends(get_notifier),
) -> WagerResolver:
    return WagerResolver(db, notifier)


def get_checkin_engine(
    db: AsyncSession = Depends(get_db),
    resolver: WagerResolver = Depends(get_resolver),
    notifier: NotificationSink = Depends(get_notifier),
    locks: UserLockRegistry = Depends(get_locks),
) -> CheckInEngine:
    return CheckInEngine(db, resolver, notifier, locks)


def get_bet_service(
    db: AsyncSession = Depends(get_db),
    resolver: WagerResolver = Depends(get_resolver),
    notifier: NotificationSink = Depends(get_notifier),
    locks: UserLockRegistry = Depends(get_locks),
    settings: Settings = Depends(get_settings),
) -> BetService:
    return BetService(db, resolver, notifier, locks, settings)


def get_challenge_service(
    db: AsyncSession = Depends(get_db),
    resolver: WagerResolver = Depends(get_resolver),
    notifier: NotificationSink = Depends(get_notifier),
    locks: UserLockRegistry = Depends(get_locks),
    settings: Settings = Depends(get_settings),
) -> ChallengeService:
    return ChallengeService(db, resolver, notifier, locks, settings)
