"""Season queries and administration."""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.db.models import Season, SeasonStreak, User
from streakbet.errors import NotFoundError, RuleViolationError
from streakbet.streaks.calendar import calendar_day, utcnow

logger = structlog.get_logger()

_EDITABLE_FIELDS = ("name", "description", "start_date", "end_date", "is_active")


async def get_active_seasons(db: AsyncSession, today: date | None = None) -> list[Season]:
    """Enabled seasons whose window contains ``today``."""
    today = today or calendar_day(utcnow())
    result = await db.execute(
        select(Season)
        .where(Season.is_active.is_(True), Season.start_date <= today, Season.end_date >= today)
        .order_by(Season.start_date)
    )
    return list(result.scalars().all())


async def list_seasons(db: AsyncSession, include_inactive: bool = False) -> list[Season]:
    """Seasons ordered by start date, newest first."""
    stmt = select(Season).order_by(Season.start_date.desc(), Season.id.desc())
    if not include_inactive:
        stmt = stmt.where(Season.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_season(db: AsyncSession, season_id: int) -> Season:
    season = await db.get(Season, season_id)
    if season is None:
        raise NotFoundError("Season not found")
    return season


def _check_window(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise RuleViolationError("End date must be on or after start date")


async def create_season(
    db: AsyncSession,
    name: str,
    start_date: date,
    end_date: date,
    description: str | None = None,
) -> Season:
    if not name or not name.strip():
        raise RuleViolationError("Season name is required")
    _check_window(start_date, end_date)

    season = Season(
        name=name.strip(),
        description=description,
        start_date=start_date,
        end_date=end_date,
        is_active=True,
        created_at=utcnow(),
    )
    db.add(season)
    await db.commit()
    logger.info("season_created", season_id=season.id, start=str(start_date), end=str(end_date))
    return season


async def update_season(db: AsyncSession, season_id: int, changes: dict[str, Any]) -> Season:
    """Apply a partial update. Unknown keys are ignored; ``None`` values are skipped."""
    season = await get_season(db, season_id)
    for key in _EDITABLE_FIELDS:
        value = changes.get(key)
        if value is not None:
            setattr(season, key, value)
    try:
        _check_window(season.start_date, season.end_date)
    except RuleViolationError:
        await db.rollback()
        raise
    await db.commit()
    logger.info("season_updated", season_id=season_id, fields=sorted(k for k, v in changes.items() if v is not None))
    return season


async def delete_season(db: AsyncSession, season_id: int) -> None:
    season = await get_season(db, season_id)
    await db.delete(season)
    await db.commit()
    logger.info("season_deleted", season_id=season_id)


async def get_season_users(db: AsyncSession, season_id: int) -> list[dict[str, Any]]:
    """Participants of a season ranked by streak, longest first."""
    await get_season(db, season_id)
    result = await db.execute(
        select(User.id, User.username, SeasonStreak.streak, SeasonStreak.last_login_date)
        .join(SeasonStreak, SeasonStreak.user_id == User.id)
        .where(SeasonStreak.season_id == season_id)
        .order_by(SeasonStreak.streak.desc(), User.username)
    )
    return [
        {"id": user_id, "username": username, "streak": streak, "last_login": last_login}
        for user_id, username, streak, last_login in result
    ]
