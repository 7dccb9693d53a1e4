"""Season, check-in and reward endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.auth.dependencies import get_current_user, require_admin
from streakbet.database import get_session
from streakbet.db.models import User
from streakbet.deadline import with_deadline
from streakbet.dependencies import get_checkin_engine, get_locks
from streakbet.streaks import season_service
from streakbet.streaks.calendar import parse_date_override
from streakbet.streaks.checkin_service import CheckInEngine, list_season_streaks
from streakbet.streaks.locks import UserLockRegistry
from streakbet.streaks.rewards import claim_reward, list_unclaimed
from streakbet.streaks.schemas import (
    CheckInRequest,
    CheckInResponse,
    ClaimRewardResponse,
    RewardListResponse,
    RewardResponse,
    SeasonResponse,
    SeasonStreakResponse,
    SeasonUserEntry,
)

router = APIRouter(prefix="/api/v1", tags=["Seasons"])


# ── Seasons ──


@router.get("/seasons/active", response_model=list[SeasonResponse])
async def active_seasons(db: AsyncSession = Depends(get_session)):
    """Seasons open for check-in today."""
    return await season_service.get_active_seasons(db)


@router.get("/seasons", response_model=list[SeasonResponse])
async def all_seasons(db: AsyncSession = Depends(get_session)):
    return await season_service.list_seasons(db)


@router.get("/seasons/streaks", response_model=list[SeasonStreakResponse])
async def my_season_streaks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's streak on every season they checked into."""
    return await list_season_streaks(db, user.id)


@router.get("/seasons/{season_id}", response_model=SeasonResponse)
async def season_detail(season_id: int, db: AsyncSession = Depends(get_session)):
    return await season_service.get_season(db, season_id)


@router.get("/seasons/{season_id}/users", response_model=list[SeasonUserEntry])
async def season_users(
    season_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Participants ranked by season streak (admin only)."""
    return await season_service.get_season_users(db, season_id)


@router.post("/seasons/{season_id}/checkin", response_model=CheckInResponse)
async def check_in(
    season_id: int,
    body: CheckInRequest | None = Body(None),
    date: str | None = Query(None),
    last_login_date: str | None = Query(None, alias="lastLoginDate"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    engine: CheckInEngine = Depends(get_checkin_engine),
):
    """Check the caller into a season.

    The day may be overridden with ``date``/``lastLoginDate`` in the body or
    the query string; an unparseable override falls back to the current time.
    """
    raw = None
    if body is not None:
        raw = body.date or body.lastLoginDate
    raw = raw or date or last_login_date
    when = parse_date_override(raw)

    result = await with_deadline(db, engine.check_in(user.id, season_id, when))
    return CheckInResponse(**result.to_dict())


# ── Rewards ──


@router.get("/rewards", response_model=RewardListResponse)
async def unclaimed_rewards(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Queued milestone rewards, oldest first."""
    rewards = await list_unclaimed(db, user.id)
    return RewardListResponse(
        rewards=[RewardResponse.model_validate(r) for r in rewards],
        total_xp=sum(r.xp for r in rewards),
    )


@router.post("/rewards/claim", response_model=ClaimRewardResponse)
async def claim(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    locks: UserLockRegistry = Depends(get_locks),
):
    """Credit the oldest queued reward."""
    return await with_deadline(db, claim_reward(db, locks, user.id))
