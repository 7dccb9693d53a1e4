"""Admin season management: 4 routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.auth.dependencies import require_admin
from streakbet.database import get_session
from streakbet.db.models import User
from streakbet.streaks import season_service
from streakbet.streaks.schemas import SeasonCreateRequest, SeasonResponse, SeasonUpdateRequest

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


@router.get("/seasons", response_model=list[SeasonResponse])
async def list_all_seasons(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Every season, including disabled ones, newest start first."""
    return await season_service.list_seasons(db, include_inactive=True)


@router.post("/seasons", response_model=SeasonResponse, status_code=201)
async def create_season(
    body: SeasonCreateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await season_service.create_season(
        db, body.name, body.start_date, body.end_date, description=body.description
    )


@router.put("/seasons/{season_id}", response_model=SeasonResponse)
async def update_season(
    season_id: int,
    body: SeasonUpdateRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return await season_service.update_season(db, season_id, body.model_dump(exclude_unset=True))


@router.delete("/seasons/{season_id}")
async def delete_season(
    season_id: int,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await season_service.delete_season(db, season_id)
    return {"detail": "Season deleted"}
