"""Authentication API endpoints: register, login, me."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.auth.dependencies import get_current_user
from streakbet.auth.jwt import create_access_token
from streakbet.auth.schemas import AuthResponse, LoginRequest, RegisterRequest
from streakbet.auth.service import authenticate_user, record_daily_login, register_user
from streakbet.database import get_session
from streakbet.db.models import User
from streakbet.streaks.calendar import parse_date_override
from streakbet.streaks.locks import get_lock_registry
from streakbet.users.schemas import UserResponse
from streakbet.users.service import get_user_for_update

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_session)):
    try:
        user = await register_user(db, body.username, body.email, body.password)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    token = create_access_token(user.id, user.role)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_session)):
    """Verify credentials and record today's login on the global streak."""
    user = await authenticate_user(db, body.email, body.password)
    when = parse_date_override(body.date)

    async with get_lock_registry().hold(user.id):
        try:
            user = await get_user_for_update(db, user.id)
            record_daily_login(db, user, when)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    token = create_access_token(user.id, user.role)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)
