"""
Authentication business logic.

Handles user registration, credential checks and the daily login streak.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from streakbet.auth.password import hash_password, validate_password_strength, verify_password
from streakbet.db.models import User
from streakbet.errors import RuleViolationError
from streakbet.streaks.calendar import as_utc, day_delta, utcnow
from streakbet.streaks.rewards import enqueue_rewards, global_streak_rewards

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    username: str,
    email: str,
    password: str,
    role: str = "user",
) -> User:
    """
    Register a new user. All counters start at zero.

    Raises:
        RuleViolationError: If username/email is taken or the password is weak.
    """
    validate_password_strength(password)

    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise RuleViolationError(msg)
    if await get_user_by_username(db, username) is not None:
        msg = "Username already taken"
        raise RuleViolationError(msg)

    user = User(
        username=username,
        email=email.lower().strip(),
        password_hash=hash_password(password),
        role=role,
        overall_streak=0,
        last_login_date=None,
        last_streak_login_at=None,
        xp=0,
        created_at=utcnow(),
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, username=username)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Verify email + password.

    Raises:
        RuleViolationError: If credentials are invalid.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash or ""):
        msg = "Invalid email or password"
        raise RuleViolationError(msg)
    return user


def record_daily_login(db: AsyncSession, user: User, when: datetime | None = None) -> int:
    """Advance the global login streak for ``when`` and queue milestone rewards.

    The gap is measured against ``last_streak_login_at``, which only logins
    move, so a check-in earlier the same day does not hide the increment.
    Admins keep their streak untouched. Both login timestamps are always set.
    Returns the user's overall streak after the update.
    """
    effective = as_utc(when) if when is not None else utcnow()

    if not user.is_admin:
        incremented = False
        if user.last_streak_login_at is not None:
            diff_days = day_delta(effective, user.last_streak_login_at)
            if diff_days == 1:
                user.overall_streak += 1
                incremented = True
            elif diff_days > 1:
                user.overall_streak = 1
        else:
            user.overall_streak = 1
            incremented = True

        if incremented:
            enqueue_rewards(db, user.id, global_streak_rewards(user.overall_streak), effective)

    user.last_streak_login_at = effective
    user.last_login_date = effective
    return user.overall_streak
