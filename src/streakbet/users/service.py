"""User queries, row locking and friendships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from streakbet.db.models import Friendship, User
from streakbet.errors import NotFoundError, RuleViolationError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_for_update(db: AsyncSession, user_id: int, label: str = "User") -> User:
    """Load a user row with a row lock, refreshing any copy already in the session.

    Raises NotFoundError when the user does not exist.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"{label} not found")
    return user


async def are_friends(db: AsyncSession, user_id: int, friend_id: int) -> bool:
    result = await db.execute(
        select(Friendship).where(Friendship.user_id == user_id, Friendship.friend_id == friend_id)
    )
    return result.scalar_one_or_none() is not None


async def add_friendship(db: AsyncSession, user_id: int, friend_id: int) -> bool:
    """Create a mutual friendship. Returns False if it already existed."""
    if user_id == friend_id:
        raise RuleViolationError("You cannot befriend yourself")
    if await get_user_by_id(db, friend_id) is None:
        raise NotFoundError("Friend not found")
    if await are_friends(db, user_id, friend_id):
        return False

    db.add(Friendship(user_id=user_id, friend_id=friend_id))
    if not await are_friends(db, friend_id, user_id):
        db.add(Friendship(user_id=friend_id, friend_id=user_id))
    await db.flush()
    return True


async def list_friends(db: AsyncSession, user_id: int) -> list[User]:
    result = await db.execute(
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(User.username)
    )
    return list(result.scalars().all())
