"""Friend endpoints backing the challenge friendship check."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.auth.dependencies import get_current_user
from streakbet.database import get_session
from streakbet.db.models import User
from streakbet.users.schemas import FriendListResponse, FriendResponse
from streakbet.users.service import add_friendship, list_friends

router = APIRouter(prefix="/api/v1", tags=["Friends"])


@router.get("/friends", response_model=FriendListResponse)
async def get_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    friends = await list_friends(db, user.id)
    return FriendListResponse(friends=[FriendResponse.model_validate(f) for f in friends])


@router.post("/friends/{friend_id}", status_code=201)
async def befriend(
    friend_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Create a mutual friendship with another user."""
    try:
        created = await add_friendship(db, user.id, friend_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return {"detail": "Friend added" if created else "Already friends"}
