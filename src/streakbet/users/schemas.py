"""Pydantic models for user and friend endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    role: str
    overall_streak: int
    last_login_date: datetime | None = None
    xp: int


class FriendResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    overall_streak: int


class FriendListResponse(BaseModel):
    friends: list[FriendResponse]
