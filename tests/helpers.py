"""Small helpers shared by test modules."""

from __future__ import annotations

from datetime import datetime, timezone

from streakbet.auth.jwt import create_access_token
from streakbet.db.models import User

TEST_PASSWORD = "Streak1234"


def utc(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, 0, 0, tzinfo=timezone.utc)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
