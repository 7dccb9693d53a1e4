"""Shared test fixtures.

Each test gets a fresh SQLite database file (aiosqlite) with the schema
created from the ORM metadata. Redis is never initialized, so notification
pushes are skipped and rate limiting passes requests through.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, datetime, timedelta, timezone

os.environ.setdefault("STREAKBET_JWT_SECRET", "test-secret-0123456789abcdef0123456789")
os.environ.setdefault("STREAKBET_LOG_FORMAT", "console")
os.environ.setdefault("STREAKBET_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import get_settings
from streakbet.database import close_db, get_engine, get_session, init_db
from streakbet.db.base import Base
from streakbet.db.models import Friendship, Season, User
from streakbet.notifications.sink import NotificationSink
from streakbet.streaks.checkin_service import CheckInEngine
from streakbet.streaks.locks import UserLockRegistry
from streakbet.wagers.bet_service import BetService
from streakbet.wagers.challenge_service import ChallengeService
from streakbet.wagers.resolution import WagerResolver


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Initialize a fresh file-backed SQLite database for one test."""
    get_settings.cache_clear()
    url = f"sqlite+aiosqlite:///{tmp_path / 'streakbet.db'}"
    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield url
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: str) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for services and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    yield session
    await sessions.aclose()


@pytest_asyncio.fixture
async def client(database: str) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the ASGI app, sharing the test database."""
    from streakbet.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def locks() -> UserLockRegistry:
    return UserLockRegistry()


class Engines:
    """Engines wired around one session, as the HTTP dependencies build them."""

    def __init__(self, db: AsyncSession, locks: UserLockRegistry) -> None:
        self.db = db
        self.locks = locks
        self.notifier = NotificationSink(db)
        self.resolver = WagerResolver(db, self.notifier)
        self.checkin = CheckInEngine(db, self.resolver, self.notifier, locks)
        self.bets = BetService(db, self.resolver, self.notifier, locks)
        self.challenges = ChallengeService(db, self.resolver, self.notifier, locks)


@pytest.fixture
def engines(db_session: AsyncSession, locks: UserLockRegistry) -> Engines:
    return Engines(db_session, locks)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(
        username: str | None = None,
        xp: int = 0,
        overall_streak: int = 0,
        last_login_date: datetime | None = None,
        role: str = "user",
    ) -> User:
        counter["n"] += 1
        name = username or f"player{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash=None,
            role=role,
            xp=xp,
            overall_streak=overall_streak,
            last_login_date=last_login_date,
            last_streak_login_at=last_login_date,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_season(db_session: AsyncSession) -> Callable[..., Awaitable[Season]]:
    async def _make(
        start: date | None = None,
        end: date | None = None,
        name: str = "Season",
        is_active: bool = True,
    ) -> Season:
        today = datetime.now(timezone.utc).date()
        season = Season(
            name=name,
            start_date=start or today - timedelta(days=30),
            end_date=end or today + timedelta(days=30),
            is_active=is_active,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(season)
        await db_session.commit()
        return season

    return _make


@pytest.fixture
def befriend(db_session: AsyncSession) -> Callable[[int, int], Awaitable[None]]:
    async def _befriend(a: int, b: int) -> None:
        db_session.add_all([Friendship(user_id=a, friend_id=b), Friendship(user_id=b, friend_id=a)])
        await db_session.commit()

    return _befriend
