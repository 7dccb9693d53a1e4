"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from streakbet.auth.router import router as auth_router
from streakbet.config import get_settings
from streakbet.database import close_db, init_db
from streakbet.health.router import router as health_router
from streakbet.middleware import setup_middleware
from streakbet.notifications.router import router as notifications_router
from streakbet.redis_client import close_redis, init_redis
from streakbet.streaks.admin_router import router as admin_router
from streakbet.streaks.router import router as seasons_router
from streakbet.users.router import router as users_router
from streakbet.wagers.router import router as wagers_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    try:
        await init_redis(settings.redis_url)
    except Exception:
        logger.warning("Redis unavailable; notifications will not be pushed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Streakbet API",
        description="Daily check-in streaks, seasons and XP wagers",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(seasons_router)
    app.include_router(admin_router)
    app.include_router(wagers_router)
    app.include_router(notifications_router)

    return app


app = create_app()
