"""Middleware registration."""

from fastapi import FastAPI

from streakbet.config import Settings
from streakbet.middleware.cors import setup_cors
from streakbet.middleware.error_handler import setup_error_handlers
from streakbet.middleware.logging import setup_logging
from streakbet.middleware.rate_limit import RateLimitMiddleware
from streakbet.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS stays outermost so 429 responses still carry CORS headers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
