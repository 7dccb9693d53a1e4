"""Request deadline for engine calls made from the HTTP layer."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from streakbet.config import get_settings

logger = structlog.get_logger()

T = TypeVar("T")


async def with_deadline(db: AsyncSession, awaitable: Awaitable[T], seconds: float | None = None) -> T:
    """Await ``awaitable`` within the request timeout, answering 504 on expiry.

    The cancelled call leaves its transaction open, so it is rolled back here.
    """
    timeout = seconds if seconds is not None else get_settings().request_timeout_seconds
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        await db.rollback()
        logger.warning("request_deadline_exceeded", timeout=timeout)
        raise HTTPException(status_code=504, detail="Request timed out") from None
