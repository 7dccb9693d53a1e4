"""Per-user serialization boundary for streak and wager mutations.

Every operation that mutates a user's streak or XP holds that user's lock.
Multi-user operations acquire locks in ascending id order so two concurrent
operations over the same pair of users cannot deadlock.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UserLockRegistry:
    """In-process asyncio locks keyed by user id, reclaimed when idle."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        self._waiters: dict[int, int] = {}

    def _checkout(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        return lock

    def _release(self, user_id: int) -> None:
        remaining = self._waiters[user_id] - 1
        if remaining:
            self._waiters[user_id] = remaining
        else:
            del self._waiters[user_id]
            del self._locks[user_id]

    @asynccontextmanager
    async def hold(self, *user_ids: int | None) -> AsyncIterator[None]:
        """Hold the locks of all given users (None entries are ignored)."""
        ordered = sorted({uid for uid in user_ids if uid is not None})
        locks = [self._checkout(uid) for uid in ordered]
        acquired: list[asyncio.Lock] = []
        try:
            for lock in locks:
                await lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for uid in ordered:
                self._release(uid)

    def is_held(self, user_id: int) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


_registry = UserLockRegistry()


def get_lock_registry() -> UserLockRegistry:
    """Process-wide registry shared by every request."""
    return _registry
