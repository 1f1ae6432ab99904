"""Per-user serialization of orchestration calls within one process."""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class UserLockRegistry:
    """Hands out one ``asyncio.Lock`` per user id.

    Locks are only kept alive while some call holds or awaits them, so the
    registry does not grow with the number of users ever seen.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._lock_for(user_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
