"""Per-user lock registry."""

import asyncio
import gc

import pytest

from certlab.gamification.locks import UserLockRegistry


class TestUserLockRegistry:
    @pytest.mark.asyncio
    async def test_same_user_serialized(self):
        registry = UserLockRegistry()
        events = []

        async def work(name):
            async with registry.hold("user-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(work("a"), work("b"))

        assert events == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_users_interleave(self):
        registry = UserLockRegistry()
        events = []

        async def work(user_id):
            async with registry.hold(user_id):
                events.append(f"{user_id}-start")
                await asyncio.sleep(0.01)
                events.append(f"{user_id}-end")

        await asyncio.gather(work("u1"), work("u2"))

        assert events[:2] == ["u1-start", "u2-start"]

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        registry = UserLockRegistry()
        async with registry.hold("user-1"):
            assert len(registry) == 1
        gc.collect()
        assert len(registry) == 0
