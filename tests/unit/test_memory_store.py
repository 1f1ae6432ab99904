"""InMemoryProgressStore behaviour shared with the SQL store."""

from datetime import datetime, timedelta, timezone

import pytest

from certlab.exceptions import ConflictError
from certlab.gamification.schemas import DailyRewardDefinition, QuestDefinition
from certlab.storage import InMemoryProgressStore, ProgressStore
from tests.conftest import TENANT_ID, USER_ID


def test_satisfies_protocol(store):
    assert isinstance(store, ProgressStore)


class TestGameStats:
    @pytest.mark.asyncio
    async def test_reads_are_copies(self, store):
        await store.update_user_game_stats(USER_ID, {"total_points": 10})
        stats = await store.get_user_game_stats(USER_ID)
        stats.total_points = 9999

        assert (await store.get_user_game_stats(USER_ID)).total_points == 10

    @pytest.mark.asyncio
    async def test_increment_only_counters(self, store):
        with pytest.raises(ValueError, match="Not counter fields"):
            await store.increment_user_game_stats(USER_ID, {"current_streak": 1})

    @pytest.mark.asyncio
    async def test_updated_at_stamped(self, store):
        stats = await store.update_user_game_stats(USER_ID, {"selected_title": None})
        assert stats.updated_at is not None


class TestDailyRewards:
    @pytest.mark.asyncio
    async def test_defaults_when_unconfigured(self, store):
        rewards = await store.get_daily_rewards()
        assert [r.points for r in rewards] == [10, 15, 20, 25, 30, 40, 50]

    @pytest.mark.asyncio
    async def test_configured_rewards_sorted(self):
        store = InMemoryProgressStore(
            daily_rewards=[DailyRewardDefinition(day=2, points=5), DailyRewardDefinition(day=1, points=1)]
        )
        assert [r.day for r in await store.get_daily_rewards()] == [1, 2]

    @pytest.mark.asyncio
    async def test_duplicate_claim(self, store):
        await store.create_user_daily_reward(USER_ID, 1, TENANT_ID)
        with pytest.raises(ConflictError):
            await store.create_user_daily_reward(USER_ID, 1, TENANT_ID)
        await store.create_user_daily_reward(USER_ID, 1, 2)


class TestQuests:
    @pytest.mark.asyncio
    async def test_active_quests_follow_clock(self):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        quest = QuestDefinition(
            id=1,
            title="Spring",
            requirement_type="quizzes_completed",
            target_value=1,
            valid_from=start,
            valid_until=start + timedelta(days=7),
        )
        now = [start - timedelta(days=1)]
        store = InMemoryProgressStore(quests=[quest], clock=lambda: now[0])

        assert await store.get_active_quests() == []
        now[0] = start + timedelta(days=3)
        assert [q.id for q in await store.get_active_quests()] == [1]
        now[0] = start + timedelta(days=8)
        assert await store.get_active_quests() == []
