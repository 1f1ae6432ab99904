"""SqlProgressStore against a SQLite database."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from certlab.exceptions import ConflictError, DependencyError
from certlab.gamification.engine import ProgressEngine
from certlab.gamification.requirements import HighScoreRequirement
from certlab.gamification.schemas import LectureRecord, UserBadgeAward
from tests.conftest import TENANT_ID, USER_ID, days_ago, make_quiz


def _award(badge_id: int = 1) -> UserBadgeAward:
    return UserBadgeAward(
        user_id=USER_ID,
        badge_id=badge_id,
        tenant_id=TENANT_ID,
        awarded_at=datetime.now(timezone.utc),
    )


class TestCatalog:
    @pytest.mark.asyncio
    async def test_seeded_badges_parse(self, sql_store):
        badges = await sql_store.get_badges()

        assert [b.id for b in badges] == list(range(1, 13))
        assert isinstance(badges[7].requirement, HighScoreRequirement)

    @pytest.mark.asyncio
    async def test_seeded_quests_active(self, sql_store):
        quests = await sql_store.get_active_quests()
        assert len(quests) == 9

    @pytest.mark.asyncio
    async def test_seeded_daily_rewards(self, sql_store):
        rewards = await sql_store.get_daily_rewards()
        assert [r.day for r in rewards] == [1, 2, 3, 4, 5, 6, 7]
        assert rewards[-1].streak_freeze_granted


class TestGameStats:
    @pytest.mark.asyncio
    async def test_missing_user(self, sql_store):
        assert await sql_store.get_user_game_stats("nobody") is None

    @pytest.mark.asyncio
    async def test_update_creates_row(self, sql_store):
        stats = await sql_store.update_user_game_stats(USER_ID, {"current_streak": 2})

        assert stats.current_streak == 2
        assert stats.longest_streak == 2
        assert stats.total_points == 0
        assert stats.streak_freezes == 1

    @pytest.mark.asyncio
    async def test_increments_accumulate(self, sql_store):
        for _ in range(4):
            stats = await sql_store.increment_user_game_stats(USER_ID, {"total_points": 25})

        assert stats.total_points == 100
        assert (await sql_store.get_user_game_stats(USER_ID)).total_points == 100

    @pytest.mark.asyncio
    async def test_increment_after_losing_create_race(self, sql_store, monkeypatch):
        await sql_store.update_user_game_stats(USER_ID, {"current_streak": 1})

        # The first lookup misses, as if another writer inserted the row
        # between our SELECT and INSERT
        real_get = AsyncSession.get
        calls = []

        async def stale_get(self, *args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await real_get(self, *args, **kwargs)

        monkeypatch.setattr(AsyncSession, "get", stale_get)

        stats = await sql_store.increment_user_game_stats(USER_ID, {"total_points": 15})

        assert stats.total_points == 15
        assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_increment_rejects_non_counter(self, sql_store):
        with pytest.raises(ValueError, match="Not counter fields"):
            await sql_store.increment_user_game_stats(USER_ID, {"level": 1})

    @pytest.mark.asyncio
    async def test_datetimes_come_back_utc(self, sql_store):
        when = days_ago(2)
        await sql_store.update_user_game_stats(USER_ID, {"last_activity_date": when})

        stats = await sql_store.get_user_game_stats(USER_ID)
        assert stats.last_activity_date == when
        assert stats.last_activity_date.tzinfo is not None


class TestUniqueness:
    @pytest.mark.asyncio
    async def test_duplicate_badge_is_conflict(self, sql_store):
        await sql_store.create_user_badge(_award())

        with pytest.raises(ConflictError):
            await sql_store.create_user_badge(_award())
        assert len(await sql_store.get_user_badges(USER_ID, TENANT_ID)) == 1

    @pytest.mark.asyncio
    async def test_same_badge_other_tenant_allowed(self, sql_store):
        await sql_store.create_user_badge(_award())
        await sql_store.create_user_badge(_award().model_copy(update={"tenant_id": 2}))

        assert len(await sql_store.get_user_badges(USER_ID, 2)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_daily_claim_is_conflict(self, sql_store):
        await sql_store.create_user_daily_reward(USER_ID, 1, TENANT_ID)

        with pytest.raises(ConflictError):
            await sql_store.create_user_daily_reward(USER_ID, 1, TENANT_ID)

    @pytest.mark.asyncio
    async def test_title_unlock_idempotent(self, sql_store):
        await sql_store.unlock_title(USER_ID, "Perfectionist", TENANT_ID)
        await sql_store.unlock_title(USER_ID, "Perfectionist", TENANT_ID)

        titles = await sql_store.get_user_titles(USER_ID, TENANT_ID)
        assert [t.title for t in titles] == ["Perfectionist"]


class TestQuestProgressRows:
    @pytest.mark.asyncio
    async def test_progress_then_complete(self, sql_store):
        await sql_store.update_user_quest_progress(USER_ID, 1, 2, TENANT_ID)
        await sql_store.complete_quest(USER_ID, 1, TENANT_ID)

        [progress] = await sql_store.get_user_quest_progress(USER_ID, TENANT_ID)
        assert progress.current_value == 2
        assert progress.is_completed
        assert progress.completed_at is not None


class TestFailures:
    @pytest.mark.asyncio
    async def test_driver_error_is_dependency_error(self, sql_store, monkeypatch):
        def fail(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

        monkeypatch.setattr(sql_store, "_session_factory", fail)

        with pytest.raises(DependencyError):
            await sql_store.get_user_game_stats(USER_ID)


class TestEngineOnSql:
    @pytest.fixture
    def sql_engine(self, sql_store, settings):
        return ProgressEngine(sql_store, settings)

    @pytest.mark.asyncio
    async def test_perfect_quiz(self, sql_engine, sql_store):
        quiz = make_quiz(score=100, correct=10)
        await sql_store.add_quiz(USER_ID, quiz)

        result = await sql_engine.process_quiz_completion(USER_ID, quiz)

        assert result.points_earned == 135
        assert sorted(b.id for b in result.new_badges) == [1, 6, 8]
        assert result.titles_unlocked == ["Perfectionist"]
        assert result.quest_points_earned == 100

        stats = await sql_store.get_user_game_stats(USER_ID)
        assert stats.total_points == 235
        assert stats.level == 3
        assert stats.total_badges_earned == 3
        assert stats.current_streak == 1

    @pytest.mark.asyncio
    async def test_second_quiz_no_duplicates(self, sql_engine, sql_store):
        for _ in range(2):
            quiz = make_quiz(score=100, correct=10)
            await sql_store.add_quiz(USER_ID, quiz)
            result = await sql_engine.process_quiz_completion(USER_ID, quiz)

        assert result.new_badges == []
        # Second quiz brings correct answers to 20
        assert [q.id for q in result.completed_quests] == [2]
        assert len(await sql_store.get_user_badges(USER_ID, TENANT_ID)) == 3

    @pytest.mark.asyncio
    async def test_lecture_and_daily_reward(self, sql_engine, sql_store):
        await sql_store.add_lecture(USER_ID, LectureRecord(is_read=True))
        lecture = await sql_engine.process_lecture_read(USER_ID)
        assert [b.id for b in lecture.new_badges] == [4]

        status = await sql_engine.process_daily_login(USER_ID)
        reward = await sql_engine.claim_daily_reward(USER_ID, status.day)

        with pytest.raises(ConflictError):
            await sql_engine.claim_daily_reward(USER_ID, status.day)

        stats = await sql_store.get_user_game_stats(USER_ID)
        assert stats.total_points == 5 + reward.points_earned
        assert stats.consecutive_login_days == 1
