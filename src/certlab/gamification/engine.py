"""Progress engine — turns study events into points, streaks, badges and quests.

Each public call runs as a strict sequence of store reads and writes. Writes
are committed step by step: if a step fails, the error propagates and the
earlier writes stay applied. Callers must not blindly retry a failed
``process_quiz_completion``, since the points step may already have committed.
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from certlab.config import Settings, get_settings
from certlab.exceptions import ValidationError
from certlab.gamification.badge_service import BadgeEvaluator
from certlab.gamification.daily_rewards import DailyRewardClaimer
from certlab.gamification.level_thresholds import compute_level, level_fields
from certlab.gamification.locks import UserLockRegistry
from certlab.gamification.points import LECTURE_READ_POINTS, calculate_quiz_points
from certlab.gamification.quest_service import QuestProgressTracker
from certlab.gamification.schemas import (
    BadgeProgressEntry,
    DailyLoginStatus,
    DailyRewardResult,
    GameStats,
    LectureReadResult,
    QuestUpdateResult,
    QuizCompletionResult,
    QuizRecord,
    UserTitle,
)
from certlab.gamification.streak_service import GapHandler, compute_streak

if TYPE_CHECKING:
    from certlab.storage.interface import ProgressStore

logger = structlog.get_logger()

LECTURE_BADGE_KINDS = frozenset({"lectures_read"})


class ProgressEngine:
    """Entry point for quiz, lecture and login events."""

    def __init__(
        self,
        store: ProgressStore,
        settings: Settings | None = None,
        locks: UserLockRegistry | None = None,
        on_streak_gap: GapHandler | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.locks = locks or UserLockRegistry()
        self.on_streak_gap = on_streak_gap
        self.badges = BadgeEvaluator(store)
        self.quests = QuestProgressTracker(store, self.badges)
        self.daily_rewards = DailyRewardClaimer(store, self.settings)

    def _tenant(self, tenant_id: int | None) -> int:
        return self.settings.default_tenant_id if tenant_id is None else tenant_id

    async def _enter(self, stack: AsyncExitStack, user_id: str, tenant_id: int) -> None:
        stack.enter_context(structlog.contextvars.bound_contextvars(user_id=user_id, tenant_id=tenant_id))
        if self.settings.serialize_per_user:
            await stack.enter_async_context(self.locks.hold(user_id))

    async def _get_stats(self, user_id: str) -> GameStats:
        return await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)

    # --- Quiz completion ---

    async def process_quiz_completion(
        self,
        user_id: str,
        quiz: QuizRecord,
        tenant_id: int | None = None,
        now: datetime | None = None,
    ) -> QuizCompletionResult:
        """Score a finished quiz and apply everything that follows from it.

        Steps, in order: points, streak, game stats write, badge evaluation
        and award (with the badge count bump), then quests.
        """
        tenant_id = self._tenant(tenant_id)
        if now is None:
            now = datetime.now(timezone.utc)

        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)

            points_earned = calculate_quiz_points(quiz)
            before = await self._get_stats(user_id)

            streak = compute_streak(before.last_activity_date, now, before.current_streak, self.on_streak_gap)
            if streak.streak_broken:
                logger.info("streak_broken", previous_streak=before.current_streak)

            stats = before
            if points_earned:
                stats = await self.store.increment_user_game_stats(user_id, {"total_points": points_earned})
            stats = await self.store.update_user_game_stats(
                user_id,
                {
                    "current_streak": streak.current_streak,
                    "longest_streak": max(stats.longest_streak, streak.current_streak),
                    "last_activity_date": now,
                    **level_fields(stats.total_points),
                },
            )

            new_badges = await self.badges.check_and_award(user_id, tenant_id, stats)

            quest_result = QuestUpdateResult()
            if self.settings.process_quests_on_quiz_completion:
                stats = await self._get_stats(user_id)
                quest_result = await self.quests.process_quest_updates(user_id, stats, tenant_id, now)
                new_badges += quest_result.badges_awarded

            final = await self._get_stats(user_id)
            new_level = compute_level(final.total_points).level
            level_up = new_level > before.level
            if level_up:
                logger.info("level_up", old_level=before.level, new_level=new_level)

            logger.info(
                "quiz_processed",
                points_earned=points_earned,
                current_streak=streak.current_streak,
                new_badges=len(new_badges),
                completed_quests=len(quest_result.completed_quests),
            )
            return QuizCompletionResult(
                points_earned=points_earned,
                new_badges=new_badges,
                level_up=level_up,
                new_level=new_level,
                completed_quests=quest_result.completed_quests,
                titles_unlocked=quest_result.titles_unlocked,
                quest_points_earned=quest_result.points_earned,
            )

    # --- Lecture read ---

    async def process_lecture_read(
        self,
        user_id: str,
        tenant_id: int | None = None,
        now: datetime | None = None,
    ) -> LectureReadResult:
        """Award the fixed lecture points and check lecture badges only.

        Records the read as the last activity. The streak count is left alone.
        """
        tenant_id = self._tenant(tenant_id)
        if now is None:
            now = datetime.now(timezone.utc)

        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)

            stats = await self.store.increment_user_game_stats(user_id, {"total_points": LECTURE_READ_POINTS})
            stats = await self.store.update_user_game_stats(
                user_id,
                {"last_activity_date": now, **level_fields(stats.total_points)},
            )

            new_badges = await self.badges.check_and_award(user_id, tenant_id, stats, kinds=LECTURE_BADGE_KINDS)
            logger.info("lecture_processed", points_earned=LECTURE_READ_POINTS, new_badges=len(new_badges))
            return LectureReadResult(points_earned=LECTURE_READ_POINTS, new_badges=new_badges)

    # --- Reads ---

    async def get_badge_progress(self, user_id: str, tenant_id: int | None = None) -> list[BadgeProgressEntry]:
        return await self.badges.get_badge_progress(user_id, self._tenant(tenant_id))

    async def get_user_titles(self, user_id: str, tenant_id: int | None = None) -> list[UserTitle]:
        return await self.store.get_user_titles(user_id, self._tenant(tenant_id))

    # --- Quests, rewards, titles ---

    async def process_quest_updates(
        self,
        user_id: str,
        game_stats: GameStats | None = None,
        tenant_id: int | None = None,
        now: datetime | None = None,
    ) -> QuestUpdateResult:
        tenant_id = self._tenant(tenant_id)
        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)
            if game_stats is None:
                game_stats = await self._get_stats(user_id)
            return await self.quests.process_quest_updates(user_id, game_stats, tenant_id, now)

    async def claim_daily_reward(self, user_id: str, day: int, tenant_id: int | None = None) -> DailyRewardResult:
        tenant_id = self._tenant(tenant_id)
        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)
            return await self.daily_rewards.claim_daily_reward(user_id, day, tenant_id)

    async def process_daily_login(
        self,
        user_id: str,
        tenant_id: int | None = None,
        now: datetime | None = None,
    ) -> DailyLoginStatus:
        tenant_id = self._tenant(tenant_id)
        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)
            return await self.daily_rewards.process_daily_login(user_id, tenant_id, now)

    async def set_selected_title(self, user_id: str, title: str | None, tenant_id: int | None = None) -> GameStats:
        """Select one of the user's unlocked titles, or clear the selection with None."""
        tenant_id = self._tenant(tenant_id)
        async with AsyncExitStack() as stack:
            await self._enter(stack, user_id, tenant_id)
            if title is not None:
                unlocked = {t.title for t in await self.store.get_user_titles(user_id, tenant_id)}
                if title not in unlocked:
                    msg = f"Title not unlocked: {title}"
                    raise ValidationError(msg)
            return await self.store.update_user_game_stats(user_id, {"selected_title": title})
