"""Quest progress tracking, completion and reward grants."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from certlab.gamification.aggregates import ActivityAggregates
from certlab.gamification.badge_service import BadgeEvaluator
from certlab.gamification.level_thresholds import level_fields
from certlab.gamification.schemas import (
    BadgeDefinition,
    GameStats,
    QuestUpdateResult,
    UserQuestProgress,
)

if TYPE_CHECKING:
    from certlab.storage.interface import ProgressStore

logger = structlog.get_logger()

QUEST_METRICS: dict[str, Callable[[ActivityAggregates], int]] = {
    "quizzes_completed": lambda a: a.quizzes_completed,
    "questions_answered": lambda a: a.questions_answered,
    "perfect_scores": lambda a: a.perfect_scores,
    "study_streak": lambda a: a.current_streak,
    "lectures_read": lambda a: a.lectures_read,
    "total_points": lambda a: a.total_points,
}


class QuestProgressTracker:
    """Advances per-user quest progress from the user's current activity totals."""

    def __init__(self, store: ProgressStore, badges: BadgeEvaluator | None = None) -> None:
        self.store = store
        self.badges = badges or BadgeEvaluator(store)

    async def process_quest_updates(
        self,
        user_id: str,
        game_stats: GameStats,
        tenant_id: int,
        now: datetime | None = None,
    ) -> QuestUpdateResult:
        """Update progress on every active quest and grant rewards for completions.

        Completed quests are terminal and never touched again. Progress is only
        written when it advances; a metric that fell back (a reset streak) leaves
        the stored value as is. Reward points
        for all quests completed in this pass are applied as one increment,
        after every other write.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        quests = await self.store.get_active_quests()
        if not quests:
            return QuestUpdateResult()

        existing = {p.quest_id: p for p in await self.store.get_user_quest_progress(user_id, tenant_id)}
        aggregates = await self.badges.load_aggregates(user_id, tenant_id, game_stats)

        result = QuestUpdateResult()
        badge_rewards: list[int] = []

        for quest in quests:
            if not quest.is_available(now):
                continue
            progress = existing.get(quest.id) or UserQuestProgress(
                user_id=user_id, quest_id=quest.id, tenant_id=tenant_id
            )
            if progress.is_completed:
                continue

            metric = QUEST_METRICS.get(quest.requirement_type)
            if metric is None:
                logger.warning("quest_requirement_unknown", quest_id=quest.id,
                               requirement_type=quest.requirement_type)
                continue

            new_value = metric(aggregates)
            reached = new_value >= quest.target_value
            if new_value <= progress.current_value and not reached:
                continue

            await self.store.update_user_quest_progress(user_id, quest.id, new_value, tenant_id)
            if not reached:
                continue

            await self.store.complete_quest(user_id, quest.id, tenant_id)
            logger.info("quest_completed", quest_id=quest.id, reward_points=quest.reward_points)
            result.completed_quests.append(quest)
            result.points_earned += quest.reward_points

            if quest.title_reward:
                await self.store.unlock_title(
                    user_id,
                    quest.title_reward,
                    tenant_id,
                    description=f"Unlocked by completing: {quest.title}",
                    source="quest",
                )
                result.titles_unlocked.append(quest.title_reward)

            if quest.badge_reward_id is not None:
                badge_rewards.append(quest.badge_reward_id)

        if badge_rewards:
            result.badges_awarded = await self._award_reward_badges(user_id, tenant_id, badge_rewards)

        if result.points_earned:
            stats = await self.store.increment_user_game_stats(user_id, {"total_points": result.points_earned})
            await self.store.update_user_game_stats(user_id, level_fields(stats.total_points))

        return result

    async def _award_reward_badges(
        self, user_id: str, tenant_id: int, badge_ids: list[int]
    ) -> list[BadgeDefinition]:
        held = {ub.badge_id for ub in await self.store.get_user_badges(user_id, tenant_id)}
        catalog = {b.id: b for b in await self.store.get_badges()}
        to_award = []
        for badge_id in dict.fromkeys(badge_ids):
            if badge_id in held:
                continue
            badge = catalog.get(badge_id)
            if badge is None:
                logger.warning("quest_reward_badge_missing", badge_id=badge_id)
                continue
            to_award.append(badge)
        return await self.badges.award(user_id, to_award, tenant_id)
