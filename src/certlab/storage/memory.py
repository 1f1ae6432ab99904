"""In-process ProgressStore backed by dicts.

Used by tests and by hosts that keep progress client-side. Uniqueness rules
are enforced with keyed dicts, the same keys the SQL store puts unique
constraints on.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from certlab.exceptions import ConflictError
from certlab.gamification.schemas import (
    COUNTER_FIELDS,
    BadgeDefinition,
    DailyRewardDefinition,
    GameStats,
    LectureRecord,
    QuestDefinition,
    QuizRecord,
    UserBadgeAward,
    UserDailyRewardClaim,
    UserQuestProgress,
    UserTitle,
)
from certlab.gamification.seed import default_daily_rewards


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProgressStore:
    """Dict-backed store. All reads return copies."""

    def __init__(
        self,
        badges: Iterable[BadgeDefinition] = (),
        quests: Iterable[QuestDefinition] = (),
        daily_rewards: Iterable[DailyRewardDefinition] = (),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.badges: list[BadgeDefinition] = list(badges)
        self.quests: list[QuestDefinition] = list(quests)
        self.daily_rewards: list[DailyRewardDefinition] = list(daily_rewards)
        self.clock = clock

        self.game_stats: dict[str, GameStats] = {}
        self.quizzes: dict[tuple[str, int], list[QuizRecord]] = defaultdict(list)
        self.lectures: dict[tuple[str, int], list[LectureRecord]] = defaultdict(list)
        self.user_badges: dict[tuple[str, int, int], UserBadgeAward] = {}
        self.quest_progress: dict[tuple[str, int, int], UserQuestProgress] = {}
        self.titles: dict[tuple[str, str, int], UserTitle] = {}
        self.daily_claims: dict[tuple[str, int, int], UserDailyRewardClaim] = {}

    # --- Activity history (written by the quiz/lecture features) ---

    async def add_quiz(self, user_id: str, quiz: QuizRecord, tenant_id: int = 1) -> QuizRecord:
        self.quizzes[(user_id, tenant_id)].append(quiz)
        return quiz

    async def add_lecture(self, user_id: str, lecture: LectureRecord, tenant_id: int = 1) -> LectureRecord:
        self.lectures[(user_id, tenant_id)].append(lecture)
        return lecture

    # --- Game stats ---

    async def get_user_game_stats(self, user_id: str) -> GameStats | None:
        stats = self.game_stats.get(user_id)
        return stats.model_copy() if stats is not None else None

    async def update_user_game_stats(self, user_id: str, changes: Mapping[str, Any]) -> GameStats:
        current = self.game_stats.get(user_id) or GameStats(user_id=user_id)
        merged = {**current.model_dump(), **changes, "user_id": user_id, "updated_at": self.clock()}
        self.game_stats[user_id] = GameStats.model_validate(merged)
        return self.game_stats[user_id].model_copy()

    async def increment_user_game_stats(self, user_id: str, deltas: Mapping[str, int]) -> GameStats:
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            msg = f"Not counter fields: {sorted(unknown)}"
            raise ValueError(msg)
        current = self.game_stats.get(user_id) or GameStats(user_id=user_id)
        changes = {field: getattr(current, field) + delta for field, delta in deltas.items()}
        return await self.update_user_game_stats(user_id, changes)

    # --- Badges ---

    async def get_badges(self) -> list[BadgeDefinition]:
        return list(self.badges)

    async def get_user_badges(self, user_id: str, tenant_id: int) -> list[UserBadgeAward]:
        return [
            award.model_copy()
            for (uid, tid, _), award in self.user_badges.items()
            if uid == user_id and tid == tenant_id
        ]

    async def create_user_badge(self, award: UserBadgeAward) -> UserBadgeAward:
        key = (award.user_id, award.tenant_id, award.badge_id)
        if key in self.user_badges:
            msg = f"Badge {award.badge_id} already awarded to {award.user_id}"
            raise ConflictError(msg)
        self.user_badges[key] = award.model_copy()
        return award

    # --- Activity history ---

    async def get_user_quizzes(self, user_id: str, tenant_id: int) -> list[QuizRecord]:
        return [q.model_copy() for q in self.quizzes.get((user_id, tenant_id), [])]

    async def get_user_lectures(self, user_id: str, tenant_id: int) -> list[LectureRecord]:
        return [lec.model_copy() for lec in self.lectures.get((user_id, tenant_id), [])]

    # --- Quests & titles ---

    async def get_active_quests(self) -> list[QuestDefinition]:
        now = self.clock()
        return [q for q in self.quests if q.is_available(now)]

    async def get_user_quest_progress(self, user_id: str, tenant_id: int) -> list[UserQuestProgress]:
        return [
            progress.model_copy()
            for (uid, tid, _), progress in self.quest_progress.items()
            if uid == user_id and tid == tenant_id
        ]

    async def update_user_quest_progress(
        self, user_id: str, quest_id: int, new_value: int, tenant_id: int
    ) -> None:
        key = (user_id, tenant_id, quest_id)
        progress = self.quest_progress.get(key) or UserQuestProgress(
            user_id=user_id, quest_id=quest_id, tenant_id=tenant_id
        )
        progress.current_value = new_value
        self.quest_progress[key] = progress

    async def complete_quest(self, user_id: str, quest_id: int, tenant_id: int) -> None:
        key = (user_id, tenant_id, quest_id)
        progress = self.quest_progress.get(key) or UserQuestProgress(
            user_id=user_id, quest_id=quest_id, tenant_id=tenant_id
        )
        progress.is_completed = True
        progress.completed_at = self.clock()
        self.quest_progress[key] = progress

    async def unlock_title(
        self, user_id: str, title: str, tenant_id: int, description: str = "", source: str = "quest"
    ) -> None:
        key = (user_id, title, tenant_id)
        if key in self.titles:
            return
        self.titles[key] = UserTitle(
            user_id=user_id,
            tenant_id=tenant_id,
            title=title,
            description=description,
            source=source,
            unlocked_at=self.clock(),
        )

    async def get_user_titles(self, user_id: str, tenant_id: int) -> list[UserTitle]:
        return [
            t.model_copy()
            for (uid, _, tid), t in self.titles.items()
            if uid == user_id and tid == tenant_id
        ]

    # --- Daily rewards ---

    async def get_daily_rewards(self) -> list[DailyRewardDefinition]:
        rewards = self.daily_rewards or default_daily_rewards()
        return sorted(rewards, key=lambda r: r.day)

    async def get_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int
    ) -> UserDailyRewardClaim | None:
        return self.daily_claims.get((user_id, day, tenant_id))

    async def create_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int, reward: DailyRewardDefinition | None = None
    ) -> None:
        key = (user_id, day, tenant_id)
        if key in self.daily_claims:
            msg = f"Daily reward for day {day} has already been claimed"
            raise ConflictError(msg)
        self.daily_claims[key] = UserDailyRewardClaim(
            user_id=user_id,
            day=day,
            tenant_id=tenant_id,
            claimed_at=self.clock(),
            points=reward.points if reward else 0,
            streak_freeze_granted=reward.streak_freeze_granted if reward else False,
        )
