"""Persistence contract consumed by the progress engine.

Every method is a suspension point. Implementations own durability and the
uniqueness rules: a second badge award or daily claim for the same key must
raise ``ConflictError`` regardless of what the engine believed it had already
checked. Unlocking a title twice is a no-op.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from certlab.gamification.schemas import (
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


@runtime_checkable
class ProgressStore(Protocol):
    # --- Game stats ---

    async def get_user_game_stats(self, user_id: str) -> GameStats | None: ...

    async def update_user_game_stats(self, user_id: str, changes: Mapping[str, Any]) -> GameStats:
        """Overwrite the given fields, creating the row on first write."""
        ...

    async def increment_user_game_stats(self, user_id: str, deltas: Mapping[str, int]) -> GameStats:
        """Add ``deltas`` to counter fields in one atomic step and return the new row."""
        ...

    # --- Badges ---

    async def get_badges(self) -> list[BadgeDefinition]: ...

    async def get_user_badges(self, user_id: str, tenant_id: int) -> list[UserBadgeAward]: ...

    async def create_user_badge(self, award: UserBadgeAward) -> UserBadgeAward: ...

    # --- Activity history ---

    async def get_user_quizzes(self, user_id: str, tenant_id: int) -> list[QuizRecord]: ...

    async def get_user_lectures(self, user_id: str, tenant_id: int) -> list[LectureRecord]: ...

    # --- Quests & titles ---

    async def get_active_quests(self) -> list[QuestDefinition]: ...

    async def get_user_quest_progress(self, user_id: str, tenant_id: int) -> list[UserQuestProgress]: ...

    async def update_user_quest_progress(
        self, user_id: str, quest_id: int, new_value: int, tenant_id: int
    ) -> None: ...

    async def complete_quest(self, user_id: str, quest_id: int, tenant_id: int) -> None: ...

    async def unlock_title(
        self, user_id: str, title: str, tenant_id: int, description: str = "", source: str = "quest"
    ) -> None:
        """Unlock ``title``. Unlocking a title the user already holds is a no-op."""
        ...

    async def get_user_titles(self, user_id: str, tenant_id: int) -> list[UserTitle]: ...

    # --- Daily rewards ---

    async def get_daily_rewards(self) -> list[DailyRewardDefinition]: ...

    async def get_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int
    ) -> UserDailyRewardClaim | None: ...

    async def create_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int, reward: DailyRewardDefinition | None = None
    ) -> None: ...
