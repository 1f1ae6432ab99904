"""Pydantic models for player state, catalogs and engine results."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from certlab.gamification.requirements import BadgeRequirement, parse_requirement
from certlab.gamification.streak_service import as_utc

# GameStats fields that are only ever changed by relative increments.
COUNTER_FIELDS = frozenset({"total_points", "total_badges_earned", "streak_freezes"})


# --- Player state ---


class GameStats(BaseModel):
    """Per-user gamification summary. ``GameStats()`` is a user with no activity."""

    user_id: str | None = None
    total_points: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_date: datetime | None = None
    level: int = Field(default=1, ge=1)
    next_level_points: int = 100
    total_badges_earned: int = Field(default=0, ge=0)
    streak_freezes: int = Field(default=1, ge=0)
    last_streak_freeze_reset: datetime | None = None
    last_login_date: datetime | None = None
    consecutive_login_days: int = Field(default=0, ge=0)
    selected_title: str | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _longest_covers_current(self) -> GameStats:
        if self.longest_streak < self.current_streak:
            self.longest_streak = self.current_streak
        return self


# --- Catalog ---


class BadgeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str = ""
    category: str = "progress"
    rarity: str = "common"
    icon: str = ""
    points: int = 0
    requirement: BadgeRequirement | None = None

    @field_validator("requirement", mode="before")
    @classmethod
    def _parse_requirement(cls, value: Any) -> Any:
        return parse_requirement(value)


class QuestDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: str = ""
    quest_type: str = "daily"
    requirement_type: str
    target_value: int = Field(gt=0)
    reward_points: int = Field(default=0, ge=0)
    title_reward: str | None = None
    badge_reward_id: int | None = None
    is_active: bool = True
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    def is_available(self, now: datetime) -> bool:
        """Active and inside its validity window. Naive datetimes are taken as UTC."""
        if not self.is_active:
            return False
        now = as_utc(now)
        if self.valid_from is not None and as_utc(self.valid_from) > now:
            return False
        return self.valid_until is None or as_utc(self.valid_until) >= now


class DailyRewardDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: int = Field(ge=1)
    points: int = Field(default=0, ge=0)
    streak_freeze_granted: bool = False
    description: str = ""


# --- Per-user records ---


class UserBadgeAward(BaseModel):
    user_id: str
    badge_id: int
    tenant_id: int
    awarded_at: datetime
    progress: int = 100
    notified: bool = False


class UserQuestProgress(BaseModel):
    user_id: str
    quest_id: int
    tenant_id: int
    current_value: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None


class UserDailyRewardClaim(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    day: int
    tenant_id: int
    claimed_at: datetime
    points: int = 0
    streak_freeze_granted: bool = False


class UserTitle(BaseModel):
    user_id: str
    tenant_id: int
    title: str
    description: str = ""
    source: str = "quest"
    unlocked_at: datetime | None = None


# --- Activity inputs (owned by the quiz/lecture features) ---


class QuizRecord(BaseModel):
    id: int | None = None
    score: int | None = Field(default=None, ge=0, le=100)
    correct_answers: int = Field(default=0, ge=0)
    total_questions: int = Field(default=0, ge=0)
    is_passing: bool = False
    completed_at: datetime | None = None


class LectureRecord(BaseModel):
    id: int | None = None
    is_read: bool = False


# --- Results ---


class BadgeProgress(BaseModel):
    current: float
    required: float
    percentage: int
    text: str


class BadgeProgressEntry(BaseModel):
    badge: BadgeDefinition
    earned: bool
    progress: int
    progress_text: str


class QuestUpdateResult(BaseModel):
    completed_quests: list[QuestDefinition] = []
    points_earned: int = 0
    titles_unlocked: list[str] = []
    badges_awarded: list[BadgeDefinition] = []


class QuizCompletionResult(BaseModel):
    points_earned: int
    new_badges: list[BadgeDefinition]
    level_up: bool
    new_level: int
    completed_quests: list[QuestDefinition] = []
    titles_unlocked: list[str] = []
    quest_points_earned: int = 0


class LectureReadResult(BaseModel):
    points_earned: int
    new_badges: list[BadgeDefinition]


class DailyRewardResult(BaseModel):
    points_earned: int
    streak_freeze_granted: bool
    day: int


class DailyLoginStatus(BaseModel):
    should_show_reward: bool
    day: int
