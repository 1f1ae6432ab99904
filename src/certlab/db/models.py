"""ORM models for the progress engine tables.

Column types are kept portable (generic JSON rather than JSONB) so the same
models run on PostgreSQL and on SQLite.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from certlab.db.base import Base


# ---------------------------------------------------------------------------
# Player state
# ---------------------------------------------------------------------------


class UserGameStatsRow(Base):
    """Denormalized gamification summary, one row per user, created lazily."""

    __tablename__ = "user_game_stats"

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_points: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_activity_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    next_level_points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="100")
    total_badges_earned: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak_freezes: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    last_streak_freeze_reset: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    consecutive_login_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    selected_title: Mapped[str | None] = mapped_column(String(128), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, server_default=func.now()
    )


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class BadgeDefinitionRow(Base):
    """Badge catalog. ``requirement`` holds the raw {type, value} blob."""

    __tablename__ = "badge_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False, server_default="progress")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, server_default="common")
    icon: Mapped[str] = mapped_column(String(64), nullable=False, server_default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    requirement: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)


class UserBadgeRow(Base):
    """Badges earned by users; UNIQUE(user_id, badge_id, tenant_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", "tenant_id", name="user_badges_user_badge_tenant_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    badge_id: Mapped[int] = mapped_column(Integer, nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, server_default="100")
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")


# ---------------------------------------------------------------------------
# Quests & titles
# ---------------------------------------------------------------------------


class QuestRow(Base):
    __tablename__ = "quests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    quest_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="daily")
    requirement_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    title_reward: Mapped[str | None] = mapped_column(String(128), nullable=True)
    badge_reward_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="1")
    valid_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserQuestProgressRow(Base):
    __tablename__ = "user_quest_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", "tenant_id", name="user_quest_progress_user_quest_tenant_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    quest_id: Mapped[int] = mapped_column(Integer, nullable=False)
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserTitleRow(Base):
    __tablename__ = "user_titles"
    __table_args__ = (
        UniqueConstraint("user_id", "title", "tenant_id", name="user_titles_user_title_tenant_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    source: Mapped[str] = mapped_column(String(32), nullable=False, server_default="quest")
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Daily rewards
# ---------------------------------------------------------------------------


class DailyRewardRow(Base):
    __tablename__ = "daily_rewards"

    day: Mapped[int] = mapped_column(Integer, primary_key=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak_freeze_granted: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")
    description: Mapped[str] = mapped_column(Text, nullable=False, server_default="")


class UserDailyRewardRow(Base):
    """Append-only claim log, UNIQUE(user_id, day, tenant_id)."""

    __tablename__ = "user_daily_rewards"
    __table_args__ = (
        UniqueConstraint("user_id", "day", "tenant_id", name="user_daily_rewards_user_day_tenant_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    streak_freeze_granted: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")


# ---------------------------------------------------------------------------
# Activity history (written by the quiz and lecture features)
# ---------------------------------------------------------------------------


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    correct_answers: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_passing: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class LectureRow(Base):
    __tablename__ = "lectures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    tenant_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="0")
