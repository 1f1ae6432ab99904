"""ProgressStore over async SQLAlchemy.

Each call opens its own session and commits its own write, so a failure in a
later orchestration step never rolls back an earlier one. Unique constraints
on the award, claim and title tables are the final word on duplicates:
``IntegrityError`` surfaces as ``ConflictError``, any other SQLAlchemy
failure as ``DependencyError``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from certlab.database import get_session_factory
from certlab.db.models import (
    BadgeDefinitionRow,
    DailyRewardRow,
    LectureRow,
    QuestRow,
    QuizRow,
    UserBadgeRow,
    UserDailyRewardRow,
    UserGameStatsRow,
    UserQuestProgressRow,
    UserTitleRow,
)
from certlab.exceptions import ConflictError, DependencyError
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

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_db(value: Any) -> Any:
    """Store datetimes as UTC."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc)
    return value


def _from_db(value: Any) -> Any:
    """SQLite drops tzinfo; everything written was UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_dict(row: Any) -> dict[str, Any]:
    return {col.key: _from_db(getattr(row, col.key)) for col in row.__table__.columns}


class SqlProgressStore:
    """SQLAlchemy-backed store; tables come from ``certlab.db.models``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as exc:
            logger.info("store_conflict", operation=operation)
            msg = f"{operation}: record already exists"
            raise ConflictError(msg) from exc
        except SQLAlchemyError as exc:
            logger.error("store_operation_failed", operation=operation, error=str(exc))
            msg = f"{operation} failed"
            raise DependencyError(msg) from exc

    # --- Activity history (written by the quiz/lecture features) ---

    async def add_quiz(self, user_id: str, quiz: QuizRecord, tenant_id: int = 1) -> QuizRecord:
        async with self._session("add_quiz") as session:
            row = QuizRow(
                user_id=user_id,
                tenant_id=tenant_id,
                score=quiz.score,
                correct_answers=quiz.correct_answers,
                total_questions=quiz.total_questions,
                is_passing=quiz.is_passing,
                completed_at=_to_db(quiz.completed_at),
            )
            session.add(row)
            await session.commit()
            return quiz.model_copy(update={"id": row.id})

    async def add_lecture(self, user_id: str, lecture: LectureRecord, tenant_id: int = 1) -> LectureRecord:
        async with self._session("add_lecture") as session:
            row = LectureRow(user_id=user_id, tenant_id=tenant_id, is_read=lecture.is_read)
            session.add(row)
            await session.commit()
            return lecture.model_copy(update={"id": row.id})

    # --- Game stats ---

    async def _get_or_create_stats(self, session: AsyncSession, user_id: str) -> UserGameStatsRow:
        """Load the stats row, creating it on first use.

        Must be the first statement in ``session``: losing the insert race to
        another writer rolls the session back and loads the winner's row.
        """
        row = await session.get(UserGameStatsRow, user_id)
        if row is not None:
            return row

        defaults = GameStats(user_id=user_id).model_dump()
        defaults["updated_at"] = _utcnow()
        row = UserGameStatsRow(**{k: _to_db(v) for k, v in defaults.items()})
        session.add(row)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            logger.info("stats_row_created_concurrently")
            row = await session.get(UserGameStatsRow, user_id)
            if row is None:
                raise
        return row

    async def get_user_game_stats(self, user_id: str) -> GameStats | None:
        async with self._session("get_user_game_stats") as session:
            row = await session.get(UserGameStatsRow, user_id)
            return GameStats.model_validate(_row_dict(row)) if row is not None else None

    async def update_user_game_stats(self, user_id: str, changes: Mapping[str, Any]) -> GameStats:
        async with self._session("update_user_game_stats") as session:
            row = await self._get_or_create_stats(session, user_id)
            merged = GameStats.model_validate({**_row_dict(row), **changes, "user_id": user_id})
            for field, value in merged.model_dump(exclude={"user_id"}).items():
                setattr(row, field, _to_db(value))
            row.updated_at = _utcnow()
            await session.commit()
            return GameStats.model_validate(_row_dict(row))

    async def increment_user_game_stats(self, user_id: str, deltas: Mapping[str, int]) -> GameStats:
        unknown = set(deltas) - COUNTER_FIELDS
        if unknown:
            msg = f"Not counter fields: {sorted(unknown)}"
            raise ValueError(msg)
        async with self._session("increment_user_game_stats") as session:
            await self._get_or_create_stats(session, user_id)
            values: dict[Any, Any] = {
                getattr(UserGameStatsRow, field): getattr(UserGameStatsRow, field) + delta
                for field, delta in deltas.items()
            }
            values[UserGameStatsRow.updated_at] = _utcnow()
            await session.execute(
                update(UserGameStatsRow)
                .where(UserGameStatsRow.user_id == user_id)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            row = await session.get(UserGameStatsRow, user_id, populate_existing=True)
            return GameStats.model_validate(_row_dict(row))

    # --- Badges ---

    async def get_badges(self) -> list[BadgeDefinition]:
        async with self._session("get_badges") as session:
            result = await session.execute(select(BadgeDefinitionRow).order_by(BadgeDefinitionRow.id))
            return [BadgeDefinition.model_validate(_row_dict(r)) for r in result.scalars()]

    async def get_user_badges(self, user_id: str, tenant_id: int) -> list[UserBadgeAward]:
        async with self._session("get_user_badges") as session:
            result = await session.execute(
                select(UserBadgeRow).where(
                    UserBadgeRow.user_id == user_id,
                    UserBadgeRow.tenant_id == tenant_id,
                )
            )
            return [UserBadgeAward.model_validate(_row_dict(r)) for r in result.scalars()]

    async def create_user_badge(self, award: UserBadgeAward) -> UserBadgeAward:
        async with self._session("create_user_badge") as session:
            session.add(UserBadgeRow(**{k: _to_db(v) for k, v in award.model_dump().items()}))
            await session.commit()
            return award

    # --- Activity history ---

    async def get_user_quizzes(self, user_id: str, tenant_id: int) -> list[QuizRecord]:
        async with self._session("get_user_quizzes") as session:
            result = await session.execute(
                select(QuizRow)
                .where(QuizRow.user_id == user_id, QuizRow.tenant_id == tenant_id)
                .order_by(QuizRow.id)
            )
            return [QuizRecord.model_validate(_row_dict(r)) for r in result.scalars()]

    async def get_user_lectures(self, user_id: str, tenant_id: int) -> list[LectureRecord]:
        async with self._session("get_user_lectures") as session:
            result = await session.execute(
                select(LectureRow).where(LectureRow.user_id == user_id, LectureRow.tenant_id == tenant_id)
            )
            return [LectureRecord.model_validate(_row_dict(r)) for r in result.scalars()]

    # --- Quests & titles ---

    async def get_active_quests(self) -> list[QuestDefinition]:
        now = _utcnow()
        async with self._session("get_active_quests") as session:
            result = await session.execute(
                select(QuestRow).where(QuestRow.is_active.is_(True)).order_by(QuestRow.id)
            )
            quests = [QuestDefinition.model_validate(_row_dict(r)) for r in result.scalars()]
        return [q for q in quests if q.is_available(now)]

    async def get_user_quest_progress(self, user_id: str, tenant_id: int) -> list[UserQuestProgress]:
        async with self._session("get_user_quest_progress") as session:
            result = await session.execute(
                select(UserQuestProgressRow).where(
                    UserQuestProgressRow.user_id == user_id,
                    UserQuestProgressRow.tenant_id == tenant_id,
                )
            )
            return [UserQuestProgress.model_validate(_row_dict(r)) for r in result.scalars()]

    async def _get_or_create_progress(
        self, session: AsyncSession, user_id: str, quest_id: int, tenant_id: int
    ) -> UserQuestProgressRow:
        result = await session.execute(
            select(UserQuestProgressRow).where(
                UserQuestProgressRow.user_id == user_id,
                UserQuestProgressRow.quest_id == quest_id,
                UserQuestProgressRow.tenant_id == tenant_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = UserQuestProgressRow(
                user_id=user_id,
                quest_id=quest_id,
                tenant_id=tenant_id,
                current_value=0,
                is_completed=False,
            )
            session.add(row)
        return row

    async def update_user_quest_progress(
        self, user_id: str, quest_id: int, new_value: int, tenant_id: int
    ) -> None:
        async with self._session("update_user_quest_progress") as session:
            row = await self._get_or_create_progress(session, user_id, quest_id, tenant_id)
            row.current_value = new_value
            row.updated_at = _utcnow()
            await session.commit()

    async def complete_quest(self, user_id: str, quest_id: int, tenant_id: int) -> None:
        async with self._session("complete_quest") as session:
            row = await self._get_or_create_progress(session, user_id, quest_id, tenant_id)
            now = _utcnow()
            row.is_completed = True
            row.completed_at = now
            row.updated_at = now
            await session.commit()

    async def unlock_title(
        self, user_id: str, title: str, tenant_id: int, description: str = "", source: str = "quest"
    ) -> None:
        async with self._session("unlock_title") as session:
            existing = await session.execute(
                select(UserTitleRow.id).where(
                    UserTitleRow.user_id == user_id,
                    UserTitleRow.title == title,
                    UserTitleRow.tenant_id == tenant_id,
                )
            )
            if existing.scalar_one_or_none() is not None:
                return
            session.add(
                UserTitleRow(
                    user_id=user_id,
                    tenant_id=tenant_id,
                    title=title,
                    description=description,
                    source=source,
                    unlocked_at=_utcnow(),
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                # Unlocked concurrently; same end state
                await session.rollback()

    async def get_user_titles(self, user_id: str, tenant_id: int) -> list[UserTitle]:
        async with self._session("get_user_titles") as session:
            result = await session.execute(
                select(UserTitleRow)
                .where(UserTitleRow.user_id == user_id, UserTitleRow.tenant_id == tenant_id)
                .order_by(UserTitleRow.unlocked_at)
            )
            return [UserTitle.model_validate(_row_dict(r)) for r in result.scalars()]

    # --- Daily rewards ---

    async def get_daily_rewards(self) -> list[DailyRewardDefinition]:
        async with self._session("get_daily_rewards") as session:
            result = await session.execute(select(DailyRewardRow).order_by(DailyRewardRow.day))
            rewards = [DailyRewardDefinition.model_validate(_row_dict(r)) for r in result.scalars()]
        return rewards or default_daily_rewards()

    async def get_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int
    ) -> UserDailyRewardClaim | None:
        async with self._session("get_user_daily_reward") as session:
            result = await session.execute(
                select(UserDailyRewardRow).where(
                    UserDailyRewardRow.user_id == user_id,
                    UserDailyRewardRow.day == day,
                    UserDailyRewardRow.tenant_id == tenant_id,
                )
            )
            row = result.scalar_one_or_none()
            return UserDailyRewardClaim.model_validate(_row_dict(row)) if row is not None else None

    async def create_user_daily_reward(
        self, user_id: str, day: int, tenant_id: int, reward: DailyRewardDefinition | None = None
    ) -> None:
        async with self._session("create_user_daily_reward") as session:
            session.add(
                UserDailyRewardRow(
                    user_id=user_id,
                    tenant_id=tenant_id,
                    day=day,
                    claimed_at=_utcnow(),
                    points=reward.points if reward else 0,
                    streak_freeze_granted=reward.streak_freeze_granted if reward else False,
                )
            )
            await session.commit()
