"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from certlab.config import Settings
from certlab.database import close_db, create_all, get_session_factory, init_db
from certlab.gamification.engine import ProgressEngine
from certlab.gamification.schemas import BadgeDefinition, QuizRecord
from certlab.gamification.seed import default_badges, seed_catalog
from certlab.storage.memory import InMemoryProgressStore
from certlab.storage.sql import SqlProgressStore

USER_ID = "user-1"
TENANT_ID = 1


def make_quiz(score: int | None = 80, correct: int = 8, completed: bool = True, **kwargs) -> QuizRecord:
    """A graded quiz; ``completed=False`` leaves it unfinished."""
    return QuizRecord(
        score=score,
        correct_answers=correct,
        total_questions=kwargs.pop("total_questions", 10),
        completed_at=datetime.now(timezone.utc) if completed else None,
        **kwargs,
    )


def days_ago(days: int) -> datetime:
    return datetime.now(timezone.utc) - timedelta(days=days)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(_env_file=None, log_format="console")


@pytest.fixture
def badge_catalog() -> list[BadgeDefinition]:
    return default_badges()


@pytest.fixture
def store(badge_catalog) -> InMemoryProgressStore:
    """In-memory store with the default badge catalog and no quests."""
    return InMemoryProgressStore(badges=badge_catalog)


@pytest.fixture
def engine(store, settings) -> ProgressEngine:
    return ProgressEngine(store, settings)


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncGenerator[SqlProgressStore, None]:
    """SQL store on a throwaway SQLite file with the catalog seeded."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'certlab.db'}")
    await create_all()
    async with get_session_factory()() as session:
        await seed_catalog(session)

    yield SqlProgressStore(get_session_factory())

    await close_db()
