"""Catalog seed data — badges, quests and the 7-day login reward cycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from certlab.gamification.schemas import BadgeDefinition, DailyRewardDefinition, QuestDefinition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Progress
    {
        "id": 1,
        "name": "First Steps",
        "description": "Complete your first quiz",
        "category": "progress",
        "rarity": "common",
        "icon": "footprints",
        "points": 10,
        "requirement": {"type": "quizzes_completed", "value": 1},
    },
    {
        "id": 2,
        "name": "Quiz Enthusiast",
        "description": "Complete 10 quizzes",
        "category": "progress",
        "rarity": "common",
        "icon": "clipboard-check",
        "points": 25,
        "requirement": {"type": "quizzes_completed", "value": 10},
    },
    {
        "id": 3,
        "name": "Quiz Master",
        "description": "Complete 50 quizzes",
        "category": "progress",
        "rarity": "rare",
        "icon": "trophy",
        "points": 100,
        "requirement": {"type": "quizzes_completed", "value": 50},
    },
    {
        "id": 4,
        "name": "Bookworm",
        "description": "Read your first lecture",
        "category": "progress",
        "rarity": "common",
        "icon": "book-open",
        "points": 10,
        "requirement": {"type": "lectures_read", "value": 1},
    },
    {
        "id": 5,
        "name": "Scholar",
        "description": "Read 10 lectures",
        "category": "progress",
        "rarity": "uncommon",
        "icon": "graduation-cap",
        "points": 50,
        "requirement": {"type": "lectures_read", "value": 10},
    },
    # Performance
    {
        "id": 6,
        "name": "Perfectionist",
        "description": "Score 100% on a quiz",
        "category": "performance",
        "rarity": "uncommon",
        "icon": "star",
        "points": 50,
        "requirement": {"type": "perfect_score", "value": 1},
    },
    {
        "id": 7,
        "name": "Flawless Five",
        "description": "Score 100% on five quizzes",
        "category": "performance",
        "rarity": "rare",
        "icon": "sparkles",
        "points": 150,
        "requirement": {"type": "perfect_score", "value": 5},
    },
    {
        "id": 8,
        "name": "High Achiever",
        "description": "Score at least 90% on a quiz",
        "category": "performance",
        "rarity": "common",
        "icon": "target",
        "points": 25,
        "requirement": {"type": "high_score", "value": 90},
    },
    # Streak
    {
        "id": 9,
        "name": "Getting Started",
        "description": "Study three days in a row",
        "category": "streak",
        "rarity": "common",
        "icon": "flame",
        "points": 25,
        "requirement": {"type": "study_streak", "value": 3},
    },
    {
        "id": 10,
        "name": "Streak Champion",
        "description": "Study seven days in a row",
        "category": "streak",
        "rarity": "rare",
        "icon": "flame",
        "points": 100,
        "requirement": {"type": "study_streak", "value": 7},
    },
    # Mastery
    {
        "id": 11,
        "name": "Century",
        "description": "Answer 100 questions correctly",
        "category": "mastery",
        "rarity": "uncommon",
        "icon": "check-circle",
        "points": 50,
        "requirement": {"type": "questions_answered", "value": 100},
    },
    {
        "id": 12,
        "name": "Point Collector",
        "description": "Earn 1,000 points",
        "category": "mastery",
        "rarity": "rare",
        "icon": "coins",
        "points": 100,
        "requirement": {"type": "total_points", "value": 1000},
    },
]

QUEST_SEED_DATA: list[dict] = [
    # Daily
    {"id": 1, "title": "Daily Learner", "description": "Complete 3 quizzes today", "quest_type": "daily",
     "requirement_type": "quizzes_completed", "target_value": 3, "reward_points": 50},
    {"id": 2, "title": "Question Champion", "description": "Answer 20 questions correctly today",
     "quest_type": "daily", "requirement_type": "questions_answered", "target_value": 20, "reward_points": 75},
    {"id": 3, "title": "Perfect Score", "description": "Get 100% on a quiz", "quest_type": "daily",
     "requirement_type": "perfect_scores", "target_value": 1, "reward_points": 100, "title_reward": "Perfectionist"},
    # Weekly
    {"id": 4, "title": "Weekly Warrior", "description": "Complete 20 quizzes this week", "quest_type": "weekly",
     "requirement_type": "quizzes_completed", "target_value": 20, "reward_points": 250,
     "title_reward": "Study Warrior"},
    {"id": 5, "title": "Knowledge Seeker", "description": "Answer 100 questions correctly this week",
     "quest_type": "weekly", "requirement_type": "questions_answered", "target_value": 100, "reward_points": 300},
    {"id": 6, "title": "Streak Master", "description": "Maintain a 7-day study streak", "quest_type": "weekly",
     "requirement_type": "study_streak", "target_value": 7, "reward_points": 500,
     "title_reward": "Streak Champion"},
    # Monthly
    {"id": 7, "title": "Monthly Master", "description": "Complete 100 quizzes this month", "quest_type": "monthly",
     "requirement_type": "quizzes_completed", "target_value": 100, "reward_points": 1000,
     "title_reward": "Quiz Master"},
    {"id": 8, "title": "Knowledge Guru", "description": "Answer 500 questions correctly this month",
     "quest_type": "monthly", "requirement_type": "questions_answered", "target_value": 500,
     "reward_points": 1500, "title_reward": "Knowledge Guru"},
    {"id": 9, "title": "Perfect Month", "description": "Get 10 perfect scores this month", "quest_type": "monthly",
     "requirement_type": "perfect_scores", "target_value": 10, "reward_points": 2000,
     "title_reward": "Perfection Seeker"},
]

DAILY_REWARD_SEED_DATA: list[dict] = [
    {"day": 1, "points": 10, "description": "Day 1 login reward"},
    {"day": 2, "points": 15, "description": "Day 2 login reward"},
    {"day": 3, "points": 20, "description": "Day 3 login reward"},
    {"day": 4, "points": 25, "description": "Day 4 login reward"},
    {"day": 5, "points": 30, "description": "Day 5 login reward"},
    {"day": 6, "points": 40, "description": "Day 6 login reward"},
    {"day": 7, "points": 50, "streak_freeze_granted": True,
     "description": "Day 7 login reward - includes streak freeze!"},
]


def default_badges() -> list[BadgeDefinition]:
    return [BadgeDefinition.model_validate(b) for b in BADGE_SEED_DATA]


def default_quests() -> list[QuestDefinition]:
    return [QuestDefinition.model_validate(q) for q in QUEST_SEED_DATA]


def default_daily_rewards() -> list[DailyRewardDefinition]:
    """The 7-day cycle used whenever no rewards are configured."""
    return [DailyRewardDefinition.model_validate(r) for r in DAILY_REWARD_SEED_DATA]


async def seed_catalog(db: AsyncSession) -> int:
    """Upsert badge, quest and daily reward definitions. Returns rows written."""
    from certlab.db.models import BadgeDefinitionRow, DailyRewardRow, QuestRow

    seeded = 0
    for model, rows in (
        (BadgeDefinitionRow, BADGE_SEED_DATA),
        (QuestRow, QUEST_SEED_DATA),
        (DailyRewardRow, DAILY_REWARD_SEED_DATA),
    ):
        for data in rows:
            await db.merge(model(**data))
            seeded += 1

    await db.commit()
    logger.info("Seeded %d catalog rows", seeded)
    return seeded
