"""Daily login rewards and streak-freeze bookkeeping."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from certlab.config import Settings, get_settings
from certlab.exceptions import ConflictError, ValidationError
from certlab.gamification.level_thresholds import level_fields
from certlab.gamification.schemas import DailyLoginStatus, DailyRewardResult, GameStats
from certlab.gamification.streak_service import compute_streak, days_between

if TYPE_CHECKING:
    from certlab.storage.interface import ProgressStore

logger = structlog.get_logger()


class DailyRewardClaimer:
    """Validates and fulfils claims on the daily login reward cycle."""

    def __init__(self, store: ProgressStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or get_settings()

    async def claim_daily_reward(self, user_id: str, day: int, tenant_id: int) -> DailyRewardResult:
        """Claim the reward for ``day`` of the cycle.

        Raises:
            ValidationError: ``day`` is not part of the reward cycle.
            ConflictError: the user already claimed ``day``.
        """
        rewards = {r.day: r for r in await self.store.get_daily_rewards()}
        reward = rewards.get(day)
        if reward is None:
            msg = f"No daily reward configured for day {day}"
            raise ValidationError(msg)

        if await self.store.get_user_daily_reward(user_id, day, tenant_id) is not None:
            msg = f"Daily reward for day {day} has already been claimed"
            raise ConflictError(msg)

        # The store rejects a concurrent duplicate with ConflictError as well
        await self.store.create_user_daily_reward(user_id, day, tenant_id, reward)

        deltas = {"total_points": reward.points}
        if reward.streak_freeze_granted:
            stats = await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)
            room = max(self.settings.max_streak_freezes - stats.streak_freezes, 0)
            if room:
                deltas["streak_freezes"] = 1

        stats = await self.store.increment_user_game_stats(user_id, deltas)
        await self.store.update_user_game_stats(user_id, level_fields(stats.total_points))

        logger.info(
            "daily_reward_claimed",
            day=day,
            points=reward.points,
            streak_freeze_granted=reward.streak_freeze_granted,
        )
        return DailyRewardResult(
            points_earned=reward.points,
            streak_freeze_granted=reward.streak_freeze_granted,
            day=day,
        )

    async def process_daily_login(
        self,
        user_id: str,
        tenant_id: int,
        now: datetime | None = None,
    ) -> DailyLoginStatus:
        """Record today's login and report which cycle day's reward is on offer.

        A second login on the same calendar day offers nothing (day 0).
        """
        if now is None:
            now = datetime.now(timezone.utc)

        stats = await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)
        if stats.last_login_date is not None and days_between(stats.last_login_date, now) == 0:
            return DailyLoginStatus(should_show_reward=False, day=0)

        consecutive, _ = compute_streak(stats.last_login_date, now, stats.consecutive_login_days)
        cycle = self.settings.daily_reward_cycle_days
        day = (consecutive - 1) % cycle + 1

        await self.store.update_user_game_stats(
            user_id,
            {"last_login_date": now, "consecutive_login_days": consecutive},
        )

        claimed = await self.store.get_user_daily_reward(user_id, day, tenant_id)
        return DailyLoginStatus(should_show_reward=claimed is None, day=day)

    async def use_streak_freeze(self, user_id: str) -> bool:
        """Spend one streak freeze. Returns False when none are left."""
        stats = await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)
        if stats.streak_freezes <= 0:
            return False
        await self.store.increment_user_game_stats(user_id, {"streak_freezes": -1})
        logger.info("streak_freeze_used", remaining=stats.streak_freezes - 1)
        return True

    async def reset_weekly_streak_freezes(self, user_id: str, now: datetime | None = None) -> bool:
        """Restore the weekly freeze allowance once seven days have passed.

        Returns True if the allowance was reset.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        stats = await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)
        last_reset = stats.last_streak_freeze_reset
        if last_reset is not None and days_between(last_reset, now) < 7:
            return False

        await self.store.update_user_game_stats(
            user_id,
            {"streak_freezes": self.settings.weekly_streak_freezes, "last_streak_freeze_reset": now},
        )
        return True
