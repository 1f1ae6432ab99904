"""Badge evaluation and award with duplicate prevention."""

from __future__ import annotations

import math
from collections.abc import Collection, Iterable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from certlab.exceptions import ConflictError
from certlab.gamification.aggregates import ActivityAggregates
from certlab.gamification.schemas import (
    BadgeDefinition,
    BadgeProgress,
    BadgeProgressEntry,
    GameStats,
    UserBadgeAward,
)

if TYPE_CHECKING:
    from certlab.storage.interface import ProgressStore

logger = structlog.get_logger()


def progress_for(
    badge: BadgeDefinition,
    aggregates: ActivityAggregates,
    earned: bool = False,
) -> BadgeProgress:
    """Display progress towards ``badge``. Earned badges always report 100%."""
    requirement = badge.requirement
    if earned:
        required = requirement.value if requirement is not None else 0
        current = requirement.current(aggregates) if requirement is not None else 0
        return BadgeProgress(current=current, required=required, percentage=100, text="Completed!")
    if requirement is None:
        return BadgeProgress(current=0, required=0, percentage=0, text="Unknown requirement")

    current = requirement.current(aggregates)

    # Half-up rounding, as shown on the client
    percentage = min(100, math.floor(current / requirement.value * 100 + 0.5))
    return BadgeProgress(
        current=current,
        required=requirement.value,
        percentage=percentage,
        text=requirement.describe(current),
    )


class BadgeEvaluator:
    """Decides which badges a user has newly earned and records them."""

    def __init__(self, store: ProgressStore) -> None:
        self.store = store

    @staticmethod
    def evaluate(
        aggregates: ActivityAggregates,
        catalog: Iterable[BadgeDefinition],
        already_earned_ids: Collection[int],
        kinds: Collection[str] | None = None,
    ) -> list[BadgeDefinition]:
        """Badges in ``catalog`` satisfied by ``aggregates`` and not yet earned.

        Badges without a usable requirement are skipped. ``kinds`` limits the
        pass to the given requirement types.
        """
        earned: list[BadgeDefinition] = []
        for badge in catalog:
            if badge.id in already_earned_ids or badge.requirement is None:
                continue
            if kinds is not None and badge.requirement.type not in kinds:
                continue
            if badge.requirement.is_met(aggregates):
                earned.append(badge)
        return earned

    progress_for = staticmethod(progress_for)

    async def load_aggregates(self, user_id: str, tenant_id: int, game_stats: GameStats) -> ActivityAggregates:
        quizzes = await self.store.get_user_quizzes(user_id, tenant_id)
        lectures = await self.store.get_user_lectures(user_id, tenant_id)
        return ActivityAggregates.from_history(quizzes, lectures, game_stats)

    async def award(
        self,
        user_id: str,
        badges: Iterable[BadgeDefinition],
        tenant_id: int,
    ) -> list[BadgeDefinition]:
        """Record an award per badge, then bump the badge count once.

        A uniqueness conflict from the store means another writer awarded the
        badge first; it is left out of the result and out of the count.
        """
        awarded: list[BadgeDefinition] = []
        for badge in badges:
            award = UserBadgeAward(
                user_id=user_id,
                badge_id=badge.id,
                tenant_id=tenant_id,
                awarded_at=datetime.now(timezone.utc),
            )
            try:
                await self.store.create_user_badge(award)
            except ConflictError:
                logger.info("badge_already_awarded", badge_id=badge.id)
                continue
            logger.info("badge_awarded", badge_id=badge.id, badge_name=badge.name)
            awarded.append(badge)

        if awarded:
            await self.store.increment_user_game_stats(user_id, {"total_badges_earned": len(awarded)})
        return awarded

    async def check_and_award(
        self,
        user_id: str,
        tenant_id: int,
        game_stats: GameStats,
        kinds: Collection[str] | None = None,
    ) -> list[BadgeDefinition]:
        """Evaluate the catalog against fresh history and award what is newly met."""
        catalog = await self.store.get_badges()
        user_badges = await self.store.get_user_badges(user_id, tenant_id)
        earned_ids = {ub.badge_id for ub in user_badges}
        aggregates = await self.load_aggregates(user_id, tenant_id, game_stats)

        newly_earned = self.evaluate(aggregates, catalog, earned_ids, kinds)
        if not newly_earned:
            return []
        return await self.award(user_id, newly_earned, tenant_id)

    async def get_badge_progress(self, user_id: str, tenant_id: int) -> list[BadgeProgressEntry]:
        """Progress towards every badge in the catalog, earned or not."""
        catalog = await self.store.get_badges()
        user_badges = await self.store.get_user_badges(user_id, tenant_id)
        earned_ids = {ub.badge_id for ub in user_badges}
        game_stats = await self.store.get_user_game_stats(user_id) or GameStats(user_id=user_id)
        aggregates = await self.load_aggregates(user_id, tenant_id, game_stats)

        entries = []
        for badge in catalog:
            earned = badge.id in earned_ids
            progress = progress_for(badge, aggregates, earned)
            entries.append(
                BadgeProgressEntry(
                    badge=badge,
                    earned=earned,
                    progress=progress.percentage,
                    progress_text=progress.text,
                )
            )
        return entries
