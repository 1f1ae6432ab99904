"""Daily study streak computation."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import NamedTuple

# (current_streak, gap_days) -> True to keep the streak across the gap.
GapHandler = Callable[[int, int], bool]


class StreakResult(NamedTuple):
    current_streak: int
    streak_broken: bool


def as_utc(dt: datetime) -> datetime:
    """Aware UTC copy of ``dt``. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_date(dt: datetime | date) -> date:
    """Calendar day of ``dt`` in UTC. Naive datetimes are taken as UTC."""
    if isinstance(dt, datetime):
        return as_utc(dt).date()
    return dt


def days_between(earlier: datetime | date, later: datetime | date) -> int:
    """Whole calendar days from ``earlier`` to ``later`` (time of day ignored)."""
    return (to_utc_date(later) - to_utc_date(earlier)).days


def compute_streak(
    last_activity: datetime | date | None,
    now: datetime,
    current_streak: int,
    on_gap: GapHandler | None = None,
) -> StreakResult:
    """Compute the streak after an activity at ``now``.

    - First activity ever starts a streak of 1.
    - Another activity on the same day leaves the streak as is.
    - Activity on the next day extends it by one.
    - A gap of two or more days resets it to 1 and reports it broken,
      unless ``on_gap`` chooses to keep it.
    """
    if last_activity is None:
        return StreakResult(1, False)

    gap = days_between(last_activity, now)

    if gap <= 0:
        # Same day (or a clock that went backwards)
        return StreakResult(current_streak or 1, False)
    if gap == 1:
        return StreakResult(current_streak + 1, False)

    if on_gap is not None and current_streak > 0 and on_gap(current_streak, gap):
        return StreakResult(current_streak, False)
    return StreakResult(1, True)
