"""Level thresholds and computation.

Levels are linear: every POINTS_PER_LEVEL points is one level, starting at
level 1 with zero points. These values MUST match the client's level bar.
"""

from __future__ import annotations

from typing import NamedTuple

POINTS_PER_LEVEL = 100


class LevelInfo(NamedTuple):
    level: int
    next_level_points: int
    points_into_level: int
    points_for_level: int


def points_for_level(level: int) -> int:
    """Cumulative points required to reach ``level``."""
    return max(level - 1, 0) * POINTS_PER_LEVEL


def compute_level(total_points: int) -> LevelInfo:
    """Compute level info from cumulative points."""
    total_points = max(total_points, 0)
    level = total_points // POINTS_PER_LEVEL + 1
    return LevelInfo(
        level=level,
        next_level_points=points_for_level(level + 1),
        points_into_level=total_points - points_for_level(level),
        points_for_level=POINTS_PER_LEVEL,
    )


def level_fields(total_points: int) -> dict[str, int]:
    """GameStats fields derived from ``total_points``."""
    info = compute_level(total_points)
    return {"level": info.level, "next_level_points": info.next_level_points}
