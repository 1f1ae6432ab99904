"""Points awarded for study activity."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from certlab.gamification.schemas import QuizRecord

POINTS_CONFIG = MappingProxyType(
    {
        "QUIZ_COMPLETION": 10,
        "CORRECT_ANSWER": 5,
        "PASSING_BONUS": 25,
        "PERFECT_SCORE_BONUS": 50,
    }
)

PASSING_SCORE = 85
PERFECT_SCORE = 100
LECTURE_READ_POINTS = 5


def calculate_quiz_points(quiz: QuizRecord) -> int:
    """Points earned for one quiz.

    An unfinished quiz (no completion time or no score) earns nothing. The
    passing and perfect bonuses stack: a perfect score is also a pass.
    """
    if quiz.completed_at is None or quiz.score is None:
        return 0

    points = POINTS_CONFIG["QUIZ_COMPLETION"]
    points += quiz.correct_answers * POINTS_CONFIG["CORRECT_ANSWER"]

    if quiz.is_passing or quiz.score >= PASSING_SCORE:
        points += POINTS_CONFIG["PASSING_BONUS"]

    if quiz.score == PERFECT_SCORE:
        points += POINTS_CONFIG["PERFECT_SCORE_BONUS"]

    return points
