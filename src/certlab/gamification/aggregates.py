"""Per-user activity totals that badge and quest rules are evaluated against."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel

from certlab.gamification.points import PERFECT_SCORE

if TYPE_CHECKING:
    from certlab.gamification.schemas import GameStats, LectureRecord, QuizRecord


class ActivityAggregates(BaseModel):
    quizzes_completed: int = 0
    perfect_scores: int = 0
    best_score: float = 0
    questions_answered: int = 0
    lectures_read: int = 0
    current_streak: int = 0
    total_points: int = 0

    @classmethod
    def from_history(
        cls,
        quizzes: Iterable[QuizRecord],
        lectures: Iterable[LectureRecord],
        stats: GameStats,
    ) -> ActivityAggregates:
        """Summarize quiz and lecture history. Unfinished quizzes are ignored."""
        completed = [q for q in quizzes if q.completed_at is not None]
        return cls(
            quizzes_completed=len(completed),
            perfect_scores=sum(1 for q in completed if q.score == PERFECT_SCORE),
            best_score=max((q.score or 0 for q in completed), default=0),
            questions_answered=sum(q.correct_answers for q in completed),
            lectures_read=sum(1 for lecture in lectures if lecture.is_read),
            current_streak=stats.current_streak,
            total_points=stats.total_points,
        )
