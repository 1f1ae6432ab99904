"""Quiz points: base, per-correct-answer and bonus rules."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from certlab.gamification.points import POINTS_CONFIG, calculate_quiz_points
from certlab.gamification.schemas import QuizRecord

DONE = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class TestUnfinishedQuiz:
    """Quizzes that never finished earn nothing."""

    def test_no_completion_time(self):
        quiz = QuizRecord(score=100, correct_answers=10, completed_at=None)
        assert calculate_quiz_points(quiz) == 0

    def test_no_score(self):
        quiz = QuizRecord(score=None, correct_answers=10, completed_at=DONE)
        assert calculate_quiz_points(quiz) == 0


class TestCompletedQuiz:
    """points = 10 + 5 x correct (+25 passing) (+50 perfect)."""

    def test_perfect_score_stacks_both_bonuses(self):
        quiz = QuizRecord(score=100, correct_answers=10, completed_at=DONE)
        assert calculate_quiz_points(quiz) == 135

    def test_passing_score_at_threshold(self):
        quiz = QuizRecord(score=85, correct_answers=17, completed_at=DONE)
        assert calculate_quiz_points(quiz) == 10 + 85 + 25

    def test_just_below_passing(self):
        quiz = QuizRecord(score=84, correct_answers=5, completed_at=DONE)
        assert calculate_quiz_points(quiz) == 10 + 25

    def test_explicit_passing_flag_earns_bonus(self):
        quiz = QuizRecord(score=70, correct_answers=7, is_passing=True, completed_at=DONE)
        assert calculate_quiz_points(quiz) == 10 + 35 + 25

    def test_zero_score_still_earns_base(self):
        quiz = QuizRecord(score=0, correct_answers=0, completed_at=DONE)
        assert calculate_quiz_points(quiz) == POINTS_CONFIG["QUIZ_COMPLETION"]

    @pytest.mark.parametrize(
        ("score", "correct", "passing", "expected"),
        [
            (50, 4, False, 30),
            (90, 9, False, 80),
            (100, 1, False, 90),
            (60, 6, True, 65),
        ],
    )
    def test_formula(self, score, correct, passing, expected):
        quiz = QuizRecord(score=score, correct_answers=correct, is_passing=passing, completed_at=DONE)
        assert calculate_quiz_points(quiz) == expected


def test_points_config_is_read_only():
    with pytest.raises(TypeError):
        POINTS_CONFIG["QUIZ_COMPLETION"] = 1000  # type: ignore[index]
