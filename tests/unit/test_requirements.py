"""Badge requirement parsing and the discriminated union."""

import pytest

from certlab.gamification.aggregates import ActivityAggregates
from certlab.gamification.requirements import (
    REQUIREMENT_TYPES,
    HighScoreRequirement,
    LecturesReadRequirement,
    QuizzesCompletedRequirement,
    parse_requirement,
)
from certlab.gamification.schemas import BadgeDefinition


class TestParseRequirement:
    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "quizzes_completed",
            42,
            {},
            {"type": "mystery_kind", "value": 3},
            {"value": 3},
        ],
    )
    def test_unusable_input_is_none(self, raw):
        assert parse_requirement(raw) is None

    def test_missing_value_is_none(self):
        assert parse_requirement({"type": "quizzes_completed"}) is None

    def test_non_positive_value_is_none(self):
        assert parse_requirement({"type": "lectures_read", "value": 0}) is None
        assert parse_requirement({"type": "lectures_read", "value": -2}) is None

    def test_dispatches_on_type(self):
        req = parse_requirement({"type": "lectures_read", "value": 10})
        assert isinstance(req, LecturesReadRequirement)
        assert req.value == 10

    def test_every_kind_parses(self):
        for kind in REQUIREMENT_TYPES:
            req = parse_requirement({"type": kind, "value": 1})
            assert req is not None
            assert req.type == kind

    def test_already_parsed_passes_through(self):
        req = QuizzesCompletedRequirement(value=3)
        assert parse_requirement(req) is req


class TestBadgeDefinitionRequirement:
    def test_bad_requirement_does_not_reject_badge(self):
        badge = BadgeDefinition(id=99, name="Broken", requirement={"type": "nope", "value": 1})
        assert badge.requirement is None

    def test_requirement_parsed_on_construction(self):
        badge = BadgeDefinition(id=8, name="High", requirement={"type": "high_score", "value": 90})
        assert isinstance(badge.requirement, HighScoreRequirement)


class TestRequirementChecks:
    def test_threshold_is_inclusive(self):
        req = QuizzesCompletedRequirement(value=10)
        assert req.is_met(ActivityAggregates(quizzes_completed=10))
        assert not req.is_met(ActivityAggregates(quizzes_completed=9))

    def test_high_score_uses_best_single_quiz(self):
        req = HighScoreRequirement(value=90)
        assert req.is_met(ActivityAggregates(best_score=92))
        assert not req.is_met(ActivityAggregates(best_score=89))

    def test_describe_counts(self):
        assert QuizzesCompletedRequirement(value=10).describe(3) == "3/10 quizzes completed"

    def test_describe_high_score(self):
        req = HighScoreRequirement(value=90)
        assert req.describe(0) == "Achieve 90% on a quiz"
        assert req.describe(85) == "Best score: 85% (target: 90%)"
