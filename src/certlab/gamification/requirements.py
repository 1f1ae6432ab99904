"""Badge requirement kinds, as a discriminated union on ``type``.

Badge definitions are authored out-of-band and arrive as loose JSON. They are
parsed here once, when a BadgeDefinition is built; anything that does not parse
into one of the seven kinds becomes ``None`` and the badge is never evaluated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, ClassVar, Literal, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

if TYPE_CHECKING:
    from certlab.gamification.aggregates import ActivityAggregates

logger = structlog.get_logger()


class _Requirement(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float = Field(gt=0)

    noun: ClassVar[str] = ""

    def current(self, aggregates: ActivityAggregates) -> float:
        raise NotImplementedError

    def is_met(self, aggregates: ActivityAggregates) -> bool:
        return self.current(aggregates) >= self.value

    def describe(self, current: float) -> str:
        return f"{current:g}/{self.value:g} {self.noun}"


class QuizzesCompletedRequirement(_Requirement):
    type: Literal["quizzes_completed"] = "quizzes_completed"
    noun: ClassVar[str] = "quizzes completed"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.quizzes_completed


class PerfectScoreRequirement(_Requirement):
    type: Literal["perfect_score"] = "perfect_score"
    noun: ClassVar[str] = "perfect scores"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.perfect_scores


class StudyStreakRequirement(_Requirement):
    type: Literal["study_streak"] = "study_streak"
    noun: ClassVar[str] = "day streak"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.current_streak


class LecturesReadRequirement(_Requirement):
    type: Literal["lectures_read"] = "lectures_read"
    noun: ClassVar[str] = "lectures read"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.lectures_read


class HighScoreRequirement(_Requirement):
    """Met by any single completed quiz scoring at least ``value``."""

    type: Literal["high_score"] = "high_score"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.best_score

    def describe(self, current: float) -> str:
        if current > 0:
            return f"Best score: {current:g}% (target: {self.value:g}%)"
        return f"Achieve {self.value:g}% on a quiz"


class QuestionsAnsweredRequirement(_Requirement):
    type: Literal["questions_answered"] = "questions_answered"
    noun: ClassVar[str] = "correct answers"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.questions_answered


class TotalPointsRequirement(_Requirement):
    type: Literal["total_points"] = "total_points"
    noun: ClassVar[str] = "points earned"

    def current(self, aggregates: ActivityAggregates) -> float:
        return aggregates.total_points


BadgeRequirement = Annotated[
    Union[
        QuizzesCompletedRequirement,
        PerfectScoreRequirement,
        StudyStreakRequirement,
        LecturesReadRequirement,
        HighScoreRequirement,
        QuestionsAnsweredRequirement,
        TotalPointsRequirement,
    ],
    Field(discriminator="type"),
]

REQUIREMENT_TYPES = frozenset(
    {
        "quizzes_completed",
        "perfect_score",
        "study_streak",
        "lectures_read",
        "high_score",
        "questions_answered",
        "total_points",
    }
)

_adapter: TypeAdapter[BadgeRequirement] = TypeAdapter(BadgeRequirement)


def parse_requirement(raw: Any) -> _Requirement | None:
    """Parse a raw requirement blob. Returns None for anything unusable."""
    if raw is None or isinstance(raw, _Requirement):
        return raw
    if not isinstance(raw, dict) or raw.get("type") not in REQUIREMENT_TYPES:
        logger.warning("badge_requirement_unrecognized", requirement=raw)
        return None
    try:
        return _adapter.validate_python(raw)
    except PydanticValidationError as exc:
        logger.warning("badge_requirement_invalid", requirement=raw, errors=exc.error_count())
        return None
