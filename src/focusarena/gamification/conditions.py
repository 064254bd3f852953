"""Achievement unlock conditions.

Stored as JSON on ``achievements.condition`` and parsed into a closed,
``type``-tagged union. Anything that fails to parse is simply never
satisfied; creation through the API rejects it up front instead.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from focusarena.gamification.stats import UserStats


class _Condition(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    value: float = Field(ge=0)

    def is_satisfied(self, stats: UserStats) -> bool:
        raise NotImplementedError


class TotalStudyHoursCondition(_Condition):
    type: Literal["total_study_hours"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.total_study_hours >= self.value


class TotalSessionsCondition(_Condition):
    type: Literal["total_sessions"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.completed_sessions >= self.value


class StreakDaysCondition(_Condition):
    type: Literal["streak_days"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.streak_count >= self.value


class ConsecutiveDaysCondition(_Condition):
    """Currently evaluated exactly like ``streak_days``."""

    type: Literal["consecutive_days"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.streak_count >= self.value


class SubjectSessionsCondition(_Condition):
    type: Literal["subject_sessions"]
    subject: str = Field(min_length=1)

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.subject_sessions.get(self.subject, 0) >= self.value


class DailyStudyHoursCondition(_Condition):
    """Hours of completed study inside ``timeframe`` (today or the rolling week)."""

    type: Literal["daily_study_hours"]
    timeframe: Literal["today", "week"]

    def is_satisfied(self, stats: UserStats) -> bool:
        minutes = stats.minutes_today if self.timeframe == "today" else stats.minutes_week
        return minutes / 60 >= self.value


class XPMilestoneCondition(_Condition):
    type: Literal["xp_milestone"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.xp >= self.value


class LevelMilestoneCondition(_Condition):
    type: Literal["level_milestone"]

    def is_satisfied(self, stats: UserStats) -> bool:
        return stats.level >= self.value


AchievementCondition = Annotated[
    Union[
        TotalStudyHoursCondition,
        TotalSessionsCondition,
        StreakDaysCondition,
        ConsecutiveDaysCondition,
        SubjectSessionsCondition,
        DailyStudyHoursCondition,
        XPMilestoneCondition,
        LevelMilestoneCondition,
    ],
    Field(discriminator="type"),
]

CONDITION_TYPES = frozenset(
    {
        "total_study_hours",
        "total_sessions",
        "streak_days",
        "consecutive_days",
        "subject_sessions",
        "daily_study_hours",
        "xp_milestone",
        "level_milestone",
    }
)

condition_adapter: TypeAdapter[AchievementCondition] = TypeAdapter(AchievementCondition)


def parse_condition(payload: Any) -> AchievementCondition | None:
    """Parse a stored condition. Returns None for unknown or malformed payloads."""
    try:
        return condition_adapter.validate_python(payload)
    except PydanticValidationError:
        return None


def is_satisfied(payload: Any, stats: UserStats) -> bool:
    condition = parse_condition(payload)
    return condition is not None and condition.is_satisfied(stats)
