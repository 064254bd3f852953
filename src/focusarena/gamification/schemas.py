"""Pydantic schemas for achievement endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from focusarena.gamification.conditions import CONDITION_TYPES, condition_adapter
from focusarena.schemas import APIModel


class AchievementSummary(APIModel):
    id: int
    name: str
    description: str
    icon: str | None = None
    xp_reward: int


class AchievementResponse(AchievementSummary):
    condition: dict[str, Any]
    created_at: datetime
    unlock_count: int = 0


class AchievementListResponse(APIModel):
    achievements: list[AchievementResponse]


class CreateAchievementRequest(APIModel):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    icon: str | None = None
    xp_reward: int = Field(ge=0, le=1000)
    condition: dict[str, Any]

    @field_validator("condition")
    @classmethod
    def _known_condition(cls, value: dict[str, Any]) -> dict[str, Any]:
        try:
            condition_adapter.validate_python(value)
        except PydanticValidationError as exc:
            kinds = ", ".join(sorted(CONDITION_TYPES))
            msg = f"Invalid achievement condition ({exc.error_count()} error(s)); type must be one of: {kinds}"
            raise ValueError(msg) from None
        return value


class CreateAchievementResponse(APIModel):
    message: str
    achievement: AchievementResponse


class UserAchievementResponse(APIModel):
    id: int
    achievement_id: int
    unlocked_at: datetime
    achievement: AchievementSummary


class UserAchievementsResponse(APIModel):
    user_achievements: list[UserAchievementResponse]


class NewlyUnlockedAchievement(AchievementSummary):
    unlocked_at: datetime


class CheckAchievementsResponse(APIModel):
    message: str
    newly_unlocked: list[NewlyUnlockedAchievement]


class PopularAchievement(AchievementSummary):
    unlock_count: int


class AchievementOverviewResponse(APIModel):
    total_achievements: int
    total_unlocked: int
    unique_users: int
    average_unlocks_per_user: float
    popular_achievements: list[PopularAchievement]


class AchievementStatus(APIModel):
    id: int
    name: str
    xp_reward: int
    unlocked: bool


class AchievementProgressResponse(APIModel):
    total_achievements: int
    unlocked_achievements: int
    progress: float
    achievements: list[AchievementStatus]
