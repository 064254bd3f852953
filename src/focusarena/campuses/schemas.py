"""Pydantic schemas for the university and campus directory."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from focusarena.leaderboards.schemas import UniversitySummary
from focusarena.pagination import Pagination
from focusarena.schemas import APIModel

# ---------------------------------------------------------------------------
# Universities
# ---------------------------------------------------------------------------


class UniversityResponse(UniversitySummary):
    latitude: float | None = None
    longitude: float | None = None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="university_metadata")
    created_at: datetime
    user_count: int = 0
    campus_count: int = 0


class CampusBrief(APIModel):
    id: int
    name: str
    latitude: float
    longitude: float
    address: str | None = None


class UniversityDetailResponse(UniversityResponse):
    campuses: list[CampusBrief] = []


class UniversityListResponse(APIModel):
    universities: list[UniversityResponse]
    pagination: Pagination


class CreateUniversityRequest(APIModel):
    name: str = Field(min_length=2, max_length=100)
    country: str = Field(min_length=2, max_length=50)
    city: str | None = Field(default=None, min_length=2, max_length=50)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    metadata: dict[str, Any] | None = None


class CreateUniversityResponse(APIModel):
    message: str
    university: UniversityResponse


# ---------------------------------------------------------------------------
# Campuses
# ---------------------------------------------------------------------------


class CampusResponse(CampusBrief):
    university_id: int
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="campus_metadata")
    created_at: datetime
    university: UniversitySummary


class CampusListResponse(APIModel):
    campuses: list[CampusResponse]
    pagination: Pagination


class CreateCampusRequest(APIModel):
    name: str = Field(min_length=2, max_length=100)
    university_id: int
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: str | None = Field(default=None, max_length=255)
    metadata: dict[str, Any] | None = None


class CreateCampusResponse(APIModel):
    message: str
    campus: CampusResponse


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


class ActiveStudySession(APIModel):
    user_id: int
    user_name: str | None = None
    user_avatar: str | None = None
    subject: str | None = None
    task: str | None = None
    elapsed: int


class WeeklyLeader(APIModel):
    id: int
    name: str | None = None
    avatar_url: str | None = None
    xp: int
    level: int
    weekly_sessions: int


class CampusActivityResponse(APIModel):
    campus: CampusResponse
    active_users: int
    today_study_hours: float
    today_sessions: int
    weekly_leaderboard: list[WeeklyLeader]
    active_sessions: list[ActiveStudySession]
