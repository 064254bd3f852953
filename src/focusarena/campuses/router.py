"""University and campus directory endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.cache import CacheClient, get_cache
from focusarena.campuses import service
from focusarena.campuses.schemas import (
    CampusActivityResponse,
    CampusListResponse,
    CampusResponse,
    CreateCampusRequest,
    CreateCampusResponse,
    CreateUniversityRequest,
    CreateUniversityResponse,
    UniversityDetailResponse,
    UniversityListResponse,
    UniversityResponse,
)
from focusarena.config import get_settings
from focusarena.database import get_session
from focusarena.db.models import User
from focusarena.leaderboards.schemas import CampusLeaderboardResponse, CampusSummary, LeaderboardEntry
from focusarena.leaderboards.service import SORT_KEY, build_leaderboard

router = APIRouter(prefix="/api/v1/campuses", tags=["Campuses"])


# ── Universities ──


@router.get("/universities", response_model=UniversityListResponse)
async def list_universities(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    country: str | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> UniversityListResponse:
    rows, pagination = await service.list_universities(db, country=country, search=search, page=page, limit=limit)
    return UniversityListResponse(
        universities=[
            UniversityResponse.model_validate(u).model_copy(update={"user_count": users, "campus_count": campuses})
            for u, users, campuses in rows
        ],
        pagination=pagination,
    )


@router.post("/universities", response_model=CreateUniversityResponse, status_code=201)
async def create_university(
    body: CreateUniversityRequest,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CreateUniversityResponse:
    """Register a university. 409 if the same name exists in that country."""
    university = await service.create_university(db, body.model_dump())
    return CreateUniversityResponse(
        message="University created successfully",
        university=UniversityResponse.model_validate(university),
    )


@router.get("/universities/{university_id}", response_model=UniversityDetailResponse)
async def get_university(university_id: int, db: AsyncSession = Depends(get_session)) -> UniversityDetailResponse:
    university, users, campuses = await service.get_university(db, university_id)
    return UniversityDetailResponse.model_validate(university).model_copy(
        update={"user_count": users, "campus_count": campuses}
    )


# ── Campuses ──


@router.get("/campuses", response_model=CampusListResponse)
async def list_campuses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    university_id: int | None = Query(None, alias="universityId"),
    search: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> CampusListResponse:
    campuses, pagination = await service.list_campuses(
        db, university_id=university_id, search=search, page=page, limit=limit
    )
    return CampusListResponse(
        campuses=[CampusResponse.model_validate(c) for c in campuses],
        pagination=pagination,
    )


@router.post("/campuses", response_model=CreateCampusResponse, status_code=201)
async def create_campus(
    body: CreateCampusRequest,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CreateCampusResponse:
    """Add a campus to an existing university."""
    campus = await service.create_campus(db, body.model_dump())
    return CreateCampusResponse(message="Campus created successfully", campus=CampusResponse.model_validate(campus))


@router.get("/campuses/{campus_id}", response_model=CampusResponse)
async def get_campus(campus_id: int, db: AsyncSession = Depends(get_session)) -> CampusResponse:
    return CampusResponse.model_validate(await service.get_campus(db, campus_id))


@router.get("/campuses/{campus_id}/activity", response_model=CampusActivityResponse)
async def campus_activity(
    campus_id: int,
    db: AsyncSession = Depends(get_session),
    cache: CacheClient = Depends(get_cache),
) -> CampusActivityResponse:
    """Who is studying right now at the campus's university, plus today's totals."""
    campus = await service.get_campus(db, campus_id)
    activity = await service.university_activity(
        db, cache, campus.university_id, ttl=get_settings().campus_activity_cache_ttl_seconds
    )
    return CampusActivityResponse(campus=CampusResponse.model_validate(campus), **activity)


@router.get("/campuses/{campus_id}/leaderboard", response_model=CampusLeaderboardResponse)
async def campus_leaderboard(
    campus_id: int,
    period: str = "week",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> CampusLeaderboardResponse:
    """Members of the campus's university ranked over ``period``."""
    campus = await service.get_campus(db, campus_id)
    board = await build_leaderboard(
        db,
        period=period,
        page=page,
        limit=limit,
        user_filters=(User.university_id == campus.university_id,),
    )
    return CampusLeaderboardResponse(
        campus=CampusSummary.model_validate(campus),
        period=board.period,
        sort_key=SORT_KEY,
        leaderboard=[LeaderboardEntry(**e) for e in board.entries],
        pagination=board.pagination,
    )
