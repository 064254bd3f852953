"""Leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.database import get_session
from focusarena.db.models import University, User
from focusarena.errors import NotFoundError
from focusarena.leaderboards.schemas import (
    LeaderboardEntry,
    LeaderboardResponse,
    SubjectLeaderboardResponse,
    UniversityLeaderboardResponse,
    UniversitySummary,
)
from focusarena.leaderboards.service import SORT_KEY, accepted_friend_ids, build_leaderboard
from focusarena.pagination import page_info
from focusarena.periods import normalize_period

router = APIRouter(prefix="/api/v1/leaderboards", tags=["Leaderboards"])


@router.get("/global", response_model=LeaderboardResponse)
async def global_leaderboard(
    period: str = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Every active user."""
    board = await build_leaderboard(db, period=period, page=page, limit=limit)
    return LeaderboardResponse(
        period=board.period,
        sort_key=SORT_KEY,
        leaderboard=[LeaderboardEntry(**e) for e in board.entries],
        pagination=board.pagination,
    )


@router.get("/university/{university_id}", response_model=UniversityLeaderboardResponse)
async def university_leaderboard(
    university_id: int,
    period: str = "week",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> UniversityLeaderboardResponse:
    """Members of one university. 404 if it does not exist."""
    university = await db.get(University, university_id)
    if university is None:
        msg = "University not found"
        raise NotFoundError(msg)

    board = await build_leaderboard(
        db,
        period=period,
        page=page,
        limit=limit,
        user_filters=(User.university_id == university_id,),
    )
    return UniversityLeaderboardResponse(
        university=UniversitySummary.model_validate(university),
        period=board.period,
        sort_key=SORT_KEY,
        leaderboard=[LeaderboardEntry(**e) for e in board.entries],
        pagination=board.pagination,
    )


@router.get("/friends", response_model=LeaderboardResponse)
async def friends_leaderboard(
    period: str = "week",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """The caller's accepted friends."""
    friend_ids = await accepted_friend_ids(db, user.id)
    if not friend_ids:
        return LeaderboardResponse(
            period=normalize_period(period),
            sort_key=SORT_KEY,
            leaderboard=[],
            pagination=page_info(page, limit, 0),
            message="No friends found",
        )

    board = await build_leaderboard(
        db,
        period=period,
        page=page,
        limit=limit,
        user_filters=(User.id.in_(friend_ids),),
    )
    return LeaderboardResponse(
        period=board.period,
        sort_key=SORT_KEY,
        leaderboard=[LeaderboardEntry(**e) for e in board.entries],
        pagination=board.pagination,
    )


@router.get("/subject/{subject}", response_model=SubjectLeaderboardResponse)
async def subject_leaderboard(
    subject: str,
    period: str = "month",
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> SubjectLeaderboardResponse:
    """Users who studied ``subject`` (case-insensitive) in the period."""
    board = await build_leaderboard(db, period=period, page=page, limit=limit, subject=subject)
    return SubjectLeaderboardResponse(
        subject=subject,
        period=board.period,
        sort_key=SORT_KEY,
        leaderboard=[LeaderboardEntry(**e) for e in board.entries],
        pagination=board.pagination,
    )
