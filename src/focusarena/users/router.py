"""Endpoints for the authenticated user's own profile, stats and social graph."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.cache import CacheClient, get_cache
from focusarena.config import get_settings
from focusarena.database import get_session
from focusarena.db.models import Achievement, User
from focusarena.friends import service as friends_service
from focusarena.friends.schemas import Friend, FriendsResponse
from focusarena.gamification import achievement_service
from focusarena.gamification.schemas import UserAchievementResponse
from focusarena.sessions.schemas import SessionHistoryResponse, SessionResponse
from focusarena.sessions.service import SessionService, get_session_service
from focusarena.users import service
from focusarena.users.schemas import (
    AchievementWithStatus,
    ProfileResponse,
    UpdateAvatarRequest,
    UpdateAvatarResponse,
    UpdateProfileRequest,
    UpdateProfileResponse,
    UserAchievementsOverview,
    UserStatsResponse,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    profile = await service.load_profile(db, user.id)
    return ProfileResponse.model_validate(profile)


@router.put("/profile", response_model=UpdateProfileResponse)
async def update_profile(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UpdateProfileResponse:
    """Update name, university and preferences. 404 for an unknown university."""
    profile = await service.update_profile(db, user, body.model_dump(exclude_unset=True))
    return UpdateProfileResponse(
        message="Profile updated successfully",
        user=ProfileResponse.model_validate(profile),
    )


@router.put("/avatar", response_model=UpdateAvatarResponse)
async def update_avatar(
    body: UpdateAvatarRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UpdateAvatarResponse:
    updated = await service.update_avatar(db, user, str(body.avatar_url))
    return UpdateAvatarResponse(message="Avatar updated successfully", avatar_url=updated.avatar_url)


@router.get("/stats", response_model=UserStatsResponse)
async def user_stats(
    period: str = "week",
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    cache: CacheClient = Depends(get_cache),
) -> UserStatsResponse:
    """Level progress plus totals and breakdowns for day, week or month."""
    stats = await service.user_stats(db, cache, user, period, ttl=get_settings().user_stats_cache_ttl_seconds)
    return UserStatsResponse.model_validate(stats)


@router.get("/history", response_model=SessionHistoryResponse)
async def user_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject: str | None = None,
    completed: bool | None = None,
    user: User = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
) -> SessionHistoryResponse:
    rows, pagination = await sessions.history(user.id, subject=subject, completed=completed, page=page, limit=limit)
    return SessionHistoryResponse(
        sessions=[SessionResponse.model_validate(s) for s in rows],
        pagination=pagination,
    )


@router.get("/achievements", response_model=UserAchievementsOverview)
async def user_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserAchievementsOverview:
    """Unlocked achievements plus the full catalog marked with unlock status."""
    unlocked = await achievement_service.user_achievements(db, user.id)
    unlocked_at = {ua.achievement_id: ua.unlocked_at for ua in unlocked}
    catalog = (await db.execute(select(Achievement).order_by(Achievement.id))).scalars().all()
    return UserAchievementsOverview(
        unlocked=[UserAchievementResponse.model_validate(ua) for ua in unlocked],
        all=[
            AchievementWithStatus(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                xp_reward=a.xp_reward,
                condition=a.condition,
                unlocked=a.id in unlocked_at,
                unlocked_at=unlocked_at.get(a.id),
            )
            for a in catalog
        ],
    )


@router.get("/friends", response_model=FriendsResponse)
async def user_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendsResponse:
    friendships = await friends_service.list_friends(db, user.id)
    return FriendsResponse(friends=[Friend.from_friendship(f, user.id) for f in friendships])
