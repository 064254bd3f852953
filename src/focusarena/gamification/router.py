"""Achievement API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.database import get_session
from focusarena.db.models import Achievement, User
from focusarena.errors import NotFoundError
from focusarena.gamification import achievement_service
from focusarena.gamification.schemas import (
    AchievementListResponse,
    AchievementOverviewResponse,
    AchievementProgressResponse,
    AchievementResponse,
    AchievementStatus,
    AchievementSummary,
    CheckAchievementsResponse,
    CreateAchievementRequest,
    CreateAchievementResponse,
    NewlyUnlockedAchievement,
    PopularAchievement,
    UserAchievementResponse,
    UserAchievementsResponse,
)
from focusarena.notifications.publisher import Notifier, get_notifier

router = APIRouter(
    prefix="/api/v1/achievements",
    tags=["Achievements"],
    dependencies=[Depends(get_current_user)],
)


def _achievement_response(achievement: Achievement, unlock_count: int = 0) -> AchievementResponse:
    return AchievementResponse(
        id=achievement.id,
        name=achievement.name,
        description=achievement.description,
        icon=achievement.icon,
        xp_reward=achievement.xp_reward,
        condition=achievement.condition,
        created_at=achievement.created_at,
        unlock_count=unlock_count,
    )


# ── Catalog ──


@router.get("", response_model=AchievementListResponse)
async def list_achievements(db: AsyncSession = Depends(get_session)) -> AchievementListResponse:
    """All achievements with unlock counts, ordered by XP reward."""
    rows = await achievement_service.list_achievements(db)
    return AchievementListResponse(achievements=[_achievement_response(a, count) for a, count in rows])


@router.post("", response_model=CreateAchievementResponse, status_code=201)
async def create_achievement(
    body: CreateAchievementRequest,
    db: AsyncSession = Depends(get_session),
) -> CreateAchievementResponse:
    """Add an achievement to the catalog. 409 on duplicate name."""
    achievement = await achievement_service.create_achievement(
        db,
        name=body.name,
        description=body.description,
        icon=body.icon,
        xp_reward=body.xp_reward,
        condition=body.condition,
    )
    return CreateAchievementResponse(
        message="Achievement created successfully",
        achievement=_achievement_response(achievement),
    )


@router.get("/stats/overview", response_model=AchievementOverviewResponse)
async def achievement_overview(db: AsyncSession = Depends(get_session)) -> AchievementOverviewResponse:
    """Catalog-wide unlock statistics and the ten most unlocked achievements."""
    overview = await achievement_service.achievement_overview(db)
    popular = [
        PopularAchievement(**AchievementSummary.model_validate(a).model_dump(), unlock_count=count)
        for a, count in overview.pop("popular")
    ]
    return AchievementOverviewResponse(**overview, popular_achievements=popular)


@router.get("/{achievement_id}", response_model=AchievementResponse)
async def get_achievement(achievement_id: int, db: AsyncSession = Depends(get_session)) -> AchievementResponse:
    """Single achievement with its unlock count."""
    achievement, count = await achievement_service.get_achievement(db, achievement_id)
    return _achievement_response(achievement, count)


# ── Per-user ──


@router.get("/user/{user_id}", response_model=UserAchievementsResponse)
async def user_achievements(user_id: int, db: AsyncSession = Depends(get_session)) -> UserAchievementsResponse:
    """A user's unlocked achievements, most recent first."""
    rows = await achievement_service.user_achievements(db, user_id)
    return UserAchievementsResponse(
        user_achievements=[UserAchievementResponse.model_validate(row) for row in rows],
    )


@router.post("/check/{user_id}", response_model=CheckAchievementsResponse)
async def check_achievements(
    user_id: int,
    request: Request,
    db: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> CheckAchievementsResponse:
    """Run the achievement pass for a user and unlock whatever is now satisfied."""
    async with request.app.state.session_locks.for_user(user_id):
        user = await db.get(User, user_id)
        if user is None:
            msg = "User not found"
            raise NotFoundError(msg)
        previous_level = user.level
        unlocked = await achievement_service.check_achievements(db, user_id)
        await db.commit()

    published = achievement_service.unlock_events(user_id, unlocked)
    if unlocked and unlocked[-1].level > previous_level:
        published.append(
            achievement_service.level_up_event(user_id, previous_level, unlocked[-1].level, unlocked[-1].xp)
        )
    await notifier.publish_all(published)

    return CheckAchievementsResponse(
        message=f"{len(unlocked)} achievements unlocked",
        newly_unlocked=[
            NewlyUnlockedAchievement(
                **AchievementSummary.model_validate(record.achievement).model_dump(),
                unlocked_at=record.unlocked_at,
            )
            for record in unlocked
        ],
    )


@router.get("/progress/{user_id}", response_model=AchievementProgressResponse)
async def achievement_progress(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> AchievementProgressResponse:
    """Percentage of the catalog a user has unlocked, with per-achievement status."""
    progress = await achievement_service.achievement_progress(db, user_id)
    return AchievementProgressResponse(
        total_achievements=progress["total_achievements"],
        unlocked_achievements=progress["unlocked_achievements"],
        progress=progress["progress"],
        achievements=[
            AchievementStatus(id=a.id, name=a.name, xp_reward=a.xp_reward, unlocked=unlocked)
            for a, unlocked in progress["achievements"]
        ],
    )
