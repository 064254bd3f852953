"""Study session API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from focusarena.auth.dependencies import get_current_user
from focusarena.db.models import User
from focusarena.sessions.schemas import (
    ActiveSession,
    ActiveSessionResponse,
    CompleteSessionRequest,
    CompleteSessionResponse,
    SessionAnalyticsResponse,
    SessionHistoryResponse,
    SessionResponse,
    StartedSession,
    StartSessionRequest,
    StartSessionResponse,
    UnlockedAchievementResponse,
)
from focusarena.sessions.service import SessionService, get_session_service

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


@router.post("/start", response_model=StartSessionResponse, status_code=201)
async def start_session(
    body: StartSessionRequest,
    user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> StartSessionResponse:
    """Start a focus session. 400 if one is already running."""
    session = await service.start(user.id, body.duration, subject=body.subject, task=body.task)
    return StartSessionResponse(
        message="Study session started",
        session=StartedSession.model_validate(session),
    )


@router.put("/complete", response_model=CompleteSessionResponse)
async def complete_session(
    body: CompleteSessionRequest,
    user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> CompleteSessionResponse:
    """Complete (or abandon) the caller's open session and settle XP."""
    outcome = await service.complete(user.id, body.session_id, end_time=body.end_time, completed=body.completed)
    return CompleteSessionResponse(
        message="Study session completed",
        session=SessionResponse.model_validate(outcome.session),
        xp_earned=outcome.xp_earned,
        total_xp=outcome.total_xp,
        level_up=outcome.level_up,
        new_level=outcome.new_level,
        unlocked_achievements=[
            UnlockedAchievementResponse(
                id=record.achievement.id,
                name=record.achievement.name,
                description=record.achievement.description,
                icon=record.achievement.icon,
                xp_reward=record.achievement.xp_reward,
                unlocked_at=record.unlocked_at,
            )
            for record in outcome.unlocked
        ],
    )


@router.get("/active", response_model=ActiveSessionResponse)
async def active_session(
    user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> ActiveSessionResponse:
    """The caller's open session with elapsed/remaining minutes."""
    active = await service.active_session(user.id)
    return ActiveSessionResponse(active_session=ActiveSession(**active) if active else None)


@router.get("/history", response_model=SessionHistoryResponse)
async def session_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    subject: str | None = None,
    completed: bool | None = None,
    user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SessionHistoryResponse:
    """Paginated session history, newest first."""
    sessions, pagination = await service.history(
        user.id, subject=subject, completed=completed, page=page, limit=limit
    )
    return SessionHistoryResponse(
        sessions=[SessionResponse.model_validate(s) for s in sessions],
        pagination=pagination,
    )


@router.get("/analytics", response_model=SessionAnalyticsResponse)
async def session_analytics(
    period: str = "week",
    user: User = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SessionAnalyticsResponse:
    """Completed-session totals and breakdowns for day, week or month."""
    return SessionAnalyticsResponse(**await service.analytics(user.id, period))
