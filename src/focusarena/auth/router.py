"""Authentication API endpoints."""

from __future__ import annotations

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from focusarena.auth.dependencies import get_current_user
from focusarena.auth.jwt import hash_token, verify_token
from focusarena.auth.schemas import (
    DevLoginRequest,
    LogoutRequest,
    RefreshRequest,
    TokenResponse,
    UserResponse,
)
from focusarena.auth.service import (
    IssuedTokens,
    get_or_create_user,
    get_refresh_token,
    get_user_by_id,
    issue_tokens,
    revoke_all_tokens,
    revoke_refresh_token,
    rotate_refresh_token,
)
from focusarena.config import get_settings
from focusarena.database import get_session
from focusarena.db.models import User
from focusarena.schemas import MessageResponse

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _token_response(tokens: IssuedTokens, user: User) -> TokenResponse:
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type="bearer",
        expires_in=tokens.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/dev-login", response_model=TokenResponse)
async def dev_login(
    body: DevLoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Sign in by email without an identity provider. Only available with debug on."""
    if not get_settings().debug:
        raise HTTPException(status_code=404, detail="Not Found")

    user, created = await get_or_create_user(db, body.email, name=body.name, avatar_url=body.avatar_url)
    tokens = await issue_tokens(db, user)
    await db.commit()
    logger.info("dev_login", user_id=user.id, created=created)
    return _token_response(tokens, user)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user's profile."""
    return UserResponse.model_validate(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Rotate refresh token."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    jti = payload.get("jti")
    if not jti:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    old_token = await get_refresh_token(db, jti)
    if old_token is None or old_token.token_hash != hash_token(body.refresh_token):
        raise HTTPException(status_code=401, detail="Refresh token not found")
    if old_token.revoked_at is not None:
        # Reuse of a rotated token: revoke the whole family
        await revoke_all_tokens(db, old_token.user_id)
        await db.commit()
        logger.warning("refresh_token_reuse", user_id=old_token.user_id)
        raise HTTPException(status_code=401, detail="Refresh token has been revoked")

    user = await get_user_by_id(db, old_token.user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")

    tokens = await rotate_refresh_token(db, old_token, user)
    await db.commit()
    return _token_response(tokens, user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Revoke a refresh token."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError:
        # Already unusable; logging out is idempotent
        return MessageResponse(message="Logged out successfully")

    jti = payload.get("jti")
    if jti:
        await revoke_refresh_token(db, jti)
        await db.commit()
    return MessageResponse(message="Logged out successfully")
