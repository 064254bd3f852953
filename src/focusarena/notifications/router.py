"""WebSocket endpoint with JWT authentication and channel multiplexing."""

from __future__ import annotations

import json
import uuid

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from sqlalchemy import select

from focusarena.auth.jwt import verify_token
from focusarena.db.models import User
from focusarena.notifications.manager import ConnectionManager

logger = structlog.get_logger()

router = APIRouter()


async def _authenticate(websocket: WebSocket, token: str) -> tuple[int, int | None] | None:
    """Resolve the token to ``(user_id, university_id)``, or None when it is not usable."""
    try:
        payload = verify_token(token, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None

    async with websocket.app.state.database.session() as db:
        row = (
            await db.execute(select(User.university_id, User.is_active).where(User.id == user_id))
        ).one_or_none()
    if row is None or not row.is_active:
        return None
    return user_id, row.university_id


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Single WebSocket endpoint with JWT authentication.

    The connection joins ``user:{id}`` and, for affiliated users,
    ``campus:{universityId}`` automatically.

    Protocol:
        Client -> Server:
            {"action": "ping"}
            {"action": "subscribe", "channel": "campus:3"}
            {"action": "unsubscribe", "channel": "campus:3"}

        Server -> Client:
            {"channel": "user:7", "event": "session:completed", "data": {...}}
            {"type": "pong"}
            {"type": "error", "message": "..."}
            {"type": "subscribed", "channel": "campus:3"}
            {"type": "unsubscribed", "channel": "campus:3"}
    """
    identity = await _authenticate(websocket, token)
    if identity is None:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    user_id, university_id = identity
    manager: ConnectionManager = websocket.app.state.manager
    conn_id = str(uuid.uuid4())
    await manager.connect(websocket, conn_id, user_id, university_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                await websocket.send_json({"type": "error", "message": "Invalid message"})
                continue

            action = msg.get("action")

            if action == "ping":
                await websocket.send_json({"type": "pong"})

            elif action == "subscribe":
                channel = str(msg.get("channel", ""))
                if await manager.subscribe(conn_id, channel):
                    await websocket.send_json({"type": "subscribed", "channel": channel})
                else:
                    await websocket.send_json({"type": "error", "message": f"Invalid channel: {channel}"})

            elif action == "unsubscribe":
                channel = str(msg.get("channel", ""))
                await manager.unsubscribe(conn_id, channel)
                await websocket.send_json({"type": "unsubscribed", "channel": channel})

            else:
                await websocket.send_json({"type": "error", "message": f"Unknown action: {action}"})

    except WebSocketDisconnect:
        await manager.disconnect(conn_id)
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
        await manager.disconnect(conn_id)
