"""WebSocket connection manager.

Tracks active WebSocket connections and the channels each one has joined.
Every connection joins its own ``user:{id}`` channel and, when the user is
affiliated with a university, ``campus:{universityId}``.
"""

from __future__ import annotations

import json
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket

from focusarena.notifications.events import campus_channel, user_channel

logger = structlog.get_logger()


@dataclass
class ClientConnection:
    """Represents a single WebSocket client."""

    websocket: WebSocket
    user_id: int
    university_id: int | None = None
    subscriptions: set[str] = field(default_factory=set)
    connected_at: float = field(default_factory=time.time)
    messages_sent: int = 0

    @property
    def allowed_channels(self) -> set[str]:
        channels = {user_channel(self.user_id)}
        if self.university_id is not None:
            channels.add(campus_channel(self.university_id))
        return channels


class ConnectionManager:
    """Manages all active WebSocket connections of this process.

    Safe for asyncio via the single-threaded event loop.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ClientConnection] = {}  # conn_id -> client
        self._channels: dict[str, set[str]] = defaultdict(set)  # channel -> {conn_ids}
        self._user_connections: dict[int, set[str]] = defaultdict(set)  # user_id -> {conn_ids}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(
        self,
        websocket: WebSocket,
        conn_id: str,
        user_id: int,
        university_id: int | None = None,
    ) -> ClientConnection:
        """Accept a new WebSocket connection and join its default channels."""
        await websocket.accept()
        client = ClientConnection(
            websocket=websocket,
            user_id=user_id,
            university_id=university_id,
        )
        self._connections[conn_id] = client
        self._user_connections[user_id].add(conn_id)
        for channel in client.allowed_channels:
            client.subscriptions.add(channel)
            self._channels[channel].add(conn_id)
        logger.info("ws_connected", conn_id=conn_id, user_id=user_id, university_id=university_id)
        return client

    async def disconnect(self, conn_id: str) -> None:
        """Remove a WebSocket connection and its subscriptions."""
        client = self._connections.pop(conn_id, None)
        if client is None:
            return

        for channel in client.subscriptions:
            self._channels[channel].discard(conn_id)
            if not self._channels[channel]:
                del self._channels[channel]

        self._user_connections[client.user_id].discard(conn_id)
        if not self._user_connections[client.user_id]:
            del self._user_connections[client.user_id]

        logger.info("ws_disconnected", conn_id=conn_id, user_id=client.user_id)

    async def subscribe(self, conn_id: str, channel: str) -> bool:
        """Join a channel. Only the connection's own user and campus channels are allowed."""
        client = self._connections.get(conn_id)
        if client is None:
            return False

        if channel not in client.allowed_channels:
            return False

        client.subscriptions.add(channel)
        self._channels[channel].add(conn_id)
        logger.debug("ws_subscribed", conn_id=conn_id, channel=channel)
        return True

    async def unsubscribe(self, conn_id: str, channel: str) -> bool:
        """Leave a channel."""
        client = self._connections.get(conn_id)
        if client is None:
            return False

        client.subscriptions.discard(channel)
        members = self._channels.get(channel)
        if members is not None:
            members.discard(conn_id)
            if not members:
                del self._channels[channel]
        return True

    async def send_to_channel(self, channel: str, event: str, data: Any) -> int:
        """Send one event to every connection on a channel.

        Returns the number of clients that received it. Connections whose
        send fails are dropped.
        """
        conn_ids = list(self._channels.get(channel, ()))
        if not conn_ids:
            return 0

        payload = json.dumps({"channel": channel, "event": event, "data": data}, default=str)
        sent = 0
        failed: list[str] = []

        for conn_id in conn_ids:
            client = self._connections.get(conn_id)
            if client is None:
                failed.append(conn_id)
                continue
            try:
                await client.websocket.send_text(payload)
                client.messages_sent += 1
                sent += 1
            except Exception:
                failed.append(conn_id)

        for conn_id in failed:
            await self.disconnect(conn_id)

        return sent

    def get_stats(self) -> dict:
        """Connection statistics."""
        return {
            "total_connections": len(self._connections),
            "unique_users": len(self._user_connections),
            "channels": {ch: len(conns) for ch, conns in self._channels.items() if conns},
        }
