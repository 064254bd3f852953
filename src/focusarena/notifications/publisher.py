"""Fire-and-forget event publishing.

With Redis available, events go out over pub/sub so every API process can
deliver them to its own sockets (see ``bridge``). Without Redis they are
handed straight to this process's ``ConnectionManager``. Channel names and
frames are identical either way. Publishing never raises.
"""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import Request

from focusarena.cache import CacheClient
from focusarena.notifications.events import Event, campus_channel, user_channel
from focusarena.notifications.manager import ConnectionManager

logger = structlog.get_logger()


class Notifier:
    """Publishes events to ``user:{id}`` and ``campus:{id}`` channels."""

    def __init__(self, cache: CacheClient, manager: ConnectionManager) -> None:
        self.cache = cache
        self.manager = manager

    async def publish(self, channel: str, event: str, data: Any) -> bool:
        """Publish one event. Returns False when delivery failed (already logged)."""
        try:
            if self.cache.available:
                message = json.dumps({"event": event, "data": data}, default=str)
                await self.cache.publish(channel, message)
            else:
                await self.manager.send_to_channel(channel, event, data)
        except Exception:
            logger.warning("publish_failed", channel=channel, event_name=event, exc_info=True)
            return False
        return True

    async def publish_all(self, events: list[Event]) -> None:
        """Publish events one after another, preserving their order."""
        for channel, event, data in events:
            await self.publish(channel, event, data)

    async def to_user(self, user_id: int, event: str, data: Any) -> bool:
        return await self.publish(user_channel(user_id), event, data)

    async def to_campus(self, university_id: int, event: str, data: Any) -> bool:
        return await self.publish(campus_channel(university_id), event, data)


def get_notifier(request: Request) -> Notifier:
    """FastAPI dependency returning the app's notifier."""
    return request.app.state.notifier
