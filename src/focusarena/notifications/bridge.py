"""Bridges Redis pub/sub to WebSocket clients.

Pattern-subscribes to the ``user:*`` and ``campus:*`` channels that
``Notifier`` publishes on and fans each message out to the sockets of this
process that have joined the same channel.
"""

from __future__ import annotations

import asyncio
import json

import redis.asyncio as aioredis
import structlog

from focusarena.notifications.events import is_known_channel
from focusarena.notifications.manager import ConnectionManager

logger = structlog.get_logger()

CHANNEL_PATTERNS = ("user:*", "campus:*")


class PubSubBridge:
    """Subscribes to Redis pub/sub and pushes messages to WebSocket clients."""

    def __init__(self, redis_client: aioredis.Redis, manager: ConnectionManager) -> None:
        self.redis = redis_client
        self.manager = manager
        self._running = False

    async def start(self) -> None:
        """Listen until ``stop()`` is called or the task is cancelled."""
        self._running = True
        pubsub = self.redis.pubsub()
        await pubsub.psubscribe(*CHANNEL_PATTERNS)
        logger.info("pubsub_bridge_started", patterns=list(CHANNEL_PATTERNS))

        try:
            while self._running:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True,
                    timeout=1.0,
                )
                if message is None:
                    continue
                try:
                    await self.dispatch(message)
                except Exception:
                    logger.exception("pubsub_dispatch_failed")
        except asyncio.CancelledError:
            pass
        finally:
            await pubsub.punsubscribe()
            await pubsub.aclose()
            logger.info("pubsub_bridge_stopped")

    async def dispatch(self, message: dict) -> int:
        """Deliver one pub/sub message. Returns the number of sockets reached."""
        if message.get("type") != "pmessage":
            return 0

        channel = message.get("channel", "")
        if isinstance(channel, bytes):
            channel = channel.decode()
        if not is_known_channel(channel):
            return 0

        try:
            data = message.get("data", b"")
            if isinstance(data, bytes):
                data = data.decode()
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
            logger.warning("pubsub_invalid_message", channel=channel)
            return 0

        if not isinstance(payload, dict) or "event" not in payload:
            logger.warning("pubsub_invalid_message", channel=channel)
            return 0

        sent = await self.manager.send_to_channel(channel, payload["event"], payload.get("data"))
        if sent > 0:
            logger.debug("pubsub_delivered", channel=channel, event_name=payload["event"], recipients=sent)
        return sent

    async def stop(self) -> None:
        """Signal the bridge to stop."""
        self._running = False
