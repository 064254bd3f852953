"""Redis client wrapper with graceful fallback.

Every operation degrades to a no-op when Redis is not configured or errors:
reads return ``None``, writes return ``False``. Callers never need to guard.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from fastapi import Request

logger = logging.getLogger(__name__)


class CacheClient:
    """Thin pass-through over ``redis.asyncio`` with availability tracking."""

    def __init__(self, url: str | None) -> None:
        self.url = url or None
        self._redis: aioredis.Redis | None = None

    @property
    def available(self) -> bool:
        return self._redis is not None

    @property
    def redis(self) -> aioredis.Redis | None:
        return self._redis

    async def connect(self) -> None:
        """Open the connection pool. A failed ping leaves the cache disabled."""
        if self.url is None:
            logger.info("Redis not configured, cache and pub/sub run in fallback mode")
            return
        client = aioredis.from_url(  # type: ignore[no-untyped-call]
            self.url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
        try:
            await client.ping()
        except Exception:
            logger.warning("Redis unreachable at startup, continuing without cache", exc_info=True)
            await client.aclose()
            return
        self._redis = client

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get_json(self, key: str) -> Any | None:
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except Exception:
            logger.warning("Cache get failed for %s", key, exc_info=True)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if self._redis is None:
            return False
        try:
            payload = json.dumps(value, default=str)
            if ttl:
                await self._redis.set(key, payload, ex=ttl)
            else:
                await self._redis.set(key, payload)
        except Exception:
            logger.warning("Cache set failed for %s", key, exc_info=True)
            return False
        return True

    async def delete(self, *keys: str) -> bool:
        if self._redis is None or not keys:
            return False
        try:
            await self._redis.delete(*keys)
        except Exception:
            logger.warning("Cache delete failed for %s", keys, exc_info=True)
            return False
        return True

    async def clear_pattern(self, pattern: str) -> bool:
        """Delete every key matching a glob pattern."""
        if self._redis is None:
            return False
        try:
            keys = [key async for key in self._redis.scan_iter(match=pattern)]
            if keys:
                await self._redis.delete(*keys)
        except Exception:
            logger.warning("Cache clear failed for %s", pattern, exc_info=True)
            return False
        return True

    async def incr_window(self, key: str, ttl: int) -> int | None:
        """Increment a fixed-window counter. Returns None when the cache is down."""
        if self._redis is None:
            return None
        try:
            pipe = self._redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, ttl)
            results: list[Any] = await pipe.execute()
        except Exception:
            logger.warning("Rate limit counter failed for %s", key, exc_info=True)
            return None
        return int(results[0])

    async def publish(self, channel: str, message: str) -> bool:
        if self._redis is None:
            return False
        await self._redis.publish(channel, message)
        return True

    async def ping(self) -> bool:
        if self._redis is None:
            return False
        return bool(await self._redis.ping())


def get_cache(request: Request) -> CacheClient:
    """FastAPI dependency returning the app's cache client."""
    return request.app.state.cache


def user_stats_key(user_id: int, period: str) -> str:
    return f"user:stats:{user_id}:{period}"


def campus_activity_key(university_id: int) -> str:
    """Activity snapshot shared by every campus of one university."""
    return f"campus:activity:{university_id}"
