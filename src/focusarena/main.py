"""FastAPI application factory."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from focusarena.auth.router import router as auth_router
from focusarena.cache import CacheClient
from focusarena.campuses.router import router as campuses_router
from focusarena.config import Settings, get_settings
from focusarena.database import Database
from focusarena.friends.router import router as friends_router
from focusarena.gamification.router import router as achievements_router
from focusarena.gamification.seed import seed_achievements
from focusarena.health.router import router as health_router
from focusarena.leaderboards.router import router as leaderboards_router
from focusarena.middleware import setup_middleware
from focusarena.notifications.bridge import PubSubBridge
from focusarena.notifications.manager import ConnectionManager
from focusarena.notifications.publisher import Notifier
from focusarena.notifications.router import router as ws_router
from focusarena.sessions.router import router as sessions_router
from focusarena.sessions.service import UserLocks
from focusarena.users.router import router as users_router

logger = logging.getLogger(__name__)


async def startup(app: FastAPI, settings: Settings) -> None:
    """Connect storage and cache, seed the catalog and start the pub/sub bridge."""
    database = Database(
        settings.database_url,
        timeout_seconds=settings.database_timeout_seconds,
        pool_size=settings.database_pool_size,
    )
    await database.connect()
    cache = CacheClient(settings.redis_url)
    await cache.connect()
    manager = ConnectionManager()

    app.state.database = database
    app.state.cache = cache
    app.state.manager = manager
    app.state.notifier = Notifier(cache, manager)
    app.state.session_locks = UserLocks()
    app.state.bridge = None
    app.state.bridge_task = None

    # Seed achievement definitions (idempotent)
    if settings.seed_achievements:
        try:
            async with database.session() as db:
                await seed_achievements(db)
        except Exception:
            logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    # Redis pub/sub -> WebSocket bridge, only when Redis is reachable
    if cache.redis is not None:
        bridge = PubSubBridge(cache.redis, manager)
        app.state.bridge = bridge
        app.state.bridge_task = asyncio.create_task(bridge.start())


async def shutdown(app: FastAPI) -> None:
    bridge: PubSubBridge | None = app.state.bridge
    task: asyncio.Task | None = app.state.bridge_task
    if bridge is not None and task is not None:
        await bridge.stop()
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("Pub/sub bridge task ended with an error", exc_info=True)

    await app.state.database.close()
    await app.state.cache.close()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    await startup(app, get_settings())
    yield
    await shutdown(app)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FocusArena API",
        description="Backend API for FocusArena: gamified study sessions, achievements and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(sessions_router)
    app.include_router(achievements_router)
    app.include_router(leaderboards_router)
    app.include_router(friends_router)
    app.include_router(campuses_router)
    app.include_router(ws_router)

    return app


app = create_app()
