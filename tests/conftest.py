"""Shared test fixtures.

Every test gets a fresh SQLite database (aiosqlite) with the schema created
from the ORM metadata. Redis is disabled, so the cache degrades to no-ops and
events go straight to the in-process connection manager.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any

# Settings are read at import time by focusarena.main
_TMP_DIR = tempfile.mkdtemp(prefix="focusarena_test_")
os.environ["FA_DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/import.db"
os.environ["FA_REDIS_URL"] = ""
os.environ["FA_SEED_ACHIEVEMENTS"] = "false"
os.environ["FA_DEBUG"] = "true"
os.environ["FA_LOG_FORMAT"] = "console"
os.environ["FA_LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from focusarena.auth.jwt import create_access_token  # noqa: E402
from focusarena.config import get_settings  # noqa: E402
from focusarena.db.base import Base  # noqa: E402
from focusarena.db.models import University, User  # noqa: E402
from focusarena.main import create_app, shutdown, startup  # noqa: E402
from focusarena.sessions.service import SessionService  # noqa: E402

get_settings.cache_clear()


@pytest_asyncio.fixture
async def app(tmp_path: Path) -> AsyncGenerator[FastAPI, None]:
    """Application wired to a throwaway database."""
    settings = get_settings().model_copy(
        update={"database_url": f"sqlite+aiosqlite:///{tmp_path / 'focusarena.db'}"}
    )
    application = create_app()
    await startup(application, settings)
    async with application.state.database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield application

    await shutdown(application)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for arranging data and asserting on it."""
    async with app.state.database.session() as session:
        yield session


@pytest.fixture
def make_session(app: FastAPI) -> Callable[[], AsyncSession]:
    """Factory for extra independent sessions (concurrency tests)."""
    return app.state.database.session


@pytest.fixture
def session_service(app: FastAPI, db: AsyncSession) -> SessionService:
    state = app.state
    return SessionService(db, state.cache, state.notifier, state.session_locks)


@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Create and commit a user. Keyword arguments override column defaults."""
    counter = {"n": 0}

    async def _make_user(email: str | None = None, **fields: Any) -> User:
        counter["n"] += 1
        user = User(email=email or f"student{counter['n']}@example.com", name=fields.pop("name", f"Student {counter['n']}"))
        for key, value in fields.items():
            setattr(user, key, value)
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
def make_university(db: AsyncSession) -> Callable[..., Awaitable[University]]:
    async def _make_university(name: str = "Tech University", country: str = "Germany", **fields: Any) -> University:
        university = University(name=name, country=country, **fields)
        db.add(university)
        await db.commit()
        return university

    return _make_university


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer headers carrying a fresh access token for ``user``."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}

    return _headers
