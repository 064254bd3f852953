"""Async SQLAlchemy engine and session management."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class Database:
    """Owns the engine and session factory for one application instance."""

    def __init__(self, url: str, *, timeout_seconds: float = 10.0, pool_size: int = 20, **engine_kwargs: Any) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.pool_size = pool_size
        self._engine_kwargs = engine_kwargs
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def connect(self) -> None:
        """Create the engine and session factory."""
        kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
        if self.url.startswith("postgresql"):
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=10,
                pool_timeout=self.timeout_seconds,
                connect_args={
                    "statement_cache_size": 0,
                    "timeout": self.timeout_seconds,
                    "command_timeout": self.timeout_seconds,
                },
            )
        elif self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"timeout": self.timeout_seconds}
        kwargs.update(self._engine_kwargs)

        self._engine = create_async_engine(self.url, **kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def close(self) -> None:
        """Dispose of the engine."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "Database not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._engine

    def session(self) -> AsyncSession:
        """Open a new session. Use as an async context manager."""
        if self._session_factory is None:
            msg = "Database not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._session_factory()


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session (FastAPI dependency)."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
