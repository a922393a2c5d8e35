"""Database session management.

Async SQLAlchemy 2.0 engine and session factory for the provider record
store, plus the FastAPI dependency that hands one session to each request.

Schema management is handled by Alembic (``alembic upgrade head``).
"""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

import structlog
from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ..core.config import Settings, get_settings

log = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy ORM models."""


class DatabaseManager:
    """Owns the async engine and session factory for one process."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def _engine_options(self) -> dict[str, Any]:
        # SQLite (local development) has no connection pool to size.
        if self.settings.DATABASE_URL.startswith("sqlite"):
            return {"echo": self.settings.DATABASE_ECHO}
        return {
            "echo": self.settings.DATABASE_ECHO,
            "pool_size": self.settings.DATABASE_POOL_SIZE,
            "max_overflow": self.settings.DATABASE_MAX_OVERFLOW,
            "pool_timeout": self.settings.DATABASE_POOL_TIMEOUT,
            "pool_pre_ping": True,
        }

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self.settings.DATABASE_URL, **self._engine_options())
            log.info("db_engine_created", pool_size=self.settings.DATABASE_POOL_SIZE)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._session_factory

    async def close(self) -> None:
        """Dispose the connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            log.info("db_connections_closed")

    async def health_check(self) -> dict:
        """Ping the database. Returns {'status': 'healthy'|'unhealthy'}."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return {"status": "healthy", "error": None}
        except Exception as exc:
            log.error("db_health_check_failed", error=str(exc))
            return {"status": "unhealthy", "error": str(exc)}

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session that commits on success and rolls back on error."""
        async_session = self.session_factory()
        try:
            yield async_session
            await async_session.commit()
        except Exception:
            await async_session.rollback()
            raise
        finally:
            await async_session.close()


# ---------------------------------------------------------------------------
# Global singleton
# ---------------------------------------------------------------------------

_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Return the process-level DatabaseManager singleton."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields a per-request async database session."""
    async with get_db_manager().session() as session:
        yield session


async def close_db() -> None:
    """Close all database connections (called on application shutdown)."""
    if _db_manager is not None:
        await _db_manager.close()


DbSession = Annotated[AsyncSession, Depends(get_db)]
