"""
Database session management with async SQLAlchemy 2.0.

Provides:
- Async engine (QueuePool for PostgreSQL, StaticPool for SQLite)
- Session factory shared by request handlers and the scheduler
- Dependency injection for route handlers
"""

import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool, StaticPool

from engagehub.config import settings

logger = logging.getLogger(__name__)


# Base class for all ORM models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class DatabaseManager:
    """
    Manages database engine and session lifecycle.

    One engine per process; the scheduler opens its own sessions from
    the same factory so every tenant run gets an isolated transaction.
    """

    def __init__(self) -> None:
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    def init(self, database_url: str | None = None) -> None:
        """
        Initialize database engine and session factory.

        Called during application startup (lifespan event) and by
        Celery workers before running a sweep.
        """
        url = database_url or settings.database_url
        logger.info("Initializing database connection...")

        if url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across sessions
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        elif settings.is_development:
            engine_kwargs = {"poolclass": NullPool}
        else:
            engine_kwargs = {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
            }

        self._engine = create_async_engine(
            url,
            echo=settings.db_echo and settings.is_development,
            pool_pre_ping=True,  # Verify connections before using
            **engine_kwargs,
        )

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,  # Don't expire objects after commit
            autoflush=False,  # Manual control over flushes
        )

        logger.info("Database connection initialized successfully")

    async def close(self) -> None:
        """Dispose the engine (lifespan shutdown)."""
        if self._engine:
            logger.info("Closing database connections...")
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connections closed")

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if not self._engine:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Session factory for code running outside a request (scheduler, workers)."""
        if not self._session_factory:
            raise RuntimeError("Database not initialized. Call init() first.")
        return self._session_factory

    async def create_all(self) -> None:
        """Create tables that don't exist yet (local runs and scripts)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Dependency injection for database sessions.

        Yields:
            AsyncSession: Database session with automatic cleanup
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()  # Auto-commit on success
            except Exception:
                await session.rollback()  # Auto-rollback on error
                raise


# Global instance
db_manager = DatabaseManager()


# Convenience function for dependency injection
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        from engagehub.core.database import get_db

        @router.get("/comments")
        async def list_comments(db: AsyncSession = Depends(get_db)):
            ...
    """
    async for session in db_manager.get_session():
        yield session
