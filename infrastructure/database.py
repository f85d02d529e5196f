"""
Database Infrastructure & Connection Management
================================================
Async PostgreSQL client with:
- Connection pooling (SQLAlchemy + asyncpg)
- Health monitoring
- Transaction context managers that commit on success and roll back on error

Architecture: Repository Pattern + Unit of Work
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool.impl import AsyncAdaptedQueuePool

from config.settings import Settings, get_settings
from core.exceptions import DatabaseConnectionError

# Initialize logger
logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Centralized database connection and session management.

    A pre-built session factory may be injected (tests); otherwise
    the engine and factory are created by initialize().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = session_factory
        self._is_initialized: bool = session_factory is not None

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.

        Creates connection pool and registers event listeners.
        Must be called during application startup.
        """
        if self._is_initialized:
            logger.warning("Database already initialized")
            return

        database = self._settings.database
        try:
            # Create async engine with optimized pooling
            self._engine = create_async_engine(
                database.async_url,
                echo=database.echo_sql,
                pool_size=database.pool_size,
                max_overflow=database.max_overflow,
                pool_timeout=database.pool_timeout,
                pool_recycle=database.pool_recycle,
                pool_pre_ping=True,  # Verify connections before use
                poolclass=AsyncAdaptedQueuePool,
            )

            self._register_events()

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            await self.health_check()

            self._is_initialized = True
            logger.info("Database initialized successfully")

        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            raise DatabaseConnectionError(
                "Failed to initialize database connection",
                host=database.host,
                database=database.database,
                cause=e,
            ) from e

    async def close(self) -> None:
        """
        Close database connections and dispose engine.

        Should be called during application shutdown.
        """
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._is_initialized = False
            logger.info("Database connections closed")

    def _register_events(self) -> None:
        """Register SQLAlchemy event listeners for monitoring."""
        if not self._engine:
            return

        @event.listens_for(self._engine.sync_engine, "connect")
        def receive_connect(dbapi_conn, connection_record):
            logger.debug("New database connection established")

        @event.listens_for(self._engine.sync_engine, "checkout")
        def receive_checkout(dbapi_conn, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

    async def health_check(self) -> bool:
        """
        Verify database connectivity.

        Returns:
            True if healthy, raises exception otherwise
        """
        if not self._engine:
            raise DatabaseConnectionError("Database engine not initialized")

        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except (OperationalError, DBAPIError) as e:
            logger.error(f"Database health check failed: {e}")
            raise DatabaseConnectionError("Database health check failed", cause=e) from e

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide async database session with automatic cleanup.

        Commits when the block exits normally; rolls back and re-raises on
        any exception, including cancellation.

        Yields:
            AsyncSession: Database session
        """
        if not self._session_factory:
            raise DatabaseConnectionError("Database not initialized")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except BaseException as e:
            await session.rollback()
            logger.error(f"Session error, rolled back: {e!r}")
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide transactional context with automatic rollback on error.

        Every statement issued inside the block is committed together or
        not at all.
        """
        async with self.session() as session:
            yield session

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def engine(self) -> AsyncEngine:
        """Get database engine (raises if not initialized)."""
        if not self._engine:
            raise DatabaseConnectionError("Database engine not initialized")
        return self._engine


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = ["DatabaseManager"]
