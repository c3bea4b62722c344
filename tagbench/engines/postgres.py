"""
PostgreSQL engine handle.

Wraps a SQLAlchemy AsyncEngine running on the asyncpg driver. Every
storage operation runs inside ``begin()``, which commits on success and
rolls back on any exception.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from tagbench.engines.base import POSTGRESQL, EngineHandle
from tagbench.errors import BackendNotInitializedError, StorageError

logger = logging.getLogger(__name__)


class PostgresEngine(EngineHandle):
    """
    Connection pool for PostgreSQL.

    Args:
        url: SQLAlchemy URL, e.g. ``postgresql+asyncpg://user:pw@host/db``
        pool_size: Persistent connections kept in the pool
        max_overflow: Extra connections allowed above pool_size
    """

    def __init__(self, url: str, pool_size: int = 5, max_overflow: int = 10):
        self._url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._engine: Optional[AsyncEngine] = None

    @property
    def name(self) -> str:
        return POSTGRESQL

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        """The underlying AsyncEngine.

        Raises:
            BackendNotInitializedError: If connect() has not been called.
        """
        if self._engine is None:
            raise BackendNotInitializedError(POSTGRESQL)
        return self._engine

    async def connect(self) -> None:
        if self._engine is not None:
            return

        engine = create_async_engine(
            self._url,
            pool_size=self._pool_size,
            max_overflow=self._max_overflow,
            pool_pre_ping=True,  # Verify connections before use
        )
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            await engine.dispose()
            raise StorageError(
                f"Could not connect to PostgreSQL: {exc}", engine=POSTGRESQL
            ) from exc

        self._engine = engine
        logger.info("PostgreSQL connection pool ready", extra={"pool_size": self._pool_size})

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[AsyncConnection]:
        """
        Run a block inside one transaction.

        Engine errors are re-raised as StorageError after rollback; other
        exceptions (e.g. PersonNotFoundError) propagate unchanged.
        """
        engine = self.engine
        try:
            async with engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StorageError(
                f"PostgreSQL rejected the operation: {exc}", engine=POSTGRESQL
            ) from exc

    async def close(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        await engine.dispose()
        logger.info("PostgreSQL connection pool closed")
