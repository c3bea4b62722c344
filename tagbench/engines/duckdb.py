"""
DuckDB engine handle.

DuckDB's Python API is synchronous. Each storage operation is written as a
plain function taking the connection and is executed in a worker thread
via ``run()``; an asyncio lock keeps operations strictly sequential so a
transaction never interleaves with another call on the same connection.
"""

import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

import duckdb

from tagbench.engines.base import DUCKDB, EngineHandle
from tagbench.errors import BackendNotInitializedError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@contextmanager
def transaction(connection: duckdb.DuckDBPyConnection) -> Iterator[duckdb.DuckDBPyConnection]:
    """Commit the block on success, roll it back on any exception."""
    connection.begin()
    try:
        yield connection
    except Exception:
        connection.rollback()
        raise
    connection.commit()


class DuckDBEngine(EngineHandle):
    """
    Single DuckDB connection shared by every DuckDB model.

    Args:
        database: Database file path, or ``:memory:`` for an in-memory database
    """

    def __init__(self, database: str = ":memory:"):
        self._database = database
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()

    @property
    def name(self) -> str:
        return DUCKDB

    @property
    def connected(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """The underlying connection.

        Raises:
            BackendNotInitializedError: If connect() has not been called.
        """
        if self._connection is None:
            raise BackendNotInitializedError(DUCKDB)
        return self._connection

    async def connect(self) -> None:
        if self._connection is not None:
            return
        try:
            self._connection = duckdb.connect(database=self._database)
        except duckdb.Error as exc:
            raise StorageError(
                f"Could not open DuckDB database {self._database}: {exc}", engine=DUCKDB
            ) from exc
        logger.info("DuckDB connection ready", extra={"database": self._database})

    async def run(self, operation: Callable[..., T], *args: Any) -> T:
        """
        Execute ``operation(connection, *args)`` in a worker thread.

        Raises:
            BackendNotInitializedError: If the engine is not connected.
            StorageError: If DuckDB rejects a statement.
        """
        connection = self.connection
        async with self._lock:
            try:
                return await asyncio.to_thread(operation, connection, *args)
            except duckdb.Error as exc:
                raise StorageError(
                    f"DuckDB rejected the operation: {exc}", engine=DUCKDB
                ) from exc

    async def close(self) -> None:
        if self._connection is None:
            return
        async with self._lock:
            connection, self._connection = self._connection, None
            connection.close()
        logger.info("DuckDB connection closed")
