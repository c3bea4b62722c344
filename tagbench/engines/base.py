"""
Base class for storage engine handles.

An engine handle owns one process-wide connection resource (a PostgreSQL
pool or a DuckDB connection). Handles are created and closed by the
EngineManager; storage models only borrow them.
"""

from abc import ABC, abstractmethod

POSTGRESQL = "postgresql"
DUCKDB = "duckdb"

ENGINES = (POSTGRESQL, DUCKDB)


class EngineHandle(ABC):
    """
    Abstract base class for engine handles.

    Implementations must provide:
    - name (property): Engine identifier ("postgresql", "duckdb")
    - connected (property): Whether connect() succeeded and close() was not called
    - connect: Open the underlying resource (idempotent)
    - close: Release the underlying resource (idempotent)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return engine identifier."""

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Return True while the handle can serve queries."""

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the underlying connection resource.

        Raises:
            StorageError: If the engine cannot be reached.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying connection resource."""

    def __repr__(self) -> str:
        state = "connected" if self.connected else "closed"
        return f"<{type(self).__name__} {self.name} {state}>"
