"""
Lifecycle owner for engine handles.

The manager creates each engine lazily on first use, hands the same handle
to every model on that engine, and closes everything it opened exactly
once.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional

from tagbench.engines.base import DUCKDB, POSTGRESQL, EngineHandle
from tagbench.engines.duckdb import DuckDBEngine
from tagbench.engines.postgres import PostgresEngine
from tagbench.errors import BackendNotInitializedError, ConfigurationError
from tagbench.settings import Settings

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], EngineHandle]


def default_engine_factories(settings: Settings) -> Dict[str, EngineFactory]:
    """Build the engine factories described by ``settings``."""
    return {
        POSTGRESQL: lambda: PostgresEngine(
            settings.database_url,
            pool_size=settings.postgres_pool_size,
            max_overflow=settings.postgres_max_overflow,
        ),
        DUCKDB: lambda: DuckDBEngine(settings.duckdb_database),
    }


class EngineManager:
    """
    Owns every engine handle used during a run.

    Args:
        factories: Mapping of engine name to a zero-argument factory.
            Tests inject their own (e.g. an in-memory DuckDB).

    Example:
        engines = EngineManager.from_settings(get_settings())
        try:
            duck = await engines.acquire("duckdb")
            ...
        finally:
            await engines.close_all()
    """

    def __init__(self, factories: Mapping[str, EngineFactory]):
        self._factories = dict(factories)
        self._engines: Dict[str, EngineHandle] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "EngineManager":
        return cls(default_engine_factories(settings))

    @property
    def available(self) -> List[str]:
        """Engine names this manager can create."""
        return sorted(self._factories)

    @property
    def acquired(self) -> List[str]:
        """Engine names currently held open, in acquisition order."""
        return list(self._engines)

    async def acquire(self, name: str) -> EngineHandle:
        """
        Return the handle for ``name``, creating and connecting it on first use.

        Raises:
            ConfigurationError: If no factory is registered for ``name``.
            StorageError: If the engine cannot be reached.
        """
        engine = self._engines.get(name)
        if engine is not None:
            return engine

        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown database: '{name}'. Available databases: {', '.join(self.available)}"
            )

        engine = factory()
        await engine.connect()
        self._engines[name] = engine
        logger.info("Engine acquired", extra={"engine": name})
        return engine

    def get(self, name: str) -> EngineHandle:
        """
        Return an already acquired handle.

        Raises:
            BackendNotInitializedError: If ``name`` was never acquired.
        """
        engine = self._engines.get(name)
        if engine is None:
            raise BackendNotInitializedError(name)
        return engine

    async def close_all(self) -> None:
        """
        Close every acquired engine, most recent first.

        Every engine is closed even if an earlier close fails; the first
        failure is re-raised afterwards.
        """
        first_error: Optional[BaseException] = None
        while self._engines:
            name, engine = self._engines.popitem()
            try:
                await engine.close()
            except Exception as exc:
                logger.exception("Failed to close engine", extra={"engine": name})
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
