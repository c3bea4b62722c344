"""
Exception hierarchy for the tag benchmark.

Three families of failure are kept apart so callers can tell them apart:

- PreconditionError: an operation was invoked before its prerequisites
  exist (engine not connected, unsupported engine/model pair).
- StorageError: the storage engine rejected a query or transaction.
- ConfigurationError: the benchmark configuration names something unknown
  or carries an invalid size. Raised before any storage call.
"""

from typing import Optional


class TagBenchError(Exception):
    """Base class for all benchmark errors."""


class PreconditionError(TagBenchError):
    """An operation was invoked before the state it requires exists."""


class BackendNotInitializedError(PreconditionError):
    """The engine handle backing a model is not connected (or already closed)."""

    def __init__(self, engine: str):
        self.engine = engine
        super().__init__(f"{engine} not initialized")


class UnsupportedCombinationError(PreconditionError):
    """No storage model is registered for the requested (database, model) pair."""

    def __init__(self, database: str, model: str):
        self.database = database
        self.model = model
        super().__init__(f"Unsupported combination: {database} + {model}")


class StorageError(TagBenchError):
    """The storage engine rejected a query or transaction.

    The engine's own exception is always chained as ``__cause__``.
    """

    def __init__(self, message: str, engine: Optional[str] = None):
        self.engine = engine
        super().__init__(message)


class PersonNotFoundError(StorageError):
    """An update referenced a person id that does not exist."""

    def __init__(self, person_id: int, engine: Optional[str] = None):
        self.person_id = person_id
        super().__init__(f"Person {person_id} not found", engine=engine)


class ConfigurationError(TagBenchError):
    """The benchmark configuration is invalid."""
