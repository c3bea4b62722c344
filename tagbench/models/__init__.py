"""
Storage model implementations.

Each model is one physical representation of the person/tag relationship
on one engine:
- normalized: person, tag and person_tag join tables
- jsonb: tags as a JSON array document column
- array: tags as a native array/list column

Use create_model() to instantiate a model by (database, model) name.
"""

from typing import Dict, List, Tuple, Type

from tagbench.engines.base import DUCKDB, POSTGRESQL, EngineHandle
from tagbench.errors import UnsupportedCombinationError

from .base import ARRAY, JSONB, MODELS, NORMALIZED, PersonRecord, TagModel
from .duckdb_array import DuckDBArrayModel
from .duckdb_jsonb import DuckDBJsonbModel
from .duckdb_normalized import DuckDBNormalizedModel
from .postgres_array import PostgresArrayModel
from .postgres_jsonb import PostgresJsonbModel
from .postgres_normalized import PostgresNormalizedModel

__all__ = [
    # Base classes and dataclasses
    "TagModel",
    "PersonRecord",
    "NORMALIZED",
    "JSONB",
    "ARRAY",
    "MODELS",
    # Concrete implementations
    "PostgresNormalizedModel",
    "PostgresJsonbModel",
    "PostgresArrayModel",
    "DuckDBNormalizedModel",
    "DuckDBJsonbModel",
    "DuckDBArrayModel",
    # Factory functions
    "create_model",
    "list_available_models",
]

# Registry of available models
_MODELS: Dict[Tuple[str, str], Type[TagModel]] = {
    (POSTGRESQL, NORMALIZED): PostgresNormalizedModel,
    (POSTGRESQL, JSONB): PostgresJsonbModel,
    (POSTGRESQL, ARRAY): PostgresArrayModel,
    (DUCKDB, NORMALIZED): DuckDBNormalizedModel,
    (DUCKDB, JSONB): DuckDBJsonbModel,
    (DUCKDB, ARRAY): DuckDBArrayModel,
}


def create_model(database: str, model: str, engine: EngineHandle) -> TagModel:
    """
    Create a storage model bound to an engine handle.

    Args:
        database: Engine name, "postgresql" or "duckdb" (case-insensitive).
        model: Variant name, "normalized", "jsonb" or "array" (case-insensitive).
        engine: Connected handle for ``database``. The model borrows it.

    Returns:
        Instance of the requested model.

    Raises:
        UnsupportedCombinationError: If no model is registered for the pair.

    Example:
        >>> model = create_model("duckdb", "array", DuckDBEngine())
        >>> model.name
        'DUCKDB-ARRAY'
    """
    key = (database.lower(), model.lower())
    if key not in _MODELS:
        raise UnsupportedCombinationError(database, model)
    return _MODELS[key](engine)


def list_available_models() -> List[Tuple[str, str]]:
    """
    List registered (database, model) pairs.

    Example:
        >>> list_available_models()[0]
        ('duckdb', 'array')
    """
    return sorted(_MODELS.keys())
