"""
Storage engine handles.

- PostgresEngine: SQLAlchemy AsyncEngine on asyncpg
- DuckDBEngine: embedded DuckDB connection driven from a worker thread

EngineManager creates them lazily and closes them once per run.
"""

from .base import DUCKDB, ENGINES, POSTGRESQL, EngineHandle
from .duckdb import DuckDBEngine, transaction
from .manager import EngineFactory, EngineManager, default_engine_factories
from .postgres import PostgresEngine

__all__ = [
    "POSTGRESQL",
    "DUCKDB",
    "ENGINES",
    "EngineHandle",
    "PostgresEngine",
    "DuckDBEngine",
    "transaction",
    "EngineManager",
    "EngineFactory",
    "default_engine_factories",
]
