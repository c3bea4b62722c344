"""
Shared pytest fixtures for benchmark tests.
"""

import os
from typing import List

import pytest
import pytest_asyncio

from tagbench.datasets.people import PersonData
from tagbench.engines.duckdb import DuckDBEngine
from tagbench.engines.postgres import PostgresEngine
from tagbench.settings import reset_settings

POSTGRES_URL_ENV = "TAGBENCH_TEST_POSTGRES_URL"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m not slow')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests requiring external services"
    )


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Keep TAGBENCH_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("TAGBENCH_") and key != POSTGRES_URL_ENV:
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def latency_samples() -> List[float]:
    """Sample latency values in milliseconds for percentile tests."""
    # 100 samples with some outliers
    return (
        [10.0] * 50 +   # 50 samples at 10ms
        [20.0] * 30 +   # 30 samples at 20ms
        [50.0] * 15 +   # 15 samples at 50ms
        [100.0] * 4 +   # 4 samples at 100ms (P95 area)
        [500.0] * 1     # 1 outlier at 500ms (P99 area)
    )


@pytest.fixture
def sample_people() -> List[PersonData]:
    """Small hand-written data set with known search answers."""
    return [
        PersonData(name="Alice", tags=["engineer", "remote", "backend"]),
        PersonData(name="Bob", tags=["engineer", "frontend"]),
        PersonData(name="Carol", tags=["manager", "remote"]),
        PersonData(name="Dave", tags=["designer"]),
        PersonData(name="Erin", tags=[]),
    ]


@pytest_asyncio.fixture
async def duckdb_engine():
    """Connected in-memory DuckDB engine, closed after the test."""
    engine = DuckDBEngine(":memory:")
    await engine.connect()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def postgres_engine():
    """Connected PostgreSQL engine; skips unless TAGBENCH_TEST_POSTGRES_URL is set."""
    url = os.environ.get(POSTGRES_URL_ENV)
    if not url:
        pytest.skip(f"{POSTGRES_URL_ENV} not set")
    engine = PostgresEngine(url)
    await engine.connect()
    yield engine
    await engine.close()
