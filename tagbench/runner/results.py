"""Result dataclasses for the benchmark runner.

These dataclasses store the results of benchmark runs including:
- The run configuration
- Per (database, model) pair search latencies
- Per pair write latencies (single insert, batch insert, update)
- Aggregated benchmark results
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from tagbench.engines.base import DUCKDB, ENGINES, POSTGRESQL
from tagbench.errors import ConfigurationError
from tagbench.metrics.latency import LatencyStats
from tagbench.models.base import MODELS

BENCHMARK_TYPES = ("search", "write", "all")
DATABASE_CHOICES = (POSTGRESQL, DUCKDB, "both")


@dataclass
class BenchmarkConfig:
    """Configuration for a benchmark run.

    Attributes:
        benchmark_type: "search", "write" or "all"
        database: "postgresql", "duckdb" or "both"
        model: One of "normalized", "jsonb", "array", or None for all
        data_size: Number of people seeded before the workloads
        search_iterations: Measured runs per search shape
        warmup_iterations: Unmeasured runs per search shape
        write_test_size: Records per write workload
        batch_size: Records per seeding batch
        seed: Random seed for generated data (None for nondeterministic)
    """

    benchmark_type: str = "all"
    database: str = POSTGRESQL
    model: Optional[str] = None
    data_size: int = 100_000
    search_iterations: int = 1000
    warmup_iterations: int = 100
    write_test_size: int = 10_000
    batch_size: int = 1000
    seed: Optional[int] = None

    def validate(self) -> None:
        """Check names and sizes.

        Raises:
            ConfigurationError: If a name is unknown or a size is out of range
        """
        if self.benchmark_type not in BENCHMARK_TYPES:
            raise ConfigurationError(
                f"Unknown benchmark type: '{self.benchmark_type}'. "
                f"Use one of: {', '.join(BENCHMARK_TYPES)}"
            )
        if self.database not in DATABASE_CHOICES:
            raise ConfigurationError(
                f"Unknown database: '{self.database}'. "
                f"Use one of: {', '.join(DATABASE_CHOICES)}"
            )
        if self.model is not None and self.model not in MODELS:
            raise ConfigurationError(
                f"Unknown model: '{self.model}'. Use one of: {', '.join(MODELS)}"
            )
        for name in ("data_size", "search_iterations", "write_test_size", "batch_size"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.warmup_iterations < 0:
            raise ConfigurationError(
                f"warmup_iterations must not be negative, got {self.warmup_iterations}"
            )

    @property
    def databases(self) -> List[str]:
        """Selected engines, in run order."""
        if self.database == "both":
            return list(ENGINES)
        return [self.database]

    @property
    def models(self) -> List[str]:
        """Selected variants, in run order."""
        if self.model is None:
            return list(MODELS)
        return [self.model]

    @property
    def runs_search(self) -> bool:
        return self.benchmark_type in ("search", "all")

    @property
    def runs_write(self) -> bool:
        return self.benchmark_type in ("write", "all")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "benchmark_type": self.benchmark_type,
            "database": self.database,
            "model": self.model,
            "data_size": self.data_size,
            "search_iterations": self.search_iterations,
            "warmup_iterations": self.warmup_iterations,
            "write_test_size": self.write_test_size,
            "batch_size": self.batch_size,
            "seed": self.seed,
        }


@dataclass
class QueryResult:
    """Latency of one search shape.

    Attributes:
        name: Display name, e.g. "Single tag (engineer)"
        stats: Statistics over the measured runs
    """

    name: str
    stats: LatencyStats


@dataclass
class WriteResult:
    """Latencies of the write workload.

    Attributes:
        single: One sample per single insert
        batch: One sample for the whole batch insert
        batch_size: Number of records in the timed batch
        update: One sample per tag update
    """

    single: LatencyStats
    batch: LatencyStats
    batch_size: int
    update: LatencyStats

    @property
    def batch_avg_per_record_ms(self) -> float:
        """Batch duration spread over its records."""
        if self.batch_size == 0:
            return 0.0
        return self.batch.total / self.batch_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "single": self.single.to_dict(),
            "batch": self.batch.to_dict(),
            "batch_size": self.batch_size,
            "batch_avg_per_record_ms": self.batch_avg_per_record_ms,
            "update": self.update.to_dict(),
        }


@dataclass
class PairResult:
    """Result of benchmarking one (database, model) pair.

    Attributes:
        database: Engine name
        model: Variant name
        seeded_records: Number of people seeded before the workloads
        query_results: One entry per search shape (empty for write-only runs)
        write_result: Write workload result (None for search-only runs)
    """

    database: str
    model: str
    seeded_records: int
    query_results: List[QueryResult] = field(default_factory=list)
    write_result: Optional[WriteResult] = None

    @property
    def label(self) -> str:
        """Report label, e.g. ``POSTGRESQL-ARRAY``."""
        return f"{self.database}-{self.model}".upper()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "database": self.database,
            "model": self.model,
            "label": self.label,
            "seeded_records": self.seeded_records,
            "query_results": [
                {"name": q.name, "latency_stats": q.stats.to_dict()}
                for q in self.query_results
            ],
            "write_result": self.write_result.to_dict() if self.write_result else None,
        }


@dataclass
class BenchmarkResult:
    """Aggregated result of a complete benchmark run.

    Attributes:
        config: The benchmark configuration used
        pair_results: Results for each (database, model) pair, in run order
        timestamp: When the benchmark started
        total_duration_seconds: Total time taken for benchmark
    """

    config: BenchmarkConfig
    pair_results: List[PairResult]
    timestamp: datetime
    total_duration_seconds: float

    def get_pair(self, database: str, model: str) -> Optional[PairResult]:
        """Find the result for one pair, or None if it was not run."""
        for pair in self.pair_results:
            if pair.database == database and pair.model == model:
                return pair
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization.

        Returns:
            Dictionary representation of the benchmark result
        """
        return {
            "config": self.config.to_dict(),
            "pair_results": [p.to_dict() for p in self.pair_results],
            "timestamp": self.timestamp.isoformat(),
            "total_duration_seconds": self.total_duration_seconds,
        }
