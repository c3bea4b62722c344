"""Benchmark runner module for orchestrating storage model comparisons."""

from tagbench.runner.results import (
    BenchmarkConfig,
    BenchmarkResult,
    PairResult,
    QueryResult,
    WriteResult,
)
from tagbench.runner.benchmark_runner import SEARCH_CASES, BenchmarkRunner

__all__ = [
    "BenchmarkConfig",
    "QueryResult",
    "WriteResult",
    "PairResult",
    "BenchmarkResult",
    "BenchmarkRunner",
    "SEARCH_CASES",
]
