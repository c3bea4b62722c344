"""Structured logging for benchmark runs."""
from tagbench.observability.logging import (
    BenchmarkJsonFormatter,
    clear_run_context,
    get_json_logger,
    get_run_id,
    set_run_context,
    setup_logging,
)

__all__ = [
    "BenchmarkJsonFormatter",
    "get_json_logger",
    "setup_logging",
    "set_run_context",
    "clear_run_context",
    "get_run_id",
]
