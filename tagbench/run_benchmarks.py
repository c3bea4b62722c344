#!/usr/bin/env python
"""Benchmark execution script.

Seed each selected storage model, run the search and write workloads, and
print one latency line per measurement.

Usage:
    # Quick run against an in-process DuckDB
    tagbench --database duckdb --data-size 1000 --iterations 50

    # Full benchmark against PostgreSQL (connection from TAGBENCH_POSTGRES_* env vars)
    tagbench

    # One model on both engines, search only
    tagbench --type search --database both --model array

    # Save results to file (.json for JSON, anything else for Markdown)
    tagbench --database duckdb --output docs/BENCHMARK-RESULTS.md
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from tagbench.engines.base import ENGINES
from tagbench.models.base import MODELS
from tagbench.observability.logging import setup_logging
from tagbench.reporter.benchmark_reporter import BenchmarkReporter, ReportFormat
from tagbench.runner.benchmark_runner import BenchmarkRunner
from tagbench.runner.results import BENCHMARK_TYPES, BenchmarkConfig, BenchmarkResult
from tagbench.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tagbench",
        description="Benchmark normalized, jsonb and array tag storage on PostgreSQL and DuckDB",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Quick test run
  %(prog)s --database duckdb --data-size 1000 --iterations 50 --write-size 100

  # Search benchmark for one model on both engines
  %(prog)s --type search --database both --model jsonb

  # Save results
  %(prog)s --output docs/BENCHMARK-RESULTS.md
        """,
    )

    parser.add_argument(
        "--type",
        choices=BENCHMARK_TYPES,
        default="all",
        help="Workloads to run (default: all)",
    )
    parser.add_argument(
        "--database",
        choices=[*ENGINES, "both"],
        default="postgresql",
        help="Engine(s) to benchmark (default: postgresql)",
    )
    parser.add_argument(
        "--model",
        choices=MODELS,
        default=None,
        help="Storage model to benchmark (default: all models)",
    )
    parser.add_argument(
        "--data-size",
        type=int,
        default=None,
        help="People seeded per model (default: 100000)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Measured runs per search query (default: 1000)",
    )
    parser.add_argument(
        "--warmup-iterations",
        type=int,
        default=None,
        help="Unmeasured runs per search query (default: 100)",
    )
    parser.add_argument(
        "--write-size",
        type=int,
        default=None,
        help="Records per write workload (default: 10000)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for generated data (default: nondeterministic)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path to save the report (.json for JSON, otherwise Markdown)",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON on stderr",
    )
    return parser


def build_config(args: argparse.Namespace, settings: Settings) -> BenchmarkConfig:
    """Merge command line flags over settings defaults."""

    def pick(value, default):
        return default if value is None else value

    return BenchmarkConfig(
        benchmark_type=args.type,
        database=args.database,
        model=args.model,
        data_size=pick(args.data_size, settings.data_size),
        search_iterations=pick(args.iterations, settings.search_iterations),
        warmup_iterations=pick(args.warmup_iterations, settings.warmup_iterations),
        write_test_size=pick(args.write_size, settings.write_test_size),
        batch_size=settings.batch_size,
        seed=pick(args.seed, settings.seed),
    )


def write_report(result: BenchmarkResult, output_path: Path) -> None:
    """Save a JSON or Markdown report depending on the file suffix."""
    reporter = BenchmarkReporter(result)
    if output_path.suffix.lower() == ".json":
        content = reporter.generate_report(ReportFormat.JSON)
    else:
        header = f"<!-- Generated by tagbench on {datetime.now().isoformat()} -->\n\n"
        content = header + reporter.generate_report(ReportFormat.MARKDOWN)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content)
    print(f"Report saved to: {output_path}")


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"ERROR: Invalid settings: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(
        level=args.log_level or settings.log_level,
        format_json=args.json_logs or settings.log_json,
    )

    config = build_config(args, settings)

    print("Database Tags Benchmark Starting...")
    print()
    print(
        f"Configuration: type={config.benchmark_type}, database={config.database}, "
        f"model={config.model or 'all'}, data_size={config.data_size:,}, "
        f"search_iterations={config.search_iterations}"
    )
    print()

    try:
        result = asyncio.run(BenchmarkRunner(config).run())
    except Exception as e:
        print(f"ERROR: Benchmark failed: {e}", file=sys.stderr)
        sys.exit(1)

    print()
    print(BenchmarkReporter(result).to_console())
    print()

    if args.output:
        write_report(result, args.output)
        print()

    print("Benchmark completed successfully!")


if __name__ == "__main__":
    main()
