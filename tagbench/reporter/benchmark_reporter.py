"""Benchmark reporter for tag storage comparisons.

Generates reports from benchmark results including:
- One latency line per search shape and per write workload
- A comparison table per workload across (database, model) pairs
- The fastest pair for each search shape
- Multiple output formats (JSON, Markdown, Console)
"""

import json
from enum import Enum
from typing import Any, Dict, Optional

from tagbench.reporter.lines import format_ms, format_query_line, format_write_lines
from tagbench.runner.results import BenchmarkResult, PairResult


class ReportFormat(Enum):
    """Available report output formats."""

    JSON = "json"
    MARKDOWN = "markdown"
    CONSOLE = "console"


class BenchmarkReporter:
    """Generates comparison reports from benchmark results.

    Attributes:
        result: The benchmark result to report on
    """

    def __init__(self, result: BenchmarkResult):
        self.result = result

    def generate_report(self, format: ReportFormat = ReportFormat.JSON) -> str:
        """Generate a benchmark report in the specified format.

        Args:
            format: Output format (JSON, MARKDOWN, or CONSOLE)

        Returns:
            Report string in the specified format
        """
        if format == ReportFormat.JSON:
            return self.to_json()
        elif format == ReportFormat.MARKDOWN:
            return self.to_markdown()
        elif format == ReportFormat.CONSOLE:
            return self.to_console()
        else:
            raise ValueError(f"Unknown format: {format}")

    def to_dict(self) -> Dict[str, Any]:
        """Generate report as a dictionary for programmatic access."""
        report = self.result.to_dict()
        report["fastest"] = self._build_fastest()
        return report

    def to_json(self, indent: int = 2) -> str:
        """Generate report as JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def to_markdown(self) -> str:
        """Generate report as Markdown string."""
        lines = []
        config = self.result.config

        lines.append("# Tag Storage Benchmark Report")
        lines.append("")

        lines.append("## Configuration")
        lines.append("")
        lines.append(f"- **Type**: {config.benchmark_type}")
        lines.append(f"- **Database**: {config.database}")
        lines.append(f"- **Model**: {config.model or 'all'}")
        lines.append(f"- **Data size**: {config.data_size:,}")
        lines.append(f"- **Search iterations**: {config.search_iterations}")
        lines.append(f"- **Warmup iterations**: {config.warmup_iterations}")
        lines.append(f"- **Write test size**: {config.write_test_size:,}")
        lines.append(f"- **Timestamp**: {self.result.timestamp.isoformat()}")
        lines.append(f"- **Duration**: {self.result.total_duration_seconds:.2f} seconds")
        lines.append("")

        searched = [p for p in self.result.pair_results if p.query_results]
        if searched:
            lines.append("## Search Latency")
            lines.append("")
            lines.append("| Pair | Query | Avg (ms) | P50 (ms) | P95 (ms) | P99 (ms) | Queries |")
            lines.append("|------|-------|----------|----------|----------|----------|---------|")
            for pair in searched:
                for query in pair.query_results:
                    stats = query.stats
                    lines.append(
                        f"| {pair.label} | {query.name} | {stats.mean:.2f} | "
                        f"{stats.p50:.2f} | {stats.p95:.2f} | {stats.p99:.2f} | {stats.count} |"
                    )
            lines.append("")

        written = [p for p in self.result.pair_results if p.write_result]
        if written:
            lines.append("## Write Latency")
            lines.append("")
            lines.append("| Pair | Single (ms/record) | Batch (ms/record) | Update (ms/record) |")
            lines.append("|------|--------------------|-------------------|--------------------|")
            for pair in written:
                write = pair.write_result
                lines.append(
                    f"| {pair.label} | {write.single.mean:.3f} | "
                    f"{write.batch_avg_per_record_ms:.3f} | {write.update.mean:.3f} |"
                )
            lines.append("")

        fastest = self._build_fastest()
        if fastest:
            lines.append("## Fastest Pair per Query")
            lines.append("")
            for query_name, entry in fastest.items():
                lines.append(f"- **{query_name}**: {entry['label']} (p95 {entry['p95']:.2f} ms)")
            lines.append("")

        return "\n".join(lines)

    def to_console(self) -> str:
        """Generate compact console-friendly report."""
        lines = ["=== Benchmark Results ===", ""]

        for pair in self.result.pair_results:
            lines.append(f"{pair.label} ({pair.seeded_records:,} seeded records)")
            for query in pair.query_results:
                lines.append("  " + format_query_line(pair.label, query))
            if pair.write_result:
                for line in format_write_lines(pair.label, pair.write_result):
                    lines.append("  " + line)
            lines.append("")

        fastest = self._build_fastest()
        if fastest:
            lines.append("Fastest (by p95):")
            for query_name, entry in fastest.items():
                lines.append(f"  {query_name}: {entry['label']} ({format_ms(entry['p95'])})")
            lines.append("")

        lines.append(f"Completed in {self.result.total_duration_seconds:.1f}s")
        return "\n".join(lines)

    def _build_fastest(self) -> Dict[str, Dict[str, Any]]:
        """Pair with the lowest p95 for each query shape."""
        best: Dict[str, PairResult] = {}
        best_stats: Dict[str, float] = {}
        for pair in self.result.pair_results:
            for query in pair.query_results:
                if query.stats.count == 0:
                    continue
                current: Optional[float] = best_stats.get(query.name)
                if current is None or query.stats.p95 < current:
                    best[query.name] = pair
                    best_stats[query.name] = query.stats.p95
        return {
            name: {"label": pair.label, "p95": best_stats[name]}
            for name, pair in best.items()
        }
