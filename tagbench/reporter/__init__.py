"""Report generation for benchmark results."""

from tagbench.reporter.lines import format_query_line, format_write_lines
from tagbench.reporter.benchmark_reporter import BenchmarkReporter, ReportFormat

__all__ = [
    "BenchmarkReporter",
    "ReportFormat",
    "format_query_line",
    "format_write_lines",
]
