"""Single-line renderings of search and write results, printed as a run progresses."""

from typing import List

from tagbench.metrics.latency import LatencyTracker

format_ms = LatencyTracker.format_ms
format_seconds = LatencyTracker.format_seconds


def format_query_line(label: str, query) -> str:
    """One search result line.

    Example:
        ``[POSTGRESQL-ARRAY] Single tag (engineer): avg=1.2ms, p50=1.1ms, p95=2.0ms (1000 queries, total=1.2s)``
    """
    stats = query.stats
    return (
        f"[{label}] {query.name}: avg={format_ms(stats.mean)}, "
        f"p50={format_ms(stats.p50)}, p95={format_ms(stats.p95)} "
        f"({stats.count} queries, total={format_seconds(stats.total)})"
    )


def format_write_lines(label: str, write) -> List[str]:
    """The single insert, batch insert and update lines of a write workload."""
    return [
        f"[{label}] Single: {format_ms(write.single.mean)}/record "
        f"({write.single.count:,} records, total={format_seconds(write.single.total)})",
        f"[{label}] Batch: {format_ms(write.batch_avg_per_record_ms)}/record "
        f"({write.batch_size:,} records, total={format_seconds(write.batch.total)})",
        f"[{label}] Update: {format_ms(write.update.mean)}/record "
        f"({write.update.count} records, total={format_seconds(write.update.total)})",
    ]
