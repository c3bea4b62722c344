"""
Latency percentile tracking for benchmark measurements.

Provides P50, P95, P99 percentile calculations along with
total, mean, min, max statistics. All values are in milliseconds.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Generator, List, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class LatencyStats:
    """Latency statistics."""
    count: int   # Number of samples
    total: float  # Sum of all samples in milliseconds
    mean: float  # Mean latency in milliseconds
    min: float   # Minimum latency in milliseconds
    max: float   # Maximum latency in milliseconds
    p50: float   # 50th percentile (median) in milliseconds
    p95: float   # 95th percentile in milliseconds
    p99: float   # 99th percentile in milliseconds

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "total": self.total,
            "mean": self.mean,
            "min": self.min,
            "max": self.max,
            "p50": self.p50,
            "p95": self.p95,
            "p99": self.p99,
        }


EMPTY_STATS = LatencyStats(
    count=0, total=0.0, mean=0.0, min=0.0, max=0.0, p50=0.0, p95=0.0, p99=0.0
)


class LatencyTracker:
    """
    Track and calculate latency percentiles.

    Records latency samples (in milliseconds) and calculates
    percentile statistics.

    Usage:
        tracker = LatencyTracker()
        tracker.record(10.5)  # 10.5ms
        stats = tracker.get_stats()
        print(f"P95: {stats.p95}ms")

    Or with a context manager:
        with tracker.time():
            do_something()

    Or around a coroutine function:
        rows = await tracker.measure(lambda: model.search_by_tag("engineer"))

    A failed operation still records its duration before the exception
    propagates, so ``count`` is the number of attempted operations.
    """

    def __init__(self):
        self._samples: List[float] = []

    def record(self, latency_ms: float) -> None:
        """
        Record a single latency sample.

        Args:
            latency_ms: Latency in milliseconds.
        """
        self._samples.append(latency_ms)

    def get_stats(self) -> LatencyStats:
        """
        Calculate and return latency statistics.

        Returns:
            LatencyStats with percentiles and summary statistics; all zeros
            when nothing was recorded.
        """
        if not self._samples:
            return EMPTY_STATS

        sorted_samples = sorted(self._samples)
        n = len(sorted_samples)
        total = sum(sorted_samples)

        return LatencyStats(
            count=n,
            total=total,
            mean=total / n,
            min=sorted_samples[0],
            max=sorted_samples[-1],
            p50=self._percentile(sorted_samples, 50),
            p95=self._percentile(sorted_samples, 95),
            p99=self._percentile(sorted_samples, 99),
        )

    def get_total(self) -> float:
        """Sum of all recorded samples in milliseconds."""
        return sum(self._samples)

    def reset(self) -> None:
        """Clear all recorded samples."""
        self._samples = []

    @contextmanager
    def time(self) -> Generator[None, None, None]:
        """
        Context manager to automatically record elapsed time.

        The elapsed time in milliseconds is recorded even when the
        block raises.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.record(elapsed_ms)

    async def measure(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Await ``operation()`` once and record how long it took.

        Args:
            operation: Zero-argument coroutine function.

        Returns:
            Whatever the operation returned, unchanged.
        """
        with self.time():
            return await operation()

    @staticmethod
    def _percentile(sorted_samples: List[float], p: float) -> float:
        """
        Calculate the p-th percentile from sorted samples.

        Index is floor(n * p / 100), clamped to the last sample, so P95 of
        five samples is the fifth one.

        Args:
            sorted_samples: Sorted list of samples.
            p: Percentile to calculate (0-100).
        """
        if not sorted_samples:
            return 0.0

        n = len(sorted_samples)
        index = min(int(n * p / 100), n - 1)
        return sorted_samples[index]

    @staticmethod
    def format_ms(ms: float) -> str:
        """Render milliseconds with one decimal, e.g. ``12.3ms``."""
        return f"{ms:.1f}ms"

    @staticmethod
    def format_seconds(ms: float) -> str:
        """Render a millisecond value as seconds with one decimal, e.g. ``1.2s``."""
        return f"{ms / 1000:.1f}s"
