"""
Unit tests for latency percentile tracking.
"""

import asyncio

import pytest

from tagbench.metrics.latency import EMPTY_STATS, LatencyStats, LatencyTracker


class TestLatencyTrackerBasics:
    """Test basic latency tracking functionality."""

    def test_tracker_can_record_sample(self):
        """LatencyTracker should accept latency samples."""
        tracker = LatencyTracker()
        tracker.record(10.0)

        stats = tracker.get_stats()
        assert stats.count == 1

    def test_tracker_calculates_mean_and_total(self):
        tracker = LatencyTracker()
        tracker.record(10.0)
        tracker.record(20.0)
        tracker.record(30.0)

        stats = tracker.get_stats()
        assert stats.mean == 20.0
        assert stats.total == 60.0
        assert tracker.get_total() == 60.0

    def test_tracker_calculates_min_max(self):
        tracker = LatencyTracker()
        tracker.record(5.0)
        tracker.record(50.0)
        tracker.record(25.0)

        stats = tracker.get_stats()
        assert stats.min == 5.0
        assert stats.max == 50.0

    def test_zero_samples_gives_all_zero_stats(self):
        """Stats of an empty tracker are all zeros."""
        stats = LatencyTracker().get_stats()

        assert stats == EMPTY_STATS
        assert stats.count == 0
        assert stats.total == 0.0
        assert stats.mean == 0.0
        assert stats.p50 == 0.0
        assert stats.p95 == 0.0
        assert stats.p99 == 0.0


class TestPercentiles:
    """Percentile index is floor(n * p), clamped to the last sample."""

    def test_five_samples(self):
        tracker = LatencyTracker()
        for sample in [40.0, 10.0, 100.0, 30.0, 20.0]:
            tracker.record(sample)

        stats = tracker.get_stats()
        assert stats.count == 5
        assert stats.min == 10.0
        assert stats.max == 100.0
        assert stats.mean == 40.0
        assert stats.p50 == 30.0
        assert stats.p95 == 100.0
        assert stats.p99 == 100.0

    def test_p95_with_100_samples(self, latency_samples):
        tracker = LatencyTracker()
        for sample in latency_samples:
            tracker.record(sample)

        stats = tracker.get_stats()
        # Sorted index 95 is the first 100ms sample
        assert stats.p95 == 100.0
        assert stats.p99 == 500.0
        assert stats.p50 == 20.0

    def test_single_sample_is_every_percentile(self):
        tracker = LatencyTracker()
        tracker.record(7.5)

        stats = tracker.get_stats()
        assert stats.p50 == stats.p95 == stats.p99 == 7.5

    def test_p95_boundary(self):
        tracker = LatencyTracker()
        for _ in range(96):
            tracker.record(10.0)
        for _ in range(4):
            tracker.record(100.0)

        # Index 95 of 100 sorted samples is still 10ms
        assert tracker.get_stats().p95 == 10.0


class TestReset:
    def test_reset_clears_samples(self):
        tracker = LatencyTracker()
        tracker.record(10.0)
        tracker.reset()

        assert tracker.get_stats().count == 0

    def test_reset_does_not_change_returned_stats(self):
        """Stats already handed out are values, not views."""
        tracker = LatencyTracker()
        tracker.record(10.0)
        tracker.record(30.0)
        stats = tracker.get_stats()

        tracker.reset()
        tracker.record(1000.0)

        assert stats.count == 2
        assert stats.mean == 20.0

    def test_stats_are_immutable(self):
        stats = LatencyStats(
            count=1, total=1.0, mean=1.0, min=1.0, max=1.0, p50=1.0, p95=1.0, p99=1.0
        )
        with pytest.raises(AttributeError):
            stats.count = 2


class TestTiming:
    def test_time_context_records_one_sample(self):
        tracker = LatencyTracker()
        with tracker.time():
            sum(range(1000))

        stats = tracker.get_stats()
        assert stats.count == 1
        assert stats.min >= 0.0

    def test_time_context_records_on_error(self):
        tracker = LatencyTracker()
        with pytest.raises(RuntimeError):
            with tracker.time():
                raise RuntimeError("boom")

        assert tracker.get_stats().count == 1

    @pytest.mark.asyncio
    async def test_measure_returns_result_unchanged(self):
        tracker = LatencyTracker()

        async def operation():
            await asyncio.sleep(0)
            return ["a", "b"]

        result = await tracker.measure(operation)

        assert result == ["a", "b"]
        assert tracker.get_stats().count == 1

    @pytest.mark.asyncio
    async def test_measure_awaits_operation_exactly_once(self):
        tracker = LatencyTracker()
        calls = []

        async def operation():
            calls.append(1)

        await tracker.measure(operation)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_measure_records_failed_operation_then_raises(self):
        tracker = LatencyTracker()

        async def operation():
            raise ValueError("rejected")

        with pytest.raises(ValueError, match="rejected"):
            await tracker.measure(operation)

        assert tracker.get_stats().count == 1

    @pytest.mark.asyncio
    async def test_measure_elapsed_time_is_realistic(self):
        tracker = LatencyTracker()

        async def operation():
            await asyncio.sleep(0.01)

        await tracker.measure(operation)
        assert tracker.get_stats().max >= 9.0


class TestFormatting:
    def test_format_ms_one_decimal(self):
        assert LatencyTracker.format_ms(12.345) == "12.3ms"
        assert LatencyTracker.format_ms(0) == "0.0ms"

    def test_format_seconds_converts_milliseconds(self):
        assert LatencyTracker.format_seconds(1234.0) == "1.2s"
        assert LatencyTracker.format_seconds(960.0) == "1.0s"

    def test_to_dict(self):
        tracker = LatencyTracker()
        tracker.record(5.0)

        data = tracker.get_stats().to_dict()
        assert data["count"] == 1
        assert data["p95"] == 5.0
        assert set(data) == {"count", "total", "mean", "min", "max", "p50", "p95", "p99"}
