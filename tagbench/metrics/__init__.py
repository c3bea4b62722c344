"""Latency metrics for benchmark runs."""

from .latency import EMPTY_STATS, LatencyStats, LatencyTracker

__all__ = ["LatencyStats", "LatencyTracker", "EMPTY_STATS"]
