"""Benchmark runner for comparing tag storage models.

This module provides the BenchmarkRunner class which:
- Acquires each selected engine once through an EngineManager
- Provisions, cleans and seeds every selected (database, model) pair
- Runs the search workload (three query shapes, warmup then measured runs)
- Runs the write workload (single inserts, one batch insert, tag updates)
- Releases every engine when the run ends, successfully or not
"""

import logging
import random
import time
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from tagbench.datasets.people import PersonData, generate_people
from tagbench.engines.manager import EngineManager
from tagbench.metrics.latency import LatencyTracker
from tagbench.models import TagModel, create_model
from tagbench.models.base import PersonRecord
from tagbench.observability.logging import clear_run_context, set_run_context
from tagbench.reporter.lines import format_query_line, format_write_lines
from tagbench.runner.results import (
    BenchmarkConfig,
    BenchmarkResult,
    PairResult,
    QueryResult,
    WriteResult,
)
from tagbench.settings import get_settings

logger = logging.getLogger(__name__)

PeopleFactory = Callable[[int, Optional[random.Random]], List[PersonData]]
SearchCase = Tuple[str, Callable[[TagModel], Awaitable[List[PersonRecord]]]]

SEARCH_CASES: Sequence[SearchCase] = (
    ("Single tag (engineer)", lambda model: model.search_by_tag("engineer")),
    (
        "AND search (engineer AND remote)",
        lambda model: model.search_by_tags_and(["engineer", "remote"]),
    ),
    (
        "OR search (frontend OR backend)",
        lambda model: model.search_by_tags_or(["frontend", "backend"]),
    ),
)


class BenchmarkRunner:
    """Orchestrates benchmark runs across engines and storage models.

    Args:
        config: Benchmark configuration.
        engines: Engine manager to use. Defaults to one built from
            get_settings(). The runner closes every engine it acquired
            when run() returns or raises.
        people_factory: Generator of synthetic people, ``(count, rng)``.
        emit: Sink for progress and result lines (stdout by default).
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        engines: Optional[EngineManager] = None,
        people_factory: PeopleFactory = generate_people,
        emit: Callable[[str], None] = print,
    ):
        self.config = config
        self._engines = engines
        self._people_factory = people_factory
        self._emit = emit
        self._rng = random.Random(config.seed)

    async def run(self) -> BenchmarkResult:
        """Run every selected workload on every selected pair.

        Returns:
            BenchmarkResult with one PairResult per (database, model) pair

        Raises:
            ConfigurationError: If the configuration is invalid (no engine
                is acquired in that case)
            TagBenchError: Any storage or precondition failure, unchanged
        """
        self.config.validate()
        engines = self._engines or EngineManager.from_settings(get_settings())

        set_run_context(uuid.uuid4().hex[:12])
        start_time = datetime.now()
        start_seconds = time.perf_counter()
        pair_results: List[PairResult] = []
        failed = False

        logger.info("Benchmark started", extra={"event": "benchmark_started", **self.config.to_dict()})
        try:
            for database in self.config.databases:
                engine = await engines.acquire(database)
                for model_name in self.config.models:
                    model = create_model(database, model_name, engine)
                    pair_results.append(await self.run_pair(model))
        except Exception as exc:
            failed = True
            logger.exception(
                "Benchmark failed",
                extra={"event": "benchmark_failed", "error_type": type(exc).__name__},
            )
            raise
        finally:
            await self._release(engines, failed)
            clear_run_context()

        duration = time.perf_counter() - start_seconds
        logger.info(
            "Benchmark completed",
            extra={"event": "benchmark_completed", "duration_seconds": round(duration, 3)},
        )
        return BenchmarkResult(
            config=self.config,
            pair_results=pair_results,
            timestamp=start_time,
            total_duration_seconds=duration,
        )

    async def run_pair(self, model: TagModel) -> PairResult:
        """Provision, clean, seed and benchmark one model."""
        await model.setup()
        await model.cleanup()
        seeded = await self.seed_data(model, self.config.data_size)

        result = PairResult(database=model.database, model=model.model, seeded_records=seeded)
        if self.config.runs_search:
            result.query_results = await self.run_search_benchmark(model)
        if self.config.runs_write:
            result.write_result = await self.run_write_benchmark(model)
        return result

    async def seed_data(self, model: TagModel, count: int) -> int:
        """Insert ``count`` generated people in batches of ``batch_size``.

        Returns:
            Number of people inserted
        """
        self._emit(f"Seeding {count:,} records for {model.database} {model.model}...")
        people = self._people_factory(count, self._rng)
        batch_size = self.config.batch_size
        inserted = 0
        for start in range(0, len(people), batch_size):
            records = await model.insert_persons_batch(people[start:start + batch_size])
            inserted += len(records)
        logger.info(
            "Seeded records",
            extra={"event": "pair_seeded", "pair": model.name, "records": inserted},
        )
        return inserted

    async def run_search_benchmark(self, model: TagModel) -> List[QueryResult]:
        """Warm up, then time each search shape ``search_iterations`` times."""
        self._emit(f"\n=== SEARCH BENCHMARK: {model.database.upper()} {model.model.upper()} ===")
        tracker = LatencyTracker()
        results: List[QueryResult] = []

        for name, search in SEARCH_CASES:
            for _ in range(self.config.warmup_iterations):
                await search(model)

            for _ in range(self.config.search_iterations):
                await tracker.measure(lambda: search(model))

            query = QueryResult(name=name, stats=tracker.get_stats())
            tracker.reset()
            results.append(query)
            self._emit(format_query_line(model.name, query))

        return results

    async def run_write_benchmark(self, model: TagModel) -> WriteResult:
        """Time single inserts, one batch insert and per-person tag updates."""
        self._emit(f"\n=== WRITE BENCHMARK: {model.database.upper()} {model.model.upper()} ===")
        size = self.config.write_test_size

        single_tracker = LatencyTracker()
        for person in self._people_factory(size, self._rng):
            await single_tracker.measure(
                lambda: model.insert_person(person.name, person.tags)
            )

        batch_tracker = LatencyTracker()
        batch_people = self._people_factory(size, self._rng)
        await batch_tracker.measure(lambda: model.insert_persons_batch(batch_people))

        update_tracker = LatencyTracker()
        for person_id in await model.fetch_person_ids(size):
            new_tags = self._people_factory(1, self._rng)[0].tags
            await update_tracker.measure(
                lambda: model.update_person_tags(person_id, new_tags)
            )

        result = WriteResult(
            single=single_tracker.get_stats(),
            batch=batch_tracker.get_stats(),
            batch_size=size,
            update=update_tracker.get_stats(),
        )
        for line in format_write_lines(model.name, result):
            self._emit(line)
        return result

    async def _release(self, engines: EngineManager, failed: bool) -> None:
        # A close failure must not mask the error that aborted the run.
        try:
            await engines.close_all()
        except Exception:
            if not failed:
                raise
            logger.exception("Engine release failed after benchmark failure")
