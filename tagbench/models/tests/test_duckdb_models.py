"""
Behaviour tests for the DuckDB storage models.

Every test runs against all three DuckDB models on an in-memory database,
so the normalized, jsonb and array models are held to identical search
and write semantics.
"""

import random
from typing import List

import duckdb
import pytest
import pytest_asyncio

from tagbench.datasets.people import TAG_POOL, PersonData, generate_people
from tagbench.engines.duckdb import DuckDBEngine
from tagbench.errors import BackendNotInitializedError, PersonNotFoundError, StorageError
from tagbench.models import duckdb_array, duckdb_jsonb, duckdb_normalized
from tagbench.models.base import PersonRecord
from tagbench.models.duckdb_array import DuckDBArrayModel
from tagbench.models.duckdb_jsonb import DuckDBJsonbModel
from tagbench.models.duckdb_normalized import DuckDBNormalizedModel

MODEL_CLASSES = [DuckDBNormalizedModel, DuckDBJsonbModel, DuckDBArrayModel]


def names(records: List[PersonRecord]) -> List[str]:
    return [record.name for record in records]


# ============================================================================
# Fixtures
# ============================================================================


@pytest_asyncio.fixture(params=MODEL_CLASSES, ids=lambda cls: cls.model)
async def model(request, duckdb_engine):
    """A provisioned, empty DuckDB model."""
    model = request.param(duckdb_engine)
    await model.setup()
    yield model


@pytest_asyncio.fixture
async def seeded(model, sample_people):
    """Model holding Alice, Bob, Carol, Dave and Erin."""
    await model.insert_persons_batch(sample_people)
    return model


# ============================================================================
# Setup / insert
# ============================================================================


class TestSetupAndInsert:
    @pytest.mark.asyncio
    async def test_setup_is_idempotent(self, model):
        await model.setup()
        await model.setup()
        assert await model.search_by_tags_and([]) == []

    @pytest.mark.asyncio
    async def test_insert_person_returns_record(self, model):
        record = await model.insert_person("Alice", ["engineer", "remote"])

        assert record.id > 0
        assert record.name == "Alice"
        assert record.tag_set == {"engineer", "remote"}

    @pytest.mark.asyncio
    async def test_insert_person_drops_duplicate_tags(self, model):
        record = await model.insert_person("Alice", ["engineer", "engineer", "qa"])

        assert sorted(record.tags) == ["engineer", "qa"]
        (found,) = await model.search_by_tag("engineer")
        assert sorted(found.tags) == ["engineer", "qa"]

    @pytest.mark.asyncio
    async def test_insert_person_without_tags(self, model):
        record = await model.insert_person("Erin", [])

        assert record.tags == []
        (found,) = await model.search_by_tags_and([])
        assert found.tags == []

    @pytest.mark.asyncio
    async def test_blank_name_rejected_before_storage(self, model):
        with pytest.raises(ValueError):
            await model.insert_person("  ", ["engineer"])
        assert await model.search_by_tags_and([]) == []

    @pytest.mark.asyncio
    async def test_batch_returns_records_in_input_order(self, model, sample_people):
        records = await model.insert_persons_batch(sample_people)

        assert names(records) == [p.name for p in sample_people]
        assert [r.id for r in records] == sorted(r.id for r in records)
        assert records[0].tag_set == {"engineer", "remote", "backend"}

    @pytest.mark.asyncio
    async def test_empty_batch_returns_empty_list(self, model):
        assert await model.insert_persons_batch([]) == []

    @pytest.mark.asyncio
    async def test_fetch_person_ids_ascending_with_limit(self, seeded):
        all_ids = await seeded.fetch_person_ids(100)
        assert len(all_ids) == 5
        assert all_ids == sorted(all_ids)

        assert await seeded.fetch_person_ids(2) == all_ids[:2]


# ============================================================================
# Search semantics
# ============================================================================


class TestSearch:
    @pytest.mark.asyncio
    async def test_single_tag(self, seeded):
        assert names(await seeded.search_by_tag("engineer")) == ["Alice", "Bob"]
        assert names(await seeded.search_by_tag("remote")) == ["Alice", "Carol"]

    @pytest.mark.asyncio
    async def test_unknown_tag_matches_nobody(self, seeded):
        assert await seeded.search_by_tag("astronaut") == []

    @pytest.mark.asyncio
    async def test_and_requires_every_tag(self, seeded):
        assert names(await seeded.search_by_tags_and(["engineer", "remote"])) == ["Alice"]
        assert await seeded.search_by_tags_and(["engineer", "designer"]) == []

    @pytest.mark.asyncio
    async def test_and_ignores_duplicate_query_tags(self, seeded):
        result = await seeded.search_by_tags_and(["engineer", "engineer", "remote"])
        assert names(result) == ["Alice"]

    @pytest.mark.asyncio
    async def test_empty_and_matches_everyone(self, seeded):
        assert names(await seeded.search_by_tags_and([])) == [
            "Alice", "Bob", "Carol", "Dave", "Erin",
        ]

    @pytest.mark.asyncio
    async def test_or_matches_any_tag_without_repeats(self, seeded):
        result = await seeded.search_by_tags_or(["frontend", "backend"])
        assert names(result) == ["Alice", "Bob"]

        # Alice matches both tags but appears once
        result = await seeded.search_by_tags_or(["engineer", "remote"])
        assert names(result) == ["Alice", "Bob", "Carol"]

    @pytest.mark.asyncio
    async def test_empty_or_matches_nobody(self, seeded):
        assert await seeded.search_by_tags_or([]) == []

    @pytest.mark.asyncio
    async def test_results_carry_full_tag_sets(self, seeded):
        alice, bob = await seeded.search_by_tag("engineer")

        assert alice.tag_set == {"engineer", "remote", "backend"}
        assert bob.tag_set == {"engineer", "frontend"}

    @pytest.mark.asyncio
    async def test_search_agrees_with_python_sets(self, model):
        people = generate_people(120, random.Random(11))
        await model.insert_persons_batch(people)

        for tag in TAG_POOL:
            expected = [p.name for p in people if tag in p.tags]
            assert names(await model.search_by_tag(tag)) == expected

        query = ["engineer", "remote", "senior"]
        expected_and = [p.name for p in people if set(query) <= set(p.tags)]
        expected_or = [p.name for p in people if set(query) & set(p.tags)]
        assert names(await model.search_by_tags_and(query)) == expected_and
        assert names(await model.search_by_tags_or(query)) == expected_or


# ============================================================================
# Updates
# ============================================================================


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_replaces_tag_set(self, seeded):
        (alice,) = await seeded.search_by_tags_and(["engineer", "remote"])

        await seeded.update_person_tags(alice.id, ["designer", "qa"])

        assert "Alice" not in names(await seeded.search_by_tag("engineer"))
        assert names(await seeded.search_by_tag("designer")) == ["Alice", "Dave"]
        (updated,) = await seeded.search_by_tag("qa")
        assert updated.tag_set == {"designer", "qa"}

    @pytest.mark.asyncio
    async def test_update_keeping_some_tags(self, seeded):
        (alice,) = await seeded.search_by_tags_and(["engineer", "remote"])

        await seeded.update_person_tags(alice.id, ["remote", "engineer", "qa"])

        (updated,) = await seeded.search_by_tag("qa")
        assert updated.tag_set == {"engineer", "remote", "qa"}

    @pytest.mark.asyncio
    async def test_second_update_wins(self, seeded):
        (alice,) = await seeded.search_by_tags_and(["engineer", "remote"])

        await seeded.update_person_tags(alice.id, ["qa", "sales"])
        await seeded.update_person_tags(alice.id, ["support"])

        (updated,) = await seeded.search_by_tag("support")
        assert updated.name == "Alice"
        assert updated.tag_set == {"support"}
        assert "Alice" not in names(await seeded.search_by_tags_or(["qa", "sales"]))

    @pytest.mark.asyncio
    async def test_update_to_empty_set(self, seeded):
        (dave,) = await seeded.search_by_tag("designer")

        await seeded.update_person_tags(dave.id, [])

        assert await seeded.search_by_tag("designer") == []
        everyone = {r.name: r for r in await seeded.search_by_tags_and([])}
        assert everyone["Dave"].tags == []

    @pytest.mark.asyncio
    async def test_update_unknown_person_raises(self, seeded):
        with pytest.raises(PersonNotFoundError) as exc_info:
            await seeded.update_person_tags(999999, ["qa"])

        assert exc_info.value.person_id == 999999
        assert await seeded.search_by_tag("qa") == []


# ============================================================================
# Cleanup
# ============================================================================


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_then_setup_leaves_nothing(self, seeded):
        await seeded.cleanup()
        await seeded.setup()

        assert await seeded.search_by_tags_and([]) == []
        assert await seeded.search_by_tag("engineer") == []
        assert await seeded.search_by_tags_or(["engineer", "remote"]) == []
        assert await seeded.fetch_person_ids(10) == []

    @pytest.mark.asyncio
    async def test_cleanup_on_empty_storage(self, model):
        await model.cleanup()
        await model.cleanup()

    @pytest.mark.asyncio
    async def test_insert_after_cleanup(self, seeded):
        await seeded.cleanup()
        await seeded.insert_person("Frank", ["engineer"])

        assert names(await seeded.search_by_tag("engineer")) == ["Frank"]


# ============================================================================
# Cross-model equivalence
# ============================================================================


@pytest.mark.asyncio
async def test_all_models_give_identical_answers(duckdb_engine):
    """Same seeded data gives the same names for every query shape."""
    people = generate_people(150, random.Random(99))
    models = [cls(duckdb_engine) for cls in MODEL_CLASSES]
    for model in models:
        await model.setup()
        await model.insert_persons_batch(people)

    queries = [
        ("tag", "engineer"),
        ("and", ["engineer", "remote"]),
        ("or", ["frontend", "backend"]),
        ("and", []),
        ("or", []),
    ]
    for kind, arg in queries:
        answers = []
        for model in models:
            if kind == "tag":
                records = await model.search_by_tag(arg)
            elif kind == "and":
                records = await model.search_by_tags_and(arg)
            else:
                records = await model.search_by_tags_or(arg)
            answers.append([(r.name, r.tag_set) for r in records])
        assert answers[0] == answers[1] == answers[2], (kind, arg)


# ============================================================================
# Normalized tag rows and transactions
# ============================================================================


def count_rows(engine: DuckDBEngine, query: str) -> int:
    return engine.connection.execute(query).fetchone()[0]


class TestNormalizedTags:
    @pytest.mark.asyncio
    async def test_tag_row_created_once_per_name(self, duckdb_engine):
        model = DuckDBNormalizedModel(duckdb_engine)
        await model.setup()

        people = [PersonData(name=f"Person {i}", tags=["engineer"]) for i in range(1000)]
        await model.insert_persons_batch(people)
        await model.insert_person("One more", ["engineer"])

        assert count_rows(duckdb_engine, "SELECT count(*) FROM tag WHERE name = 'engineer'") == 1
        assert count_rows(duckdb_engine, "SELECT count(*) FROM person_tag") == 1001

    @pytest.mark.asyncio
    async def test_update_reuses_existing_tag_rows(self, duckdb_engine):
        model = DuckDBNormalizedModel(duckdb_engine)
        await model.setup()
        first = await model.insert_person("A", ["engineer"])
        await model.insert_person("B", ["qa"])

        await model.update_person_tags(first.id, ["qa", "sales"])

        assert count_rows(duckdb_engine, "SELECT count(*) FROM tag") == 3
        assert count_rows(duckdb_engine, "SELECT count(*) FROM tag WHERE name = 'qa'") == 1

    @pytest.mark.asyncio
    async def test_failed_batch_leaves_no_rows(self, duckdb_engine, sample_people, monkeypatch):
        model = DuckDBNormalizedModel(duckdb_engine)
        await model.setup()

        def fail(con, links):
            raise duckdb.Error("simulated failure")

        with monkeypatch.context() as patch:
            patch.setattr(duckdb_normalized, "_link", fail)
            with pytest.raises(StorageError) as exc_info:
                await model.insert_persons_batch(sample_people)

        assert isinstance(exc_info.value.__cause__, duckdb.Error)
        assert count_rows(duckdb_engine, "SELECT count(*) FROM person") == 0
        assert count_rows(duckdb_engine, "SELECT count(*) FROM tag") == 0

    @pytest.mark.asyncio
    async def test_failed_update_keeps_previous_tags(self, duckdb_engine, monkeypatch):
        model = DuckDBNormalizedModel(duckdb_engine)
        await model.setup()
        alice = await model.insert_person("Alice", ["engineer", "remote"])

        def fail(con, links):
            raise duckdb.Error("simulated failure")

        with monkeypatch.context() as patch:
            patch.setattr(duckdb_normalized, "_link", fail)
            with pytest.raises(StorageError):
                await model.update_person_tags(alice.id, ["qa"])

        (found,) = await model.search_by_tag("engineer")
        assert found.tag_set == {"engineer", "remote"}


@pytest.mark.parametrize(
    "module,model_class",
    [(duckdb_array, DuckDBArrayModel), (duckdb_jsonb, DuckDBJsonbModel)],
    ids=["array", "jsonb"],
)
@pytest.mark.asyncio
async def test_failed_inline_batch_leaves_no_rows(
    duckdb_engine, sample_people, monkeypatch, module, model_class
):
    model = model_class(duckdb_engine)
    await model.setup()
    real_record = module._record
    calls = []

    def flaky_record(row):
        calls.append(row)
        if len(calls) == 3:
            raise duckdb.Error("simulated failure")
        return real_record(row)

    with monkeypatch.context() as patch:
        patch.setattr(module, "_record", flaky_record)
        with pytest.raises(StorageError):
            await model.insert_persons_batch(sample_people)

    assert await model.search_by_tags_and([]) == []


# ============================================================================
# Engine preconditions
# ============================================================================


class TestEnginePreconditions:
    @pytest.mark.parametrize("model_class", MODEL_CLASSES, ids=lambda cls: cls.model)
    @pytest.mark.asyncio
    async def test_unconnected_engine(self, model_class):
        model = model_class(DuckDBEngine())

        with pytest.raises(BackendNotInitializedError, match="duckdb not initialized"):
            await model.search_by_tag("engineer")

    @pytest.mark.parametrize("model_class", MODEL_CLASSES, ids=lambda cls: cls.model)
    @pytest.mark.asyncio
    async def test_closed_engine(self, model_class):
        engine = DuckDBEngine()
        await engine.connect()
        model = model_class(engine)
        await model.setup()
        await engine.close()

        with pytest.raises(BackendNotInitializedError):
            await model.insert_person("Alice", ["engineer"])

    @pytest.mark.asyncio
    async def test_precondition_is_not_storage_error(self):
        model = DuckDBArrayModel(DuckDBEngine())

        with pytest.raises(BackendNotInitializedError) as exc_info:
            await model.setup()
        assert not isinstance(exc_info.value, StorageError)
