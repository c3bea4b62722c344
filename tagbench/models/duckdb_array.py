"""
Array model on DuckDB: tags inlined in a ``VARCHAR[]`` list column.

Search uses DuckDB's list functions:
- single tag: ``list_contains(tags, ?)``
- AND: ``list_has_all(tags, ?)``
- OR: ``list_has_any(tags, ?)``
"""

from typing import List, Sequence

import duckdb

from tagbench.datasets.people import PersonData
from tagbench.engines.base import DUCKDB
from tagbench.engines.duckdb import DuckDBEngine, transaction
from tagbench.errors import PersonNotFoundError
from tagbench.models.base import ARRAY, PersonRecord, TagModel
from tagbench.models.labels import normalize_labels, normalize_people, validate_name

SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS person_array_id_seq",
    """
    CREATE TABLE IF NOT EXISTS person_array (
        id INTEGER PRIMARY KEY DEFAULT nextval('person_array_id_seq'),
        name VARCHAR NOT NULL,
        tags VARCHAR[] NOT NULL
    )
    """,
)

INSERT = "INSERT INTO person_array (name, tags) VALUES (?, CAST(? AS VARCHAR[])) RETURNING id, name, tags"
SELECT = "SELECT id, name, tags FROM person_array {where} ORDER BY id"


def _record(row) -> PersonRecord:
    return PersonRecord(id=row[0], name=row[1], tags=list(row[2]))


def _setup(con: duckdb.DuckDBPyConnection) -> None:
    for statement in SCHEMA:
        con.execute(statement)


def _insert_person(con: duckdb.DuckDBPyConnection, name: str, tags: List[str]) -> PersonRecord:
    return _record(con.execute(INSERT, [name, tags]).fetchone())


def _insert_batch(con: duckdb.DuckDBPyConnection, people: List[PersonData]) -> List[PersonRecord]:
    with transaction(con):
        return [_record(con.execute(INSERT, [person.name, person.tags]).fetchone()) for person in people]


def _update_tags(con: duckdb.DuckDBPyConnection, person_id: int, tags: List[str]) -> None:
    updated = con.execute(
        "UPDATE person_array SET tags = CAST(? AS VARCHAR[]) WHERE id = ? RETURNING id",
        [tags, person_id],
    ).fetchone()
    if updated is None:
        raise PersonNotFoundError(person_id, engine=DUCKDB)


def _search(con: duckdb.DuckDBPyConnection, condition: str, params: Sequence) -> List[PersonRecord]:
    where = f"WHERE {condition}" if condition else ""
    rows = con.execute(SELECT.format(where=where), list(params)).fetchall()
    return [_record(row) for row in rows]


def _fetch_ids(con: duckdb.DuckDBPyConnection, limit: int) -> List[int]:
    rows = con.execute("SELECT id FROM person_array ORDER BY id LIMIT ?", [limit]).fetchall()
    return [row[0] for row in rows]


def _cleanup(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("DELETE FROM person_array")


class DuckDBArrayModel(TagModel):
    """List column representation on DuckDB."""

    database = DUCKDB
    model = ARRAY

    def __init__(self, engine: DuckDBEngine):
        self._engine = engine

    async def setup(self) -> None:
        await self._engine.run(_setup)

    async def insert_person(self, name: str, tags: Sequence[str]) -> PersonRecord:
        return await self._engine.run(_insert_person, validate_name(name), normalize_labels(tags))

    async def insert_persons_batch(self, people: Sequence[PersonData]) -> List[PersonRecord]:
        people = normalize_people(people)
        if not people:
            return []
        return await self._engine.run(_insert_batch, people)

    async def update_person_tags(self, person_id: int, tags: Sequence[str]) -> None:
        await self._engine.run(_update_tags, person_id, normalize_labels(tags))

    async def search_by_tag(self, tag: str) -> List[PersonRecord]:
        return await self._engine.run(_search, "list_contains(tags, ?)", [tag])

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return await self._engine.run(_search, "", [])
        return await self._engine.run(
            _search, "list_has_all(tags, CAST(? AS VARCHAR[]))", [tags]
        )

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._engine.run(
            _search, "list_has_any(tags, CAST(? AS VARCHAR[]))", [tags]
        )

    async def fetch_person_ids(self, limit: int) -> List[int]:
        return await self._engine.run(_fetch_ids, limit)

    async def cleanup(self) -> None:
        await self._engine.run(_cleanup)
