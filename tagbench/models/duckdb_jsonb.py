"""
Document model on DuckDB: tags stored as a JSON array in a ``JSON`` column.

DuckDB has no binary JSON type or containment operator, so the JSON array
is cast to ``VARCHAR[]`` at query time and matched with the same list
functions as the array model. Values are written with ``json.dumps`` and
read back with ``json.loads``.
"""

import json
from typing import List, Sequence

import duckdb

from tagbench.datasets.people import PersonData
from tagbench.engines.base import DUCKDB
from tagbench.engines.duckdb import DuckDBEngine, transaction
from tagbench.errors import PersonNotFoundError
from tagbench.models.base import JSONB, PersonRecord, TagModel
from tagbench.models.labels import normalize_labels, normalize_people, validate_name

SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS person_jsonb_id_seq",
    """
    CREATE TABLE IF NOT EXISTS person_jsonb (
        id INTEGER PRIMARY KEY DEFAULT nextval('person_jsonb_id_seq'),
        name VARCHAR NOT NULL,
        tags JSON NOT NULL
    )
    """,
)

INSERT = "INSERT INTO person_jsonb (name, tags) VALUES (?, CAST(? AS JSON)) RETURNING id, name, tags"
SELECT = "SELECT id, name, tags FROM person_jsonb {where} ORDER BY id"
TAG_LIST = "CAST(tags AS VARCHAR[])"


def _record(row) -> PersonRecord:
    tags = row[2]
    if isinstance(tags, str):
        tags = json.loads(tags)
    return PersonRecord(id=row[0], name=row[1], tags=list(tags))


def _setup(con: duckdb.DuckDBPyConnection) -> None:
    for statement in SCHEMA:
        con.execute(statement)


def _insert_person(con: duckdb.DuckDBPyConnection, name: str, tags: List[str]) -> PersonRecord:
    return _record(con.execute(INSERT, [name, json.dumps(tags)]).fetchone())


def _insert_batch(con: duckdb.DuckDBPyConnection, people: List[PersonData]) -> List[PersonRecord]:
    with transaction(con):
        return [
            _record(con.execute(INSERT, [person.name, json.dumps(person.tags)]).fetchone())
            for person in people
        ]


def _update_tags(con: duckdb.DuckDBPyConnection, person_id: int, tags: List[str]) -> None:
    updated = con.execute(
        "UPDATE person_jsonb SET tags = CAST(? AS JSON) WHERE id = ? RETURNING id",
        [json.dumps(tags), person_id],
    ).fetchone()
    if updated is None:
        raise PersonNotFoundError(person_id, engine=DUCKDB)


def _search(con: duckdb.DuckDBPyConnection, condition: str, params: Sequence) -> List[PersonRecord]:
    where = f"WHERE {condition}" if condition else ""
    rows = con.execute(SELECT.format(where=where), list(params)).fetchall()
    return [_record(row) for row in rows]


def _fetch_ids(con: duckdb.DuckDBPyConnection, limit: int) -> List[int]:
    rows = con.execute("SELECT id FROM person_jsonb ORDER BY id LIMIT ?", [limit]).fetchall()
    return [row[0] for row in rows]


def _cleanup(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("DELETE FROM person_jsonb")


class DuckDBJsonbModel(TagModel):
    """JSON document column representation on DuckDB."""

    database = DUCKDB
    model = JSONB

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
        return await self._engine.run(_search, f"list_contains({TAG_LIST}, ?)", [tag])

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return await self._engine.run(_search, "", [])
        return await self._engine.run(
            _search, f"list_has_all({TAG_LIST}, CAST(? AS VARCHAR[]))", [tags]
        )

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._engine.run(
            _search, f"list_has_any({TAG_LIST}, CAST(? AS VARCHAR[]))", [tags]
        )

    async def fetch_person_ids(self, limit: int) -> List[int]:
        return await self._engine.run(_fetch_ids, limit)

    async def cleanup(self) -> None:
        await self._engine.run(_cleanup)
