"""
Normalized model on DuckDB: person, tag and person_tag tables.

Operations are plain functions over a DuckDB connection, executed by
DuckDBEngine.run() in a worker thread. Multi-step writes run inside a
single transaction.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import duckdb

from tagbench.datasets.people import PersonData
from tagbench.engines.base import DUCKDB
from tagbench.engines.duckdb import DuckDBEngine, transaction
from tagbench.errors import PersonNotFoundError
from tagbench.models.base import NORMALIZED, PersonRecord, TagModel
from tagbench.models.labels import (
    collect_label_names,
    label_diff,
    link_rows,
    normalize_labels,
    normalize_people,
    validate_name,
)

SCHEMA = (
    "CREATE SEQUENCE IF NOT EXISTS person_id_seq",
    "CREATE SEQUENCE IF NOT EXISTS tag_id_seq",
    """
    CREATE TABLE IF NOT EXISTS person (
        id INTEGER PRIMARY KEY DEFAULT nextval('person_id_seq'),
        name VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tag (
        id INTEGER PRIMARY KEY DEFAULT nextval('tag_id_seq'),
        name VARCHAR UNIQUE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS person_tag (
        person_id INTEGER NOT NULL,
        tag_id INTEGER NOT NULL,
        PRIMARY KEY (person_id, tag_id),
        FOREIGN KEY (person_id) REFERENCES person(id),
        FOREIGN KEY (tag_id) REFERENCES tag(id)
    )
    """,
)

PEOPLE_WITH_TAGS = """
    SELECT p.id, p.name, list(t.name) FILTER (WHERE t.name IS NOT NULL) AS tags
    FROM person p
    LEFT JOIN person_tag pt ON pt.person_id = p.id
    LEFT JOIN tag t ON t.id = pt.tag_id
    {where}
    GROUP BY p.id, p.name
    ORDER BY p.id
"""


def _placeholders(values: Sequence) -> str:
    return ", ".join("?" for _ in values)


def _resolve_tag_ids(con: duckdb.DuckDBPyConnection, names: Sequence[str]) -> Dict[str, int]:
    """Map each tag name to its id, creating the missing ones."""
    if not names:
        return {}
    query = f"SELECT name, id FROM tag WHERE name IN ({_placeholders(names)})"
    tag_ids = dict(con.execute(query, list(names)).fetchall())
    missing = [name for name in names if name not in tag_ids]
    for name in missing:
        (tag_id,) = con.execute("INSERT INTO tag (name) VALUES (?) RETURNING id", [name]).fetchone()
        tag_ids[name] = tag_id
    return tag_ids


def _link(con: duckdb.DuckDBPyConnection, links: Sequence[Tuple[int, int]]) -> None:
    if links:
        con.executemany(
            "INSERT INTO person_tag (person_id, tag_id) VALUES (?, ?)",
            [list(link) for link in links],
        )


def _setup(con: duckdb.DuckDBPyConnection) -> None:
    for statement in SCHEMA:
        con.execute(statement)


def _insert_person(con: duckdb.DuckDBPyConnection, name: str, tags: List[str]) -> PersonRecord:
    with transaction(con):
        person_id, stored_name = con.execute(
            "INSERT INTO person (name) VALUES (?) RETURNING id, name", [name]
        ).fetchone()
        tag_ids = _resolve_tag_ids(con, tags)
        _link(con, [(person_id, tag_ids[tag]) for tag in tags])
    return PersonRecord(id=person_id, name=stored_name, tags=tags)


def _insert_batch(con: duckdb.DuckDBPyConnection, people: List[PersonData]) -> List[PersonRecord]:
    with transaction(con):
        tag_ids = _resolve_tag_ids(con, collect_label_names(people))
        rows = [
            con.execute(
                "INSERT INTO person (name) VALUES (?) RETURNING id, name", [person.name]
            ).fetchone()
            for person in people
        ]
        _link(con, link_rows([row[0] for row in rows], people, tag_ids))
    return [
        PersonRecord(id=person_id, name=name, tags=person.tags)
        for (person_id, name), person in zip(rows, people)
    ]


def _update_tags(con: duckdb.DuckDBPyConnection, person_id: int, tags: List[str]) -> None:
    with transaction(con):
        found = con.execute("SELECT id FROM person WHERE id = ?", [person_id]).fetchone()
        if found is None:
            raise PersonNotFoundError(person_id, engine=DUCKDB)

        current = dict(
            con.execute(
                """
                SELECT t.name, t.id
                FROM person_tag pt
                JOIN tag t ON t.id = pt.tag_id
                WHERE pt.person_id = ?
                """,
                [person_id],
            ).fetchall()
        )
        # Only the difference is written: re-inserting a just-deleted key in
        # the same transaction trips DuckDB's unique index.
        to_remove, to_add = label_diff(current, tags)
        if to_remove:
            removed_ids = [current[name] for name in to_remove]
            con.execute(
                f"DELETE FROM person_tag WHERE person_id = ? AND tag_id IN ({_placeholders(removed_ids)})",
                [person_id, *removed_ids],
            )
        tag_ids = _resolve_tag_ids(con, to_add)
        _link(con, [(person_id, tag_ids[tag]) for tag in to_add])


def _search(
    con: duckdb.DuckDBPyConnection,
    matching: Optional[str],
    params: Sequence,
) -> List[PersonRecord]:
    where = f"WHERE p.id IN ({matching})" if matching else ""
    rows = con.execute(PEOPLE_WITH_TAGS.format(where=where), list(params)).fetchall()
    return [PersonRecord(id=row[0], name=row[1], tags=list(row[2] or [])) for row in rows]


def _tagged_with_any(tags: Sequence[str]) -> str:
    return f"""
        SELECT pt.person_id
        FROM person_tag pt
        JOIN tag t ON t.id = pt.tag_id
        WHERE t.name IN ({_placeholders(tags)})
    """


def _tagged_with_all(tags: Sequence[str]) -> str:
    return f"""
        SELECT pt.person_id
        FROM person_tag pt
        JOIN tag t ON t.id = pt.tag_id
        WHERE t.name IN ({_placeholders(tags)})
        GROUP BY pt.person_id
        HAVING COUNT(DISTINCT t.id) = ?
    """


def _fetch_ids(con: duckdb.DuckDBPyConnection, limit: int) -> List[int]:
    rows = con.execute("SELECT id FROM person ORDER BY id LIMIT ?", [limit]).fetchall()
    return [row[0] for row in rows]


def _cleanup(con: duckdb.DuckDBPyConnection) -> None:
    con.execute("DELETE FROM person_tag")
    con.execute("DELETE FROM person")
    con.execute("DELETE FROM tag")


class DuckDBNormalizedModel(TagModel):
    """Join-table representation on DuckDB."""

    database = DUCKDB
    model = NORMALIZED

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
        return await self._engine.run(_search, _tagged_with_any([tag]), [tag])

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return await self._engine.run(_search, None, [])
        return await self._engine.run(_search, _tagged_with_all(tags), [*tags, len(tags)])

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._engine.run(_search, _tagged_with_any(tags), tags)

    async def fetch_person_ids(self, limit: int) -> List[int]:
        return await self._engine.run(_fetch_ids, limit)

    async def cleanup(self) -> None:
        await self._engine.run(_cleanup)
