"""
Document model on PostgreSQL: tags stored as a JSON array in a ``jsonb`` column.

Containment (``@>``) over a JSON array is set containment, which is
correct for the single-tag and AND searches. It cannot express OR, so OR
uses the existence-any operator ``?|``, which is true when any of the
given strings is a top-level element of the array.
"""

from typing import List, Sequence

from sqlalchemy import ColumnElement, Text, delete, insert, literal, select, update
from sqlalchemy.dialects.postgresql import ARRAY as PG_ARRAY

from tagbench.datasets.people import PersonData
from tagbench.engines.base import POSTGRESQL
from tagbench.engines.postgres import PostgresEngine
from tagbench.errors import PersonNotFoundError
from tagbench.models.base import JSONB, PersonRecord, TagModel
from tagbench.models.labels import normalize_labels, normalize_people, validate_name
from tagbench.models.tables import JSONB_TABLES, Base, PersonJsonb

_COLUMNS = (PersonJsonb.id, PersonJsonb.name, PersonJsonb.tags)


class PostgresJsonbModel(TagModel):
    """Document column representation on PostgreSQL."""

    database = POSTGRESQL
    model = JSONB

    def __init__(self, engine: PostgresEngine):
        self._engine = engine

    async def setup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=JSONB_TABLES)

    async def insert_person(self, name: str, tags: Sequence[str]) -> PersonRecord:
        name = validate_name(name)
        tags = normalize_labels(tags)
        async with self._engine.begin() as conn:
            row = (
                await conn.execute(
                    insert(PersonJsonb).values(name=name, tags=tags).returning(*_COLUMNS)
                )
            ).one()
        return PersonRecord(id=row.id, name=row.name, tags=list(row.tags))

    async def insert_persons_batch(self, people: Sequence[PersonData]) -> List[PersonRecord]:
        people = normalize_people(people)
        if not people:
            return []
        async with self._engine.begin() as conn:
            result = await conn.execute(
                insert(PersonJsonb).returning(*_COLUMNS, sort_by_parameter_order=True),
                [{"name": person.name, "tags": person.tags} for person in people],
            )
            rows = result.all()
        return [PersonRecord(id=row.id, name=row.name, tags=list(row.tags)) for row in rows]

    async def update_person_tags(self, person_id: int, tags: Sequence[str]) -> None:
        tags = normalize_labels(tags)
        async with self._engine.begin() as conn:
            updated = await conn.scalar(
                update(PersonJsonb)
                .where(PersonJsonb.id == person_id)
                .values(tags=tags)
                .returning(PersonJsonb.id)
            )
            if updated is None:
                raise PersonNotFoundError(person_id, engine=POSTGRESQL)

    async def _search(self, condition: ColumnElement[bool]) -> List[PersonRecord]:
        stmt = select(*_COLUMNS).where(condition).order_by(PersonJsonb.id)
        async with self._engine.begin() as conn:
            rows = (await conn.execute(stmt)).all()
        return [PersonRecord(id=row.id, name=row.name, tags=list(row.tags)) for row in rows]

    async def search_by_tag(self, tag: str) -> List[PersonRecord]:
        return await self._search(PersonJsonb.tags.contains([tag]))

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        return await self._search(PersonJsonb.tags.contains(normalize_labels(tags)))

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._search(PersonJsonb.tags.has_any(literal(tags, PG_ARRAY(Text))))

    async def fetch_person_ids(self, limit: int) -> List[int]:
        async with self._engine.begin() as conn:
            result = await conn.scalars(
                select(PersonJsonb.id).order_by(PersonJsonb.id).limit(limit)
            )
            return list(result)

    async def cleanup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(delete(PersonJsonb))
