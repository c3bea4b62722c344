"""
Array model on PostgreSQL: tags inlined in a ``text[]`` column with a GIN index.

Search maps straight onto native array operators:
- single tag: ``tags @> ARRAY[tag]``
- AND: ``tags @> ARRAY[...]``
- OR: ``tags && ARRAY[...]``
"""

from typing import List, Sequence

from sqlalchemy import ColumnElement, delete, insert, select, update

from tagbench.datasets.people import PersonData
from tagbench.engines.base import POSTGRESQL
from tagbench.engines.postgres import PostgresEngine
from tagbench.errors import PersonNotFoundError
from tagbench.models.base import ARRAY, PersonRecord, TagModel
from tagbench.models.labels import normalize_labels, normalize_people, validate_name
from tagbench.models.tables import ARRAY_TABLES, Base, PersonArray

_COLUMNS = (PersonArray.id, PersonArray.name, PersonArray.tags)


class PostgresArrayModel(TagModel):
    """Native array column representation on PostgreSQL."""

    database = POSTGRESQL
    model = ARRAY

    def __init__(self, engine: PostgresEngine):
        self._engine = engine

    async def setup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=ARRAY_TABLES)

    async def insert_person(self, name: str, tags: Sequence[str]) -> PersonRecord:
        name = validate_name(name)
        tags = normalize_labels(tags)
        async with self._engine.begin() as conn:
            row = (
                await conn.execute(
                    insert(PersonArray).values(name=name, tags=tags).returning(*_COLUMNS)
                )
            ).one()
        return PersonRecord(id=row.id, name=row.name, tags=list(row.tags))

    async def insert_persons_batch(self, people: Sequence[PersonData]) -> List[PersonRecord]:
        people = normalize_people(people)
        if not people:
            return []
        async with self._engine.begin() as conn:
            result = await conn.execute(
                insert(PersonArray).returning(*_COLUMNS, sort_by_parameter_order=True),
                [{"name": person.name, "tags": person.tags} for person in people],
            )
            rows = result.all()
        return [PersonRecord(id=row.id, name=row.name, tags=list(row.tags)) for row in rows]

    async def update_person_tags(self, person_id: int, tags: Sequence[str]) -> None:
        tags = normalize_labels(tags)
        async with self._engine.begin() as conn:
            updated = await conn.scalar(
                update(PersonArray)
                .where(PersonArray.id == person_id)
                .values(tags=tags)
                .returning(PersonArray.id)
            )
            if updated is None:
                raise PersonNotFoundError(person_id, engine=POSTGRESQL)

    async def _search(self, condition: ColumnElement[bool]) -> List[PersonRecord]:
        stmt = select(*_COLUMNS).where(condition).order_by(PersonArray.id)
        async with self._engine.begin() as conn:
            rows = (await conn.execute(stmt)).all()
        return [PersonRecord(id=row.id, name=row.name, tags=list(row.tags)) for row in rows]

    async def search_by_tag(self, tag: str) -> List[PersonRecord]:
        return await self._search(PersonArray.tags.contains([tag]))

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        return await self._search(PersonArray.tags.contains(normalize_labels(tags)))

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._search(PersonArray.tags.overlap(tags))

    async def fetch_person_ids(self, limit: int) -> List[int]:
        async with self._engine.begin() as conn:
            result = await conn.scalars(
                select(PersonArray.id).order_by(PersonArray.id).limit(limit)
            )
            return list(result)

    async def cleanup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(delete(PersonArray))
