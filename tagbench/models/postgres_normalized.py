"""
Normalized model on PostgreSQL: persons, tags and a person_tags join table.

Tags are first-class rows, unique by name. Every flow that needs tag ids
goes through ``_resolve_tag_ids``, which inserts missing names with
``ON CONFLICT DO NOTHING`` and then reads the ids back, so a tag name is
stored at most once even under concurrent writers.

AND search counts, per person, how many of the requested tags it carries
through the join table and keeps people whose count equals the number of
requested tags.
"""

from typing import Dict, List, Optional, Sequence

from sqlalchemy import Select, delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncConnection

from tagbench.datasets.people import PersonData
from tagbench.engines.base import POSTGRESQL
from tagbench.engines.postgres import PostgresEngine
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
from tagbench.models.tables import NORMALIZED_TABLES, Base, Person, PersonTag, Tag


async def _resolve_tag_ids(conn: AsyncConnection, names: Sequence[str]) -> Dict[str, int]:
    """Map each tag name to its id, creating the missing ones."""
    if not names:
        return {}
    await conn.execute(
        pg_insert(Tag)
        .values([{"name": name} for name in names])
        .on_conflict_do_nothing(index_elements=[Tag.name])
    )
    rows = await conn.execute(select(Tag.name, Tag.id).where(Tag.name.in_(names)))
    return {name: tag_id for name, tag_id in rows}


def _people_with_tags(matching: Optional[Select]) -> Select:
    """Select people (optionally restricted to ``matching`` ids) with their tag names."""
    stmt = (
        select(
            Person.id,
            Person.name,
            func.array_agg(Tag.name).filter(Tag.name.is_not(None)).label("tags"),
        )
        .select_from(Person)
        .outerjoin(PersonTag, PersonTag.person_id == Person.id)
        .outerjoin(Tag, Tag.id == PersonTag.tag_id)
        .group_by(Person.id, Person.name)
        .order_by(Person.id)
    )
    if matching is not None:
        stmt = stmt.where(Person.id.in_(matching))
    return stmt


def _tagged_with_any(tags: Sequence[str]) -> Select:
    return (
        select(PersonTag.person_id)
        .join(Tag, Tag.id == PersonTag.tag_id)
        .where(Tag.name.in_(tags))
    )


def _tagged_with_all(tags: Sequence[str]) -> Select:
    return (
        select(PersonTag.person_id)
        .join(Tag, Tag.id == PersonTag.tag_id)
        .where(Tag.name.in_(tags))
        .group_by(PersonTag.person_id)
        .having(func.count(Tag.id.distinct()) == len(tags))
    )


class PostgresNormalizedModel(TagModel):
    """Join-table representation on PostgreSQL."""

    database = POSTGRESQL
    model = NORMALIZED

    def __init__(self, engine: PostgresEngine):
        self._engine = engine

    async def setup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, tables=NORMALIZED_TABLES)

    async def insert_person(self, name: str, tags: Sequence[str]) -> PersonRecord:
        name = validate_name(name)
        tags = normalize_labels(tags)

        async with self._engine.begin() as conn:
            row = (
                await conn.execute(
                    insert(Person).values(name=name).returning(Person.id, Person.name)
                )
            ).one()
            if tags:
                tag_ids = await _resolve_tag_ids(conn, tags)
                await conn.execute(
                    insert(PersonTag),
                    [{"person_id": row.id, "tag_id": tag_ids[tag]} for tag in tags],
                )

        return PersonRecord(id=row.id, name=row.name, tags=tags)

    async def insert_persons_batch(self, people: Sequence[PersonData]) -> List[PersonRecord]:
        people = normalize_people(people)
        if not people:
            return []

        async with self._engine.begin() as conn:
            tag_ids = await _resolve_tag_ids(conn, collect_label_names(people))

            result = await conn.execute(
                insert(Person).returning(Person.id, Person.name, sort_by_parameter_order=True),
                [{"name": person.name} for person in people],
            )
            rows = result.all()

            links = link_rows([row.id for row in rows], people, tag_ids)
            if links:
                await conn.execute(
                    insert(PersonTag),
                    [{"person_id": person_id, "tag_id": tag_id} for person_id, tag_id in links],
                )

        return [
            PersonRecord(id=row.id, name=row.name, tags=person.tags)
            for row, person in zip(rows, people)
        ]

    async def update_person_tags(self, person_id: int, tags: Sequence[str]) -> None:
        tags = normalize_labels(tags)

        async with self._engine.begin() as conn:
            found = await conn.scalar(
                select(Person.id).where(Person.id == person_id).with_for_update()
            )
            if found is None:
                raise PersonNotFoundError(person_id, engine=POSTGRESQL)

            current = dict(
                (
                    await conn.execute(
                        select(Tag.name, Tag.id)
                        .join(PersonTag, PersonTag.tag_id == Tag.id)
                        .where(PersonTag.person_id == person_id)
                    )
                ).all()
            )
            to_remove, to_add = label_diff(current, tags)

            if to_remove:
                await conn.execute(
                    delete(PersonTag).where(
                        PersonTag.person_id == person_id,
                        PersonTag.tag_id.in_([current[name] for name in to_remove]),
                    )
                )
            if to_add:
                tag_ids = await _resolve_tag_ids(conn, to_add)
                await conn.execute(
                    insert(PersonTag),
                    [{"person_id": person_id, "tag_id": tag_ids[tag]} for tag in to_add],
                )

    async def _search(self, matching: Optional[Select]) -> List[PersonRecord]:
        async with self._engine.begin() as conn:
            rows = (await conn.execute(_people_with_tags(matching))).all()
        return [PersonRecord(id=row.id, name=row.name, tags=list(row.tags or [])) for row in rows]

    async def search_by_tag(self, tag: str) -> List[PersonRecord]:
        return await self._search(_tagged_with_any([tag]))

    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return await self._search(None)
        return await self._search(_tagged_with_all(tags))

    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        tags = normalize_labels(tags)
        if not tags:
            return []
        return await self._search(_tagged_with_any(tags))

    async def fetch_person_ids(self, limit: int) -> List[int]:
        async with self._engine.begin() as conn:
            result = await conn.scalars(select(Person.id).order_by(Person.id).limit(limit))
            return list(result)

    async def cleanup(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(delete(PersonTag))
            await conn.execute(delete(Person))
            await conn.execute(delete(Tag))
