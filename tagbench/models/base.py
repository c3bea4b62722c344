"""
Base class for tag storage models.

A storage model is one physical representation of the person/tag
relationship on one engine. All models must inherit from TagModel and
implement the abstract methods with identical semantics, so that the
same seeded data gives the same search answers whichever model holds it.

Search semantics shared by every model:
- search_by_tag(t): people whose tag set contains t
- search_by_tags_and(S): people whose tag set is a superset of S
  (an empty S matches everyone)
- search_by_tags_or(S): people whose tag set intersects S
  (an empty S matches no one)
Results never repeat a person and are ordered by id.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Sequence

from tagbench.datasets.people import PersonData

NORMALIZED = "normalized"
JSONB = "jsonb"
ARRAY = "array"

MODELS = (NORMALIZED, JSONB, ARRAY)


@dataclass
class PersonRecord:
    """
    A stored person.

    Attributes:
        id: Identifier assigned by storage.
        name: Display name.
        tags: Tag names. Order is not significant.
    """
    id: int
    name: str
    tags: List[str] = field(default_factory=list)

    @property
    def tag_set(self) -> FrozenSet[str]:
        return frozenset(self.tags)


class TagModel(ABC):
    """
    Abstract base class for storage models.

    Subclasses set the ``database`` and ``model`` class attributes and
    receive the engine handle they run on. The handle is borrowed: models
    never close it.

    Example:
        class MyModel(TagModel):
            database = "duckdb"
            model = "array"

            async def setup(self) -> None:
                ...
    """

    database: str = ""
    model: str = ""

    @property
    def name(self) -> str:
        """Label used in reports, e.g. ``POSTGRESQL-ARRAY``."""
        return f"{self.database}-{self.model}".upper()

    @abstractmethod
    async def setup(self) -> None:
        """Create tables, sequences and indexes if absent. Idempotent."""

    @abstractmethod
    async def insert_person(self, name: str, tags: Sequence[str]) -> PersonRecord:
        """
        Create one person with exactly ``tags``.

        Raises:
            ValueError: If name is empty.
        """

    @abstractmethod
    async def insert_persons_batch(self, people: Sequence[PersonData]) -> List[PersonRecord]:
        """
        Create all ``people`` in a single transaction.

        Returns:
            The created records, in input order.
        """

    @abstractmethod
    async def update_person_tags(self, person_id: int, tags: Sequence[str]) -> None:
        """
        Replace the tag set of ``person_id`` atomically.

        Raises:
            PersonNotFoundError: If no person has this id.
        """

    @abstractmethod
    async def search_by_tag(self, tag: str) -> List[PersonRecord]:
        """People tagged with ``tag``."""

    @abstractmethod
    async def search_by_tags_and(self, tags: Sequence[str]) -> List[PersonRecord]:
        """People tagged with every tag in ``tags``."""

    @abstractmethod
    async def search_by_tags_or(self, tags: Sequence[str]) -> List[PersonRecord]:
        """People tagged with at least one tag in ``tags``."""

    @abstractmethod
    async def fetch_person_ids(self, limit: int) -> List[int]:
        """Up to ``limit`` existing person ids, ascending."""

    @abstractmethod
    async def cleanup(self) -> None:
        """Delete every person, tag and association of this model."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
