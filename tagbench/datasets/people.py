"""
Synthetic person records for seeding and write workloads.

Every person gets between 5 and 15 distinct tags drawn from a fixed
15-word vocabulary, so popular query tags such as "engineer" match a
large share of the data set.
"""

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

TAG_POOL = (
    "engineer",
    "remote",
    "frontend",
    "backend",
    "manager",
    "senior",
    "junior",
    "fullstack",
    "devops",
    "qa",
    "designer",
    "product",
    "marketing",
    "sales",
    "support",
)

MIN_TAGS = 5
MAX_TAGS = 15


@dataclass
class PersonData:
    """
    A person to be inserted.

    Attributes:
        name: Display name.
        tags: Tag names; order is kept by array/document models.
    """
    name: str
    tags: List[str] = field(default_factory=list)


def get_tag_pool() -> List[str]:
    """Return a copy of the tag vocabulary."""
    return list(TAG_POOL)


def random_tags(rng: Optional[random.Random] = None) -> List[str]:
    """Pick 5-15 distinct tags in random order."""
    rng = rng or random
    count = rng.randint(MIN_TAGS, MAX_TAGS)
    return rng.sample(TAG_POOL, count)


def iter_people(count: int, rng: Optional[random.Random] = None) -> Iterator[PersonData]:
    """Yield ``count`` people named ``Person 1`` .. ``Person <count>``."""
    for i in range(1, count + 1):
        yield PersonData(name=f"Person {i}", tags=random_tags(rng))


def generate_people(count: int, rng: Optional[random.Random] = None) -> List[PersonData]:
    """
    Generate ``count`` synthetic people.

    Args:
        count: Number of records to generate (0 gives an empty list).
        rng: Optional random generator for reproducible data.

    Raises:
        ValueError: If count is negative.
    """
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    return list(iter_people(count, rng))
