"""
Plain-data helpers shared by every storage model.

These take and return ordinary lists so each model can apply the same
deduplication rules without sharing state.
"""

from typing import Iterable, List, Mapping, Sequence, Tuple

from tagbench.datasets.people import PersonData


def normalize_labels(tags: Iterable[str]) -> List[str]:
    """
    Drop duplicate tags, keeping first-seen order.

    Raises:
        TypeError: If a tag is not a string.
    """
    seen = set()
    result = []
    for tag in tags:
        if not isinstance(tag, str):
            raise TypeError(f"Tag must be a string, got {type(tag).__name__}")
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


def validate_name(name: str) -> str:
    """
    Return ``name`` if it is a non-blank string.

    Raises:
        ValueError: If name is empty or whitespace only.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Person name must be a non-empty string")
    return name


def normalize_people(people: Iterable[PersonData]) -> List[PersonData]:
    """Validate names and deduplicate each person's tags."""
    return [
        PersonData(name=validate_name(person.name), tags=normalize_labels(person.tags))
        for person in people
    ]


def collect_label_names(people: Iterable[PersonData]) -> List[str]:
    """
    Every distinct tag used anywhere in ``people``, first-seen order.

    A batch resolves each name to a tag id once, however many people
    carry it.
    """
    seen = set()
    names = []
    for person in people:
        for tag in person.tags:
            if tag not in seen:
                seen.add(tag)
                names.append(tag)
    return names


def label_diff(current: Iterable[str], new: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split a tag-set replacement into removals and additions.

    Returns:
        (to_remove, to_add): tags in ``current`` but not in ``new``, and
        tags in ``new`` but not in ``current`` (``new`` order).
    """
    current_set = set(current)
    new_set = set(new)
    to_remove = sorted(current_set - new_set)
    to_add = [tag for tag in normalize_labels(new) if tag not in current_set]
    return to_remove, to_add


def link_rows(
    person_ids: Sequence[int],
    people: Sequence[PersonData],
    tag_ids: Mapping[str, int],
) -> List[Tuple[int, int]]:
    """(person_id, tag_id) pairs for freshly inserted people, in input order."""
    return [
        (person_id, tag_ids[tag])
        for person_id, person in zip(person_ids, people)
        for tag in person.tags
    ]
