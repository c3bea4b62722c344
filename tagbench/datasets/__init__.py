"""Synthetic data for benchmark runs."""

from .people import TAG_POOL, PersonData, generate_people, get_tag_pool, random_tags

__all__ = ["TAG_POOL", "PersonData", "generate_people", "get_tag_pool", "random_tags"]
