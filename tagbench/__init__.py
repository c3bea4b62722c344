"""
Tag storage benchmark.

Compares three physical representations of a person/tag relationship
on PostgreSQL and DuckDB:
- normalized: person, tag and person_tag join tables
- jsonb: tags as a JSON array document
- array: tags as a native array column
"""

__version__ = "0.1.0"
