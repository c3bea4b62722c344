"""
SQLAlchemy table definitions for the PostgreSQL models.

Each model creates only its own tables in setup(), via the table groups
at the bottom of this module.
"""

from sqlalchemy import Column, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Person(Base):
    __tablename__ = "persons"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)


class PersonTag(Base):
    __tablename__ = "person_tags"
    person_id = Column(Integer, ForeignKey("persons.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    __table_args__ = (
        Index("idx_person_tags_tag_id", "tag_id"),
    )


class PersonArray(Base):
    __tablename__ = "persons_array"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    tags = Column(ARRAY(String), nullable=False, default=list)

    __table_args__ = (
        Index("idx_persons_array_tags_gin", "tags", postgresql_using="gin"),
    )


class PersonJsonb(Base):
    __tablename__ = "persons_jsonb"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    tags = Column(JSONB, nullable=False, default=list)

    __table_args__ = (
        Index("idx_persons_jsonb_tags_gin", "tags", postgresql_using="gin"),
    )


NORMALIZED_TABLES = [Person.__table__, Tag.__table__, PersonTag.__table__]
ARRAY_TABLES = [PersonArray.__table__]
JSONB_TABLES = [PersonJsonb.__table__]
