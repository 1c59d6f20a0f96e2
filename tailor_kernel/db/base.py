"""
Module: tailor_kernel.db.base
Responsibility: Declarative base for the SQLAlchemy ORM models.  Provides
    the UUID primary key convention and the type annotation map so that
    every column uses the same types on PostgreSQL and SQLite.
Architecture position: Kernel > DB.  Lowest-level import target within
    the kernel's persistence code.  MUST NOT import from storage/ or outer
    layers.

Invariants enforced:
    - UUID primary keys stored as String(36) for cross-database portability.
    - datetime maps to DateTime(timezone=True); timestamps are always aware.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator, String


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all ORM models.

    Guarantees:
        - id is a uuid4-generated UUID stored as String(36).
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger (revision counters never wrap).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )
