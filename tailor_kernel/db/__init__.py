"""Database layer: declarative base, collection table and engine helpers."""

from tailor_kernel.db.base import Base, UUIDString
from tailor_kernel.db.engine import (
    build_engine,
    create_tables,
    drop_tables,
    session_scope,
)
from tailor_kernel.db.models import CollectionBlobModel

__all__ = [
    "Base",
    "UUIDString",
    "CollectionBlobModel",
    "build_engine",
    "create_tables",
    "drop_tables",
    "session_scope",
]
