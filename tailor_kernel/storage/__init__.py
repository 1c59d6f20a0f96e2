"""Order collection storage adapters."""

from tailor_kernel.storage.base import (
    DEFAULT_COLLECTION_KEY,
    CollectionSnapshot,
    OrderStore,
)
from tailor_kernel.storage.memory import InMemoryOrderStore
from tailor_kernel.storage.sql import SqlOrderStore

__all__ = [
    "DEFAULT_COLLECTION_KEY",
    "CollectionSnapshot",
    "OrderStore",
    "InMemoryOrderStore",
    "SqlOrderStore",
]
