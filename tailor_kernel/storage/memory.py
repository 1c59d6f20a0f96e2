"""In-process order store for tests and single-station use."""

from __future__ import annotations

import threading
from typing import Sequence

from tailor_kernel.domain.order import Order
from tailor_kernel.domain.serialization import dump_collection, load_collection
from tailor_kernel.exceptions import StaleCollectionError
from tailor_kernel.storage.base import (
    DEFAULT_COLLECTION_KEY,
    CollectionSnapshot,
    OrderStore,
)


class InMemoryOrderStore(OrderStore):
    """
    Keeps the serialized document rather than live objects, so every
    reader decodes its own copy, as stations sharing one browser blob do.
    """

    def __init__(
        self,
        collection_key: str = DEFAULT_COLLECTION_KEY,
        payload: str | None = None,
    ):
        self.collection_key = collection_key
        self._lock = threading.Lock()
        self._payload = payload
        self._revision = 1 if payload else 0

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    @property
    def payload(self) -> str | None:
        with self._lock:
            return self._payload

    def load(self) -> CollectionSnapshot:
        with self._lock:
            payload, revision = self._payload, self._revision
        return CollectionSnapshot(revision=revision, orders=load_collection(payload))

    def save(self, orders: Sequence[Order], expected_revision: int) -> int:
        payload = dump_collection(orders)
        with self._lock:
            if self._revision != expected_revision:
                raise StaleCollectionError(
                    self.collection_key, expected_revision, self._revision
                )
            self._payload = payload
            self._revision += 1
            return self._revision
