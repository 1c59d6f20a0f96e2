"""
OrderStore -- the shared order collection.

Responsibility:
    Persist the single order collection that every station reads and
    writes.  Mutations are whole-collection replaces guarded by a revision
    counter (compare-and-swap), so a station acting on a stale snapshot
    fails instead of overwriting a competing edit.

Architecture position:
    Kernel > Storage.  Imports domain serialization only.

Invariants enforced:
    - Revision 0 means nothing is stored yet; every successful save
      returns a strictly greater revision.
    - ``save`` raises ``StaleCollectionError`` when the stored revision is
      not ``expected_revision``; nothing is written in that case.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence

from tailor_kernel.domain.order import Order
from tailor_kernel.exceptions import OrderNotFoundError, StaleCollectionError

DEFAULT_COLLECTION_KEY = "tailorOrders"


@dataclass(frozen=True)
class CollectionSnapshot:
    """Orders as read at one revision."""

    revision: int
    orders: tuple[Order, ...]

    def find(self, order_id: str) -> Order:
        for order in self.orders:
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def replace(self, updated: Order) -> tuple[Order, ...]:
        """Collection with ``updated`` swapped in at its original position."""
        self.find(updated.id)
        return tuple(updated if o.id == updated.id else o for o in self.orders)


class OrderStore(ABC):
    """Abstract storage collaborator for the order collection."""

    collection_key: str = DEFAULT_COLLECTION_KEY

    @abstractmethod
    def load(self) -> CollectionSnapshot:
        """Read the collection and its current revision."""
        ...

    @abstractmethod
    def save(self, orders: Sequence[Order], expected_revision: int) -> int:
        """Compare-and-swap write; returns the new revision."""
        ...

    def load_orders(self) -> tuple[Order, ...]:
        return self.load().orders

    def save_orders(self, orders: Sequence[Order]) -> int:
        """Unconditional whole-collection replace."""
        while True:
            revision = self.load().revision
            try:
                return self.save(orders, revision)
            except StaleCollectionError:
                continue
