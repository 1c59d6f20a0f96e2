"""
Optimistic read-modify-write over the order collection.

Every mutation reads a fresh snapshot, plans its change against that
snapshot, and compare-and-swaps the result.  On a lost race the plan is
run again from a new read, so preconditions are always evaluated against
the latest data.  Domain errors raised by the plan abort without writing.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from tailor_kernel.domain.order import Order
from tailor_kernel.exceptions import StaleCollectionError
from tailor_kernel.storage.base import CollectionSnapshot, OrderStore

T = TypeVar("T")

# plan(snapshot) -> (orders to store, or None for no write; result)
Plan = Callable[[CollectionSnapshot], tuple["tuple[Order, ...] | None", T]]


def write_with_retry(
    store: OrderStore,
    plan: Plan,
    *,
    action: str,
    max_attempts: int,
    logger: logging.Logger,
) -> T:
    """Run ``plan`` and save its output, retrying stale writes."""
    for attempt in range(1, max_attempts + 1):
        snapshot = store.load()
        orders, result = plan(snapshot)
        if orders is None:
            return result
        try:
            store.save(orders, snapshot.revision)
            return result
        except StaleCollectionError as exc:
            if attempt >= max_attempts:
                logger.warning(
                    "stale_collection_exhausted",
                    extra={"action": action, "attempts": attempt},
                )
                raise
            logger.info(
                "stale_collection_retry",
                extra={
                    "action": action,
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "expected_revision": exc.expected_revision,
                    "actual_revision": exc.actual_revision,
                },
            )
    raise ValueError(f"max_attempts must be positive, got {max_attempts}")


def update_order(
    snapshot: CollectionSnapshot,
    order_id: str,
    change: Callable[[Order], Order | None],
) -> tuple[tuple[Order, ...] | None, tuple[Order, Order]]:
    """Plan helper for single-order edits.

    ``change`` receives the fresh order and returns its replacement, or
    None to leave the collection untouched.  The result is
    ``(before, after)``.
    """
    current = snapshot.find(order_id)
    updated = change(current)
    if updated is None:
        return None, (current, current)
    return snapshot.replace(updated), (current, updated)
