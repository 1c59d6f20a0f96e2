"""
tailor_engines.work_queue -- Department work queue filter.

Responsibility:
    Produce the list a department station shows on every refresh tick:
    the orders currently in that department's queue, optionally narrowed
    by a search term or garment types and sorted by a named column.

Architecture position:
    Engines -- pure, zero I/O.  Never mutates its input.

Invariants enforced:
    - Membership is exactly ``department_queue_of(order) == department``.
    - Sorting is stable; orders whose sort value is missing keep their
      relative order after all others, for either direction.
    - Malformed orders (no items, unknown garments) are excluded, never raised.

Failure modes:
    - InvalidSortKeyError for an unknown sort key or direction.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from tailor_engines.workflow import department_queue_of, is_unrouted
from tailor_kernel.domain.catalog import GarmentCatalog, normalize_garment
from tailor_kernel.domain.order import Department, Order, OrderStatus
from tailor_kernel.exceptions import InvalidSortKeyError


def _text_key(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value.casefold()


SORT_KEYS: dict[str, Callable[[Order], Any]] = {
    "bill_no": lambda o: _text_key(o.bill_no),
    "customer_name": lambda o: _text_key(o.customer.name),
    "mobile": lambda o: _text_key(o.customer.mobile),
    "total_amount": lambda o: o.total_amount,
    "balance": lambda o: o.balance,
    "advance": lambda o: o.advance,
    "bill_date": lambda o: o.bill_date,
    "delivery_date": lambda o: o.delivery_date,
    "claimed_at": lambda o: o.assignment.claimed_at if o.assignment else None,
    "assignee": lambda o: _text_key(o.assignment.actor_name) if o.assignment else None,
}

SORT_DIRECTIONS = ("asc", "desc")


def matches_search(order: Order, search: str | None) -> bool:
    """Case-insensitive substring match on bill number or customer name."""
    if search is None or not search.strip():
        return True
    term = search.strip().casefold()
    return term in order.bill_no.casefold() or term in order.customer.name.casefold()


def _matches_garments(order: Order, wanted: frozenset[str]) -> bool:
    return any(normalize_garment(item.garment_type) in wanted for item in order.items)


def sort_orders(
    orders: Iterable[Order],
    sort_key: str | None = None,
    sort_dir: str = "asc",
) -> tuple[Order, ...]:
    """Stable sort by a named column with missing values last."""
    if sort_dir not in SORT_DIRECTIONS:
        raise InvalidSortKeyError(sort_dir, SORT_DIRECTIONS)
    orders = tuple(orders)
    if sort_key is None:
        return orders
    extract = SORT_KEYS.get(sort_key)
    if extract is None:
        raise InvalidSortKeyError(sort_key, tuple(SORT_KEYS))

    present = []
    missing = []
    for order in orders:
        (missing if extract(order) is None else present).append(order)
    present.sort(key=extract, reverse=(sort_dir == "desc"))
    return tuple(present) + tuple(missing)


def list_queue(
    orders: Iterable[Order],
    department: Department | str,
    search: str | None = None,
    sort_key: str | None = None,
    sort_dir: str = "asc",
    garment_filter: Iterable[str] | None = None,
    catalog: GarmentCatalog | None = None,
) -> tuple[Order, ...]:
    """Orders in ``department``'s queue, filtered and sorted for display.

    Args:
        orders: The whole collection, in stored order.
        department: The station's department.
        search: Substring of bill number or customer name; blank means all.
        sort_key: One of ``SORT_KEYS``; None keeps collection order.
        sort_dir: ``"asc"`` or ``"desc"``.
        garment_filter: Keep only orders with at least one of these garments.
        catalog: Garment catalogue; defaults to the shipped one.

    Raises:
        InvalidSortKeyError: Unknown sort key or direction.
    """
    department = Department(department)
    # Validate the sort before filtering so a bad key fails on an empty queue too.
    sort_orders((), sort_key, sort_dir)

    wanted = None
    if garment_filter:
        wanted = frozenset(normalize_garment(g) for g in garment_filter)

    selected = [
        order
        for order in orders
        if department_queue_of(order, catalog) is department
        and matches_search(order, search)
        and (wanted is None or _matches_garments(order, wanted))
    ]
    return sort_orders(selected, sort_key, sort_dir)


def list_pending(orders: Iterable[Order], search: str | None = None) -> tuple[Order, ...]:
    """The billing counter's intake list: pending orders in collection order."""
    return tuple(
        order
        for order in orders
        if order.status is OrderStatus.PENDING and matches_search(order, search)
    )


def find_unrouted(
    orders: Iterable[Order],
    catalog: GarmentCatalog | None = None,
) -> tuple[Order, ...]:
    """Orders in production that no department queue will ever show."""
    return tuple(order for order in orders if is_unrouted(order, catalog))
