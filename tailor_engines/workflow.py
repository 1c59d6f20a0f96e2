"""
tailor_engines.workflow -- Pure order lifecycle rules.

Responsibility:
    Decide where an order goes next and which department queue it belongs
    to, from its status and garment types alone, and whether a worker may
    claim, complete or release it.

Architecture position:
    Engines -- pure rule layer, zero I/O.
    May only import tailor_kernel/domain/ types and kernel exceptions.

Invariants enforced:
    - ``next_status`` is total over the six statuses and closed over them
      (or ``None`` after ``completed``); garments in the catalogue's
      direct-to-finishing list skip cutting and stitching.
    - ``department_queue_of`` is the inverse of routing: an order advanced
      into ``stitching`` lands in exactly one stitching queue, chosen by
      catalogue precedence (blouse before dress for mixed orders).
    - Orders with no catalogue garment belong to no queue at any status.
    - Purity: no clock access, no storage, no logging.

Failure modes:
    - InvalidStatusError for a status string outside the pipeline.
    - TerminalStateError from ``require_next_status`` on completed orders.
    - Rule checks never raise; they return a ``RuleCheck`` outcome.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Iterable

from tailor_kernel.domain.catalog import DEFAULT_CATALOG, GarmentCatalog
from tailor_kernel.domain.order import (
    STATUS_SEQUENCE,
    Actor,
    Department,
    Item,
    Order,
    OrderStatus,
    parse_status,
)
from tailor_kernel.exceptions import TerminalStateError

ACTIVE_STATUSES: frozenset[OrderStatus] = frozenset({
    OrderStatus.CUTTING,
    OrderStatus.STITCHING,
    OrderStatus.FINISHING,
    OrderStatus.IRONING,
})

_FIXED_QUEUES: dict[OrderStatus, Department] = {
    OrderStatus.CUTTING: Department.CUTTING,
    OrderStatus.FINISHING: Department.FINISHING,
    OrderStatus.IRONING: Department.IRONING,
}


# =========================================================================
# Routing
# =========================================================================


def route_department(
    items: Iterable[Item],
    catalog: GarmentCatalog | None = None,
) -> Department | None:
    """The stitching queue for these items, or None if none applies.

    Queues are tried in catalogue order and the first queue that takes any
    item wins.
    """
    catalog = catalog or DEFAULT_CATALOG
    items = tuple(items)
    for rule in catalog.stitching_queues:
        if any(rule.accepts(item.garment_type) for item in items):
            return rule.department
    return None


def next_status(
    current: OrderStatus | str,
    items: Iterable[Item] = (),
    catalog: GarmentCatalog | None = None,
) -> OrderStatus | None:
    """Status after ``current`` for an order with these items.

    Returns None for ``completed``.  Raises InvalidStatusError for an
    unknown status string.
    """
    status = parse_status(current)
    if status is OrderStatus.COMPLETED:
        return None
    if status is OrderStatus.PENDING:
        catalog = catalog or DEFAULT_CATALOG
        if any(catalog.skips_stitching(item.garment_type) for item in items):
            return OrderStatus.FINISHING
        return OrderStatus.CUTTING
    return STATUS_SEQUENCE[STATUS_SEQUENCE.index(status) + 1]


def require_next_status(order: Order, catalog: GarmentCatalog | None = None) -> OrderStatus:
    """Like ``next_status`` but raises TerminalStateError instead of returning None."""
    nxt = next_status(order.status, order.items, catalog)
    if nxt is None:
        raise TerminalStateError(order.id, order.status.value)
    return nxt


def has_catalogue_garment(order: Order, catalog: GarmentCatalog | None = None) -> bool:
    catalog = catalog or DEFAULT_CATALOG
    return any(catalog.is_known(item.garment_type) for item in order.items)


def department_queue_of(
    order: Order,
    catalog: GarmentCatalog | None = None,
) -> Department | None:
    """The single department queue ``order`` belongs in, if any."""
    catalog = catalog or DEFAULT_CATALOG
    if not has_catalogue_garment(order, catalog):
        return None
    if order.status is OrderStatus.STITCHING:
        return route_department(order.items, catalog)
    return _FIXED_QUEUES.get(order.status)


def is_unrouted(order: Order, catalog: GarmentCatalog | None = None) -> bool:
    """In production but in nobody's queue."""
    return order.status in ACTIVE_STATUSES and department_queue_of(order, catalog) is None


# =========================================================================
# Stage path (flow tracker)
# =========================================================================


@dataclass(frozen=True)
class StageProgress:
    """Where an order stands on its own stage path.

    ``current_index`` is None when the stored status is not on the path
    (a saree order stuck in cutting, say); ``percent`` is then zero.
    """

    path: tuple[OrderStatus, ...]
    current_index: int | None
    percent: Decimal


def stage_path(
    items: Iterable[Item],
    catalog: GarmentCatalog | None = None,
) -> tuple[OrderStatus, ...]:
    """Statuses an order with these items visits, pending to completed."""
    items = tuple(items)
    path = [OrderStatus.PENDING]
    nxt = next_status(OrderStatus.PENDING, items, catalog)
    while nxt is not None:
        path.append(nxt)
        nxt = next_status(nxt, items, catalog)
    return tuple(path)


def stage_progress(order: Order, catalog: GarmentCatalog | None = None) -> StageProgress:
    path = stage_path(order.items, catalog)
    if order.status not in path:
        return StageProgress(path=path, current_index=None, percent=Decimal("0"))
    index = path.index(order.status)
    percent = (Decimal(index + 1) * 100 / len(path)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    return StageProgress(path=path, current_index=index, percent=percent)


# =========================================================================
# Claim / complete / release rules
# =========================================================================


class RuleOutcome(str, Enum):
    ALLOWED = "allowed"
    ALREADY_ASSIGNED_TO_ACTOR = "already_assigned_to_actor"
    ASSIGNED_TO_OTHER = "assigned_to_other"
    NOT_IN_QUEUE = "not_in_queue"
    NOT_ASSIGNED = "not_assigned"
    TERMINAL = "terminal"
    UNROUTABLE = "unroutable"


@dataclass(frozen=True)
class RuleCheck:
    """Result of checking one action against one order and actor."""

    outcome: RuleOutcome
    reason: str
    queue: Department | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is RuleOutcome.ALLOWED


def _queue_check(order: Order, actor: Actor, catalog: GarmentCatalog | None) -> RuleCheck | None:
    if order.is_terminal:
        return RuleCheck(RuleOutcome.TERMINAL, f"order is {order.status.value}")
    queue = department_queue_of(order, catalog)
    if queue is None and order.status in ACTIVE_STATUSES:
        return RuleCheck(
            RuleOutcome.UNROUTABLE,
            f"order is {order.status.value} but no department takes its garments",
        )
    if queue is not actor.department:
        where = queue.value if queue is not None else "no queue"
        return RuleCheck(
            RuleOutcome.NOT_IN_QUEUE,
            f"order is in {where}, not {actor.department.value}",
            queue=queue,
        )
    return None


def check_claim(order: Order, actor: Actor, catalog: GarmentCatalog | None = None) -> RuleCheck:
    """May ``actor`` take ``order`` from their department queue?"""
    failed = _queue_check(order, actor, catalog)
    if failed is not None:
        return failed
    queue = actor.department
    if order.assignment is not None:
        if order.assignment.actor_id == actor.actor_id:
            return RuleCheck(
                RuleOutcome.ALREADY_ASSIGNED_TO_ACTOR, "already held by this actor", queue
            )
        return RuleCheck(
            RuleOutcome.ASSIGNED_TO_OTHER,
            f"already taken by {order.assignment.actor_name}",
            queue,
        )
    return RuleCheck(RuleOutcome.ALLOWED, "unassigned and in queue", queue)


def check_complete(order: Order, actor: Actor, catalog: GarmentCatalog | None = None) -> RuleCheck:
    """May ``actor`` mark their stage of ``order`` done?  A claim is required."""
    failed = _queue_check(order, actor, catalog)
    if failed is not None:
        return failed
    if not order.is_assigned_to(actor.actor_id):
        return RuleCheck(
            RuleOutcome.NOT_ASSIGNED,
            "order must be claimed by this actor first",
            actor.department,
        )
    return RuleCheck(RuleOutcome.ALLOWED, "held by this actor", actor.department)


def check_release(order: Order, actor: Actor) -> RuleCheck:
    """May ``actor`` hand ``order`` back to the queue unfinished?"""
    if not order.is_assigned_to(actor.actor_id):
        return RuleCheck(RuleOutcome.NOT_ASSIGNED, "order is not held by this actor")
    return RuleCheck(RuleOutcome.ALLOWED, "held by this actor")
