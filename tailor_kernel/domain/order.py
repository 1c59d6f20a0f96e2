"""
Order domain types (``tailor_kernel.domain.order``).

Responsibility
--------------
Pure value objects for the order (bill) record: pipeline statuses,
department queues, items with measurements, the optional worker
assignment, actors and customers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``storage/``, ``db/`` or outer layers.

Invariants enforced
-------------------
* ``Order.total_amount`` and ``Order.balance`` are derived on read from
  items, previous balance and advance, so ``balance == total - advance``
  holds after every edit.
* ``Order.status`` is always an ``OrderStatus`` member; unknown strings
  raise ``InvalidStatusError`` at construction.
* Money is ``Decimal``; floats are converted through ``str`` so that
  ``0.1`` stays ``0.1``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from tailor_kernel.exceptions import InvalidStatusError

ZERO = Decimal("0")


# =========================================================================
# Pipeline statuses and department queues
# =========================================================================


class OrderStatus(str, Enum):
    """Production pipeline stages, in pipeline order."""

    PENDING = "pending"
    CUTTING = "cutting"
    STITCHING = "stitching"
    FINISHING = "finishing"
    IRONING = "ironing"
    COMPLETED = "completed"


STATUS_SEQUENCE: tuple[OrderStatus, ...] = tuple(OrderStatus)

TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.COMPLETED})


def parse_status(value: OrderStatus | str) -> OrderStatus:
    """Coerce a status value, raising InvalidStatusError for unknown strings."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError(str(value)) from None


class Department(str, Enum):
    """Work-queue surfaces.  Both stitching queues work the stitching stage."""

    CUTTING = "cutting"
    BLOUSE_STITCHING = "blouse-stitching"
    DRESS_STITCHING = "dress-stitching"
    FINISHING = "finishing"
    IRONING = "ironing"

    @property
    def stage(self) -> OrderStatus:
        return _DEPARTMENT_STAGES[self]


_DEPARTMENT_STAGES: dict[Department, OrderStatus] = {
    Department.CUTTING: OrderStatus.CUTTING,
    Department.BLOUSE_STITCHING: OrderStatus.STITCHING,
    Department.DRESS_STITCHING: OrderStatus.STITCHING,
    Department.FINISHING: OrderStatus.FINISHING,
    Department.IRONING: OrderStatus.IRONING,
}


def to_decimal(value: Any) -> Decimal:
    """Convert int/str/float input to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


# =========================================================================
# Items
# =========================================================================


@dataclass(frozen=True)
class Item:
    """One garment line on a bill.

    ``measurements`` keeps the entry order of the billing form as
    ``(field, value)`` pairs; a mapping passed in is converted.
    """

    garment_type: str
    qty: int = 1
    rate: Decimal = ZERO
    description: str = ""
    measurements: tuple[tuple[str, str], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", to_decimal(self.rate))
        object.__setattr__(self, "qty", int(self.qty))
        if isinstance(self.measurements, Mapping):
            pairs = tuple((str(k), str(v)) for k, v in self.measurements.items())
            object.__setattr__(self, "measurements", pairs)
        else:
            object.__setattr__(self, "measurements", tuple(self.measurements))

    @property
    def amount(self) -> Decimal:
        return Decimal(self.qty) * self.rate

    def measurement(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.measurements:
            if key == name:
                return value
        return default

    def measurements_dict(self) -> dict[str, str]:
        return dict(self.measurements)

    def with_garment_type(self, garment_type: str) -> Item:
        """Change the garment type; measurements belong to the old type and are dropped."""
        return replace(self, garment_type=garment_type, measurements=())

    def with_measurement(self, name: str, value: str) -> Item:
        pairs = [(k, v) for k, v in self.measurements if k != name]
        existing = [k for k, _ in self.measurements]
        if name in existing:
            pairs.insert(existing.index(name), (name, value))
        else:
            pairs.append((name, value))
        return replace(self, measurements=tuple(pairs))


# =========================================================================
# Parties
# =========================================================================


@dataclass(frozen=True)
class CustomerRef:
    """Denormalized customer copy carried on each order."""

    name: str
    mobile: str = ""


@dataclass(frozen=True)
class Actor:
    """A department worker operating one station."""

    actor_id: str
    name: str
    department: Department

    def __post_init__(self) -> None:
        if not isinstance(self.department, Department):
            object.__setattr__(self, "department", Department(self.department))


@dataclass(frozen=True)
class Assignment:
    """Who currently holds an order for in-progress work, and since when."""

    actor_id: str
    actor_name: str
    claimed_at: datetime | None

    @classmethod
    def for_actor(cls, actor: Actor, claimed_at: datetime) -> Assignment:
        return cls(actor_id=actor.actor_id, actor_name=actor.name, claimed_at=claimed_at)


@dataclass(frozen=True)
class Customer:
    """Customer summary derived from their bills, keyed by mobile."""

    mobile: str
    name: str
    previous_balance: Decimal = ZERO
    bill_ids: tuple[str, ...] = ()


# =========================================================================
# Order (bill)
# =========================================================================


@dataclass(frozen=True)
class Order:
    """The unit of work: one customer bill tracked through production.

    Contract: frozen.  Edits return new instances through the ``with_*``
    helpers; totals are never stored so they cannot drift.
    """

    id: str
    bill_no: str
    customer: CustomerRef
    items: tuple[Item, ...] = ()
    previous_balance: Decimal = ZERO
    advance: Decimal = ZERO
    bill_date: date | None = None
    delivery_date: date | None = None
    instructions: str = ""
    status: OrderStatus = OrderStatus.PENDING
    assignment: Assignment | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "previous_balance", to_decimal(self.previous_balance))
        object.__setattr__(self, "advance", to_decimal(self.advance))
        object.__setattr__(self, "status", parse_status(self.status))

    # -- derived financials ------------------------------------------------

    @property
    def subtotal(self) -> Decimal:
        return sum((item.amount for item in self.items), ZERO)

    @property
    def total_amount(self) -> Decimal:
        return self.subtotal + self.previous_balance

    @property
    def balance(self) -> Decimal:
        return self.total_amount - self.advance

    # -- convenience accessors ---------------------------------------------

    @property
    def customer_name(self) -> str:
        return self.customer.name

    @property
    def mobile(self) -> str:
        return self.customer.mobile

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_assigned(self) -> bool:
        return self.assignment is not None

    def is_assigned_to(self, actor_id: str) -> bool:
        return self.assignment is not None and self.assignment.actor_id == actor_id

    # -- edits -------------------------------------------------------------

    def with_items(self, items: Iterable[Item]) -> Order:
        return replace(self, items=tuple(items))

    def with_advance(self, advance: Decimal | int | str) -> Order:
        return replace(self, advance=to_decimal(advance))

    def with_previous_balance(self, previous_balance: Decimal | int | str) -> Order:
        return replace(self, previous_balance=to_decimal(previous_balance))

    def with_status(self, status: OrderStatus, completed_at: datetime | None = None) -> Order:
        return replace(
            self,
            status=status,
            completed_at=completed_at if completed_at is not None else self.completed_at,
        )

    def with_assignment(self, assignment: Assignment | None) -> Order:
        return replace(self, assignment=assignment)
