"""
Shop Billing Engine.

Pure functions with deterministic behavior. No I/O.

Computes bill totals, checks that a bill carries the minimum fields the
workshop needs, issues bill numbers and derives the customer list from the
order collection.

Usage:
    from tailor_engines.billing import compute_totals, validate_for_billing

    totals = compute_totals(order.items, order.previous_balance, order.advance)
    validate_for_billing(order)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from tailor_kernel.domain.catalog import DEFAULT_CATALOG, GarmentCatalog
from tailor_kernel.domain.order import ZERO, Customer, Item, Order, to_decimal
from tailor_kernel.exceptions import OrderValidationError

BILL_NO_PREFIX = "ST"
_BILL_NO_SPACE = 1_000_000


@dataclass(frozen=True)
class BillTotals:
    """Bill summary figures."""

    subtotal: Decimal
    total_amount: Decimal
    balance: Decimal


def compute_totals(
    items: Iterable[Item],
    previous_balance: Decimal | int | str = ZERO,
    advance: Decimal | int | str = ZERO,
) -> BillTotals:
    """total = sum(qty * rate) + previous balance; balance = total - advance."""
    subtotal = sum((item.amount for item in items), ZERO)
    total = subtotal + to_decimal(previous_balance)
    return BillTotals(
        subtotal=subtotal,
        total_amount=total,
        balance=total - to_decimal(advance),
    )


def production_problems(order: Order) -> list[tuple[str, str]]:
    """The minimum a workshop ticket needs: a customer and a garment."""
    problems: list[tuple[str, str]] = []
    if not order.customer.name.strip():
        problems.append(("customer_name", "customer name is required"))
    if not any(item.garment_type.strip() for item in order.items):
        problems.append(("items", "at least one item needs a garment type"))
    return problems


def validate_for_production(order: Order) -> None:
    """Checked on every stage completion; legacy bills pass if minimally complete."""
    problems = production_problems(order)
    if problems:
        raise OrderValidationError(order.id, problems)


def billing_problems(
    order: Order,
    catalog: GarmentCatalog | None = None,
) -> list[tuple[str, str]]:
    """Every field problem on ``order``, as ``(field, message)`` pairs."""
    catalog = catalog or DEFAULT_CATALOG
    problems = production_problems(order)

    for index, item in enumerate(order.items):
        if item.garment_type.strip() and not catalog.is_known(item.garment_type):
            problems.append(
                (f"items[{index}].garment_type", f"unknown garment type {item.garment_type!r}")
            )
        if item.qty < 0:
            problems.append((f"items[{index}].qty", "quantity must not be negative"))
        if item.rate < 0:
            problems.append((f"items[{index}].rate", "rate must not be negative"))

    if order.advance < 0:
        problems.append(("advance", "advance must not be negative"))
    return problems


def validate_for_billing(order: Order, catalog: GarmentCatalog | None = None) -> None:
    """Raise OrderValidationError listing every problem, or return None."""
    problems = billing_problems(order, catalog)
    if problems:
        raise OrderValidationError(order.id, problems)


def measurement_fields_for(
    garment_type: str,
    catalog: GarmentCatalog | None = None,
) -> tuple[str, ...]:
    """Measurement fields the billing form shows for a garment."""
    return (catalog or DEFAULT_CATALOG).measurement_fields_for(garment_type)


def generate_bill_no(
    now: datetime,
    prefix: str = BILL_NO_PREFIX,
    existing: Iterable[str] = (),
) -> str:
    """Prefix plus the last six digits of the epoch-millisecond timestamp.

    Two bills in the same millisecond (or a wrapped counter) are bumped
    forward until the number is unused in ``existing``.
    """
    taken = set(existing)
    serial = int(now.timestamp() * 1000) % _BILL_NO_SPACE
    for _ in range(_BILL_NO_SPACE):
        candidate = f"{prefix}{serial:06d}"
        if candidate not in taken:
            return candidate
        serial = (serial + 1) % _BILL_NO_SPACE
    raise ValueError(f"No free bill number left for prefix {prefix!r}")


def customers_from_orders(orders: Iterable[Order]) -> tuple[Customer, ...]:
    """Customers keyed by mobile, in order of first appearance.

    Name and previous balance come from the customer's latest bill (by bill
    date, then collection order).  Orders without a mobile are skipped.
    """
    latest: dict[str, tuple[tuple[date, int], Order]] = {}
    bill_ids: dict[str, list[str]] = {}

    for index, order in enumerate(orders):
        mobile = order.customer.mobile.strip()
        if not mobile:
            continue
        rank = (order.bill_date or date.min, index)
        bill_ids.setdefault(mobile, []).append(order.id)
        if mobile not in latest or rank >= latest[mobile][0]:
            latest[mobile] = (rank, order)

    return tuple(
        Customer(
            mobile=mobile,
            name=latest[mobile][1].customer.name,
            previous_balance=latest[mobile][1].balance,
            bill_ids=tuple(ids),
        )
        for mobile, ids in bill_ids.items()
    )


def find_customer(orders: Iterable[Order], mobile: str) -> Customer | None:
    mobile = mobile.strip()
    for customer in customers_from_orders(orders):
        if customer.mobile == mobile:
            return customer
    return None
