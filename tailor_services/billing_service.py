"""
tailor_services.billing_service -- The billing counter.

Responsibility:
    Create bills, edit them while they are still pending, record advances
    and release bills into production.  Customer lookups are derived from
    the stored bills.

Architecture position:
    Services layer.  Arithmetic, validation and bill numbering come from
    ``tailor_engines.billing``; routing of the first step from
    ``tailor_engines.workflow``.  Writes use the same optimistic
    read-modify-write as the claim coordinator.

Invariants enforced:
    - A new bill is ``pending`` and unassigned; it appears in no department
      queue until ``submit_to_production``.
    - Items can only change while pending, since they drive routing.
    - Bill numbers are unique within the collection.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import uuid4

from tailor_engines.billing import (
    BILL_NO_PREFIX,
    customers_from_orders,
    find_customer,
    generate_bill_no,
    validate_for_billing,
)
from tailor_engines.workflow import next_status
from tailor_kernel.domain.catalog import GarmentCatalog
from tailor_kernel.domain.clock import Clock, SystemClock
from tailor_kernel.domain.order import (
    ZERO,
    Customer,
    CustomerRef,
    Item,
    Order,
    OrderStatus,
    to_decimal,
)
from tailor_kernel.exceptions import InvalidTransitionError, OrderValidationError
from tailor_kernel.logging_config import get_logger
from tailor_kernel.storage.base import CollectionSnapshot, OrderStore
from tailor_services._collection_write import update_order, write_with_retry

logger = get_logger("services.billing")


class BillingService:
    """Bill intake and edits for the billing counter."""

    def __init__(
        self,
        store: OrderStore,
        clock: Clock | None = None,
        catalog: GarmentCatalog | None = None,
        bill_prefix: str = BILL_NO_PREFIX,
        max_attempts: int = 3,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._catalog = catalog
        self._bill_prefix = bill_prefix
        self._max_attempts = max_attempts

    def _write(self, action: str, plan):
        return write_with_retry(
            self._store,
            plan,
            action=action,
            max_attempts=self._max_attempts,
            logger=logger,
        )

    def create_bill(
        self,
        customer_name: str,
        mobile: str,
        items: Iterable[Item],
        advance: Decimal | int | str = ZERO,
        previous_balance: Decimal | int | str | None = None,
        delivery_date: date | None = None,
        instructions: str = "",
        bill_date: date | None = None,
    ) -> Order:
        """Create a pending bill and append it to the collection.

        ``previous_balance=None`` carries over the balance of the
        customer's latest bill (zero for a new customer).

        Raises:
            OrderValidationError: Listing every field problem.
        """
        items = tuple(items)

        def plan(snapshot: CollectionSnapshot):
            carried = previous_balance
            if carried is None:
                known = find_customer(snapshot.orders, mobile)
                carried = known.previous_balance if known is not None else ZERO
            now = self._clock.now()
            order = Order(
                id=str(uuid4()),
                bill_no=generate_bill_no(
                    now, self._bill_prefix, (o.bill_no for o in snapshot.orders)
                ),
                customer=CustomerRef(name=customer_name.strip(), mobile=mobile.strip()),
                items=items,
                previous_balance=to_decimal(carried),
                advance=to_decimal(advance),
                bill_date=bill_date or now.date(),
                delivery_date=delivery_date,
                instructions=instructions,
            )
            validate_for_billing(order, self._catalog)
            return snapshot.orders + (order,), order

        order = self._write("create_bill", plan)
        logger.info(
            "bill_created",
            extra={
                "order_id": order.id,
                "bill_no": order.bill_no,
                "item_count": len(order.items),
                "total_amount": order.total_amount,
                "balance": order.balance,
            },
        )
        return order

    def submit_to_production(self, order_id: str) -> Order:
        """Release a pending bill to its first department.

        Raises:
            InvalidTransitionError: The bill is not pending.
            OrderValidationError: The bill is incomplete.
        """

        def change(current: Order) -> Order:
            if current.status is not OrderStatus.PENDING:
                raise InvalidTransitionError(
                    current.id, current.status.value, "submit to production"
                )
            validate_for_billing(current, self._catalog)
            return current.with_status(next_status(current.status, current.items, self._catalog))

        _, order = self._write(
            "submit_to_production",
            lambda snapshot: update_order(snapshot, order_id, change),
        )
        logger.info(
            "bill_submitted",
            extra={"order_id": order.id, "bill_no": order.bill_no, "to_status": order.status},
        )
        return order

    def update_items(self, order_id: str, items: Iterable[Item]) -> Order:
        """Replace the items of a pending bill; totals re-derive."""
        items = tuple(items)

        def change(current: Order) -> Order:
            if current.status is not OrderStatus.PENDING:
                raise InvalidTransitionError(current.id, current.status.value, "edit items of")
            updated = current.with_items(items)
            validate_for_billing(updated, self._catalog)
            return updated

        _, order = self._write(
            "update_items",
            lambda snapshot: update_order(snapshot, order_id, change),
        )
        logger.info(
            "bill_items_updated",
            extra={"order_id": order.id, "item_count": len(order.items), "balance": order.balance},
        )
        return order

    def record_advance(self, order_id: str, advance: Decimal | int | str) -> Order:
        """Set the advance paid on a bill that is not yet completed."""
        amount = to_decimal(advance)

        def change(current: Order) -> Order:
            if current.is_terminal:
                raise InvalidTransitionError(
                    current.id, current.status.value, "record an advance on"
                )
            if amount < 0:
                raise OrderValidationError(
                    current.id, [("advance", "advance must not be negative")]
                )
            return current.with_advance(amount)

        _, order = self._write(
            "record_advance",
            lambda snapshot: update_order(snapshot, order_id, change),
        )
        logger.info(
            "advance_recorded",
            extra={"order_id": order.id, "advance": order.advance, "balance": order.balance},
        )
        return order

    def find_customer(self, mobile: str) -> Customer | None:
        return find_customer(self._store.load_orders(), mobile)

    def customers(self) -> tuple[Customer, ...]:
        return customers_from_orders(self._store.load_orders())
