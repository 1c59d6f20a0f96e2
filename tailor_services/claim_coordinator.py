"""
tailor_services.claim_coordinator -- Claim, complete and release.

Responsibility:
    The only component that changes the ``status`` and ``assignment`` of
    orders in production.  Stations call it to take an order from their
    department queue, to mark their stage done, or to hand an order back.

Architecture position:
    Services layer.  Thin coordinator: rule evaluation is delegated to
    ``tailor_engines.workflow``, persistence to the ``OrderStore``, and
    customer messages to a ``Notifier``.

Invariants enforced:
    - Exclusive claims: preconditions are evaluated against a fresh read
      and the write is a revision compare-and-swap, so of two stations
      racing for one order exactly one wins; the other gets
      ClaimConflictError.
    - Completion requires a prior claim by the same actor.
    - Completing clears the assignment, so a non-terminal order lands
      unclaimed in exactly the next department's queue.
    - ``completed_at`` is set once, when the order reaches ``completed``.
    - The notifier runs exactly once per terminal transition, after the
      write is stored.

Failure modes:
    - OrderNotFoundError, ClaimConflictError, NotInQueueError,
      NotAssignedError, TerminalStateError, OrderValidationError: raised
      before any write.
    - StaleCollectionError after ``max_attempts`` lost races.
    - Notification failures are logged and reported on the result, never
      raised.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from tailor_engines.billing import validate_for_production
from tailor_engines.workflow import (
    RuleOutcome,
    check_claim,
    check_complete,
    check_release,
    require_next_status,
)
from tailor_kernel.domain.catalog import GarmentCatalog
from tailor_kernel.domain.clock import Clock, SystemClock
from tailor_kernel.domain.order import (
    Actor,
    Assignment,
    Order,
    OrderStatus,
)
from tailor_kernel.exceptions import (
    ClaimConflictError,
    NotAssignedError,
    NotInQueueError,
    TailorKernelError,
    TerminalStateError,
)
from tailor_kernel.logging_config import LogContext, get_logger
from tailor_kernel.storage.base import OrderStore
from tailor_services._collection_write import update_order, write_with_retry
from tailor_services.notifier import LoggingNotifier, NotificationResult, Notifier

logger = get_logger("services.claim_coordinator")

TRACE_TYPE_ORDER_TRANSITION = "ORDER_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_NO_CHANGE = "no_change"
OUTCOME_REJECTED = "rejected"
OUTCOME_ERROR = "error"


def _emit_transition_trace(
    action: str,
    order_id: str,
    actor: Actor,
    outcome: str,
    reason: str,
    duration_ms: float,
    bill_no: str | None = None,
    from_status: OrderStatus | None = None,
    to_status: OrderStatus | None = None,
    error_code: str | None = None,
) -> None:
    """Emit a structured order transition record for traceability."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_ORDER_TRANSITION,
        "action": action,
        "order_id": order_id,
        "actor_id": actor.actor_id,
        "actor_name": actor.name,
        "department": actor.department.value,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if bill_no is not None:
        record["bill_no"] = bill_no
    if from_status is not None:
        record["from_status"] = from_status.value
    if to_status is not None:
        record["to_status"] = to_status.value
    if error_code is not None:
        record["error_code"] = error_code
    logger.info("order_transition", extra=record)


def _order_id(order: Order | str) -> str:
    return order.id if isinstance(order, Order) else str(order)


@dataclass(frozen=True)
class CompletionResult:
    """What a ``complete`` call did.  ``notification`` is None unless terminal."""

    order: Order
    from_status: OrderStatus
    to_status: OrderStatus
    notification: NotificationResult | None = None


class ClaimCoordinator:
    """Claim/complete/release against the shared order collection.

    Operations accept an ``Order`` or an order id.  A passed ``Order`` is
    only used for its id; the coordinator always re-reads the collection.
    """

    def __init__(
        self,
        store: OrderStore,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        catalog: GarmentCatalog | None = None,
        max_attempts: int = 3,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be positive, got {max_attempts}")
        self._store = store
        self._notifier = notifier or LoggingNotifier()
        self._clock = clock or SystemClock()
        self._catalog = catalog
        self._max_attempts = max_attempts

    # ------------------------------------------------------------------
    # claim
    # ------------------------------------------------------------------

    def claim(self, order: Order | str, actor: Actor) -> Order:
        """Take an unassigned order from the actor's department queue.

        Claiming an order the actor already holds returns it unchanged
        without writing.

        Raises:
            ClaimConflictError: Another actor holds the order.
            NotInQueueError: The order is not in the actor's queue.
        """
        order_id = _order_id(order)

        def change(current: Order) -> Order | None:
            check = check_claim(current, actor, self._catalog)
            if check.outcome is RuleOutcome.ALREADY_ASSIGNED_TO_ACTOR:
                return None
            if check.outcome is RuleOutcome.ASSIGNED_TO_OTHER:
                held = current.assignment
                raise ClaimConflictError(current.id, held.actor_id, held.actor_name)
            if not check.allowed:
                raise NotInQueueError(
                    current.id,
                    actor.department.value,
                    check.queue.value if check.queue is not None else None,
                )
            return current.with_assignment(Assignment.for_actor(actor, self._clock.now()))

        before, after = self._run("claim", order_id, actor, change)
        if before is after:
            logger.debug("claim_already_held", extra={"order_id": order_id})
        else:
            logger.info(
                "order_claimed",
                extra={"order_id": order_id, "bill_no": after.bill_no, "status": after.status},
            )
        return after

    # ------------------------------------------------------------------
    # complete
    # ------------------------------------------------------------------

    def complete(self, order: Order | str, actor: Actor) -> CompletionResult:
        """Mark the actor's stage done and advance the order.

        Checks, in order: terminal, in the actor's queue, held by the actor,
        minimum fields present.  The assignment is cleared on success.

        Raises:
            TerminalStateError: The order is already completed.
            NotInQueueError: The order is not in the actor's queue.
            NotAssignedError: The actor does not hold the order.
            OrderValidationError: Customer name or garment type missing.
        """
        order_id = _order_id(order)

        def change(current: Order) -> Order:
            check = check_complete(current, actor, self._catalog)
            if check.outcome is RuleOutcome.TERMINAL:
                raise TerminalStateError(current.id, current.status.value)
            if check.outcome in (RuleOutcome.NOT_IN_QUEUE, RuleOutcome.UNROUTABLE):
                raise NotInQueueError(
                    current.id,
                    actor.department.value,
                    check.queue.value if check.queue is not None else None,
                )
            if check.outcome is RuleOutcome.NOT_ASSIGNED:
                held = current.assignment.actor_id if current.assignment else None
                raise NotAssignedError(current.id, actor.actor_id, held)
            validate_for_production(current)

            to_status = require_next_status(current, self._catalog)
            completed_at = self._clock.now() if to_status is OrderStatus.COMPLETED else None
            return current.with_status(to_status, completed_at=completed_at).with_assignment(None)

        before, after = self._run("complete", order_id, actor, change)
        logger.info(
            "order_stage_completed",
            extra={
                "order_id": order_id,
                "bill_no": after.bill_no,
                "from_status": before.status,
                "to_status": after.status,
            },
        )

        notification = None
        if after.is_terminal:
            notification = self._notify(after)
        return CompletionResult(
            order=after,
            from_status=before.status,
            to_status=after.status,
            notification=notification,
        )

    # ------------------------------------------------------------------
    # release
    # ------------------------------------------------------------------

    def release(self, order: Order | str, actor: Actor) -> Order:
        """Hand a held order back to its queue without advancing it.

        Raises:
            NotAssignedError: The actor does not hold the order.
        """
        order_id = _order_id(order)

        def change(current: Order) -> Order:
            check = check_release(current, actor)
            if not check.allowed:
                held = current.assignment.actor_id if current.assignment else None
                raise NotAssignedError(current.id, actor.actor_id, held)
            return current.with_assignment(None)

        _, after = self._run("release", order_id, actor, change)
        logger.info("order_released", extra={"order_id": order_id, "bill_no": after.bill_no})
        return after

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _run(self, action, order_id, actor, change) -> tuple[Order, Order]:
        t0 = time.monotonic()
        with LogContext.bind(
            order_id=order_id,
            actor_id=actor.actor_id,
            department=actor.department.value,
        ):
            try:
                before, after = write_with_retry(
                    self._store,
                    lambda snapshot: update_order(snapshot, order_id, change),
                    action=action,
                    max_attempts=self._max_attempts,
                    logger=logger,
                )
            except TailorKernelError as exc:
                outcome = OUTCOME_ERROR if exc.code == "STALE_COLLECTION" else OUTCOME_REJECTED
                if isinstance(exc, ClaimConflictError):
                    logger.info(
                        "claim_conflict",
                        extra={"order_id": order_id, "held_by_id": exc.held_by_id},
                    )
                _emit_transition_trace(
                    action=action,
                    order_id=order_id,
                    actor=actor,
                    outcome=outcome,
                    reason=str(exc),
                    duration_ms=(time.monotonic() - t0) * 1000,
                    error_code=exc.code,
                )
                raise

            _emit_transition_trace(
                action=action,
                order_id=order_id,
                actor=actor,
                outcome=OUTCOME_NO_CHANGE if before is after else OUTCOME_SUCCESS,
                reason="already held by actor" if before is after else f"{action} applied",
                duration_ms=(time.monotonic() - t0) * 1000,
                bill_no=after.bill_no,
                from_status=before.status,
                to_status=after.status,
            )
        return before, after

    def _notify(self, order: Order) -> NotificationResult:
        """Best effort: failures are logged and returned, never raised."""
        channel = getattr(self._notifier, "channel", "unknown")
        try:
            result = self._notifier.notify_customer(order)
        except Exception as exc:
            logger.warning(
                "customer_notification_failed",
                extra={"order_id": order.id, "channel": channel},
                exc_info=True,
            )
            return NotificationResult(success=False, channel=channel, detail=str(exc))

        if result.success:
            logger.info(
                "customer_notified",
                extra={"order_id": order.id, "channel": result.channel},
            )
        else:
            logger.warning(
                "customer_notification_failed",
                extra={"order_id": order.id, "channel": result.channel, "detail": result.detail},
            )
        return result
