"""
Tests for ClaimCoordinator: claim, complete and release.

Each test seeds the in-memory store, acts through the coordinator and
re-reads the stored collection to check what actually persisted.
"""

import pytest

from tailor_kernel.domain.order import OrderStatus
from tailor_kernel.exceptions import (
    ClaimConflictError,
    NotAssignedError,
    NotificationFailedError,
    NotInQueueError,
    OrderNotFoundError,
    OrderValidationError,
    StaleCollectionError,
    TerminalStateError,
)
from tailor_kernel.logging_config import LogContext
from tailor_kernel.storage.base import OrderStore
from tailor_services.claim_coordinator import ClaimCoordinator
from tailor_services.notifier import NotificationResult
from tests.factories import RecordingNotifier, held_by, make_order

S = OrderStatus


@pytest.fixture
def coordinator(memory_store, recording_notifier, deterministic_clock):
    return ClaimCoordinator(
        memory_store, notifier=recording_notifier, clock=deterministic_clock
    )


def _stored(store, order_id):
    return store.load().find(order_id)


class TestClaim:
    def test_claim_sets_assignment(self, coordinator, memory_store, seed, cutter,
                                   deterministic_clock):
        (order,) = seed(make_order(status=S.CUTTING))

        claimed = coordinator.claim(order, cutter)

        assert claimed.assignment.actor_id == "cut-1"
        assert claimed.assignment.actor_name == "Ravi"
        assert claimed.assignment.claimed_at == deterministic_clock.now()
        assert claimed.status is S.CUTTING
        assert _stored(memory_store, order.id) == claimed

    def test_claim_accepts_order_id(self, coordinator, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING))
        assert coordinator.claim(order.id, cutter).is_assigned_to("cut-1")

    def test_reclaim_by_holder_is_noop(self, coordinator, memory_store, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(cutter)))
        revision = memory_store.revision

        again = coordinator.claim(order, cutter)

        assert again.assignment == held_by(cutter)
        assert memory_store.revision == revision

    def test_claim_held_by_other(self, coordinator, memory_store, seed, cutter, second_cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(second_cutter)))
        revision = memory_store.revision

        with pytest.raises(ClaimConflictError) as exc_info:
            coordinator.claim(order, cutter)

        assert exc_info.value.held_by_id == "cut-2"
        assert exc_info.value.held_by_name == "Meena"
        assert memory_store.revision == revision

    def test_claim_from_wrong_queue(self, coordinator, seed, dress_tailor):
        (order,) = seed(make_order(status=S.STITCHING))
        with pytest.raises(NotInQueueError) as exc_info:
            coordinator.claim(order, dress_tailor)
        assert exc_info.value.actual_queue == "blouse-stitching"

    def test_claim_pending_order(self, coordinator, seed, cutter):
        (order,) = seed(make_order(status=S.PENDING))
        with pytest.raises(NotInQueueError):
            coordinator.claim(order, cutter)

    def test_claim_completed_order(self, coordinator, seed, ironer):
        (order,) = seed(make_order(status=S.COMPLETED))
        with pytest.raises(NotInQueueError):
            coordinator.claim(order, ironer)

    def test_claim_unknown_order(self, coordinator, seed, cutter):
        seed(make_order(status=S.CUTTING))
        with pytest.raises(OrderNotFoundError):
            coordinator.claim("missing", cutter)

    def test_stale_order_argument_is_reread(self, coordinator, memory_store, seed, cutter,
                                            second_cutter):
        (order,) = seed(make_order(status=S.CUTTING))
        coordinator.claim(order, second_cutter)

        # ``order`` is the unassigned copy; the coordinator must not trust it.
        with pytest.raises(ClaimConflictError):
            coordinator.claim(order, cutter)


class TestComplete:
    def test_cutting_to_stitching(self, coordinator, memory_store, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(cutter)))

        result = coordinator.complete(order, cutter)

        assert result.from_status is S.CUTTING
        assert result.to_status is S.STITCHING
        assert result.order.assignment is None
        assert result.notification is None
        stored = _stored(memory_store, order.id)
        assert stored.status is S.STITCHING
        assert stored.assignment is None

    def test_completion_requires_claim(self, coordinator, memory_store, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING))
        with pytest.raises(NotAssignedError) as exc_info:
            coordinator.complete(order, cutter)
        assert exc_info.value.held_by_id is None
        assert _stored(memory_store, order.id).status is S.CUTTING

    def test_completion_by_non_holder(self, coordinator, seed, cutter, second_cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(second_cutter)))
        with pytest.raises(NotAssignedError) as exc_info:
            coordinator.complete(order, cutter)
        assert exc_info.value.held_by_id == "cut-2"

    def test_complete_terminal_order(self, coordinator, seed, ironer):
        (order,) = seed(make_order(status=S.COMPLETED))
        with pytest.raises(TerminalStateError):
            coordinator.complete(order, ironer)

    def test_complete_from_wrong_department(self, coordinator, seed, cutter, finisher):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(cutter)))
        with pytest.raises(NotInQueueError):
            coordinator.complete(order, finisher)

    def test_complete_unroutable_order(self, coordinator, seed, cutter):
        (order,) = seed(
            make_order(garments=("Lehenga",), status=S.CUTTING, assignment=held_by(cutter))
        )
        with pytest.raises(NotInQueueError):
            coordinator.complete(order, cutter)

    def test_incomplete_order_rejected(self, coordinator, memory_store, seed, cutter):
        (order,) = seed(
            make_order(customer_name="", status=S.CUTTING, assignment=held_by(cutter))
        )
        with pytest.raises(OrderValidationError):
            coordinator.complete(order, cutter)
        assert _stored(memory_store, order.id).is_assigned_to("cut-1")

    def test_stitching_lands_in_finishing_queue(self, coordinator, seed, dress_tailor):
        (order,) = seed(
            make_order(garments=("Kurti",), status=S.STITCHING, assignment=held_by(dress_tailor))
        )
        result = coordinator.complete(order, dress_tailor)
        assert result.to_status is S.FINISHING

    def test_final_stage_sets_completed_at_and_notifies(
        self, coordinator, memory_store, seed, ironer, recording_notifier, deterministic_clock
    ):
        (order,) = seed(make_order(status=S.IRONING, assignment=held_by(ironer)))

        result = coordinator.complete(order, ironer)

        assert result.to_status is S.COMPLETED
        assert result.order.completed_at == deterministic_clock.now()
        assert result.notification.success
        assert [o.id for o in recording_notifier.sent] == [order.id]
        stored = _stored(memory_store, order.id)
        assert stored.is_terminal
        assert stored.completed_at == deterministic_clock.now()

    def test_completion_time_is_read_at_completion(
        self, coordinator, seed, ironer, deterministic_clock
    ):
        (order,) = seed(make_order(status=S.IRONING))
        claimed = coordinator.claim(order, ironer)
        deterministic_clock.advance(90)

        result = coordinator.complete(order, ironer)

        assert (result.order.completed_at - claimed.assignment.claimed_at).total_seconds() == 90

    def test_notification_failure_keeps_completion(self, memory_store, seed, ironer,
                                                   deterministic_clock, captured_logs):
        notifier = RecordingNotifier(
            error=NotificationFailedError("x", "sms", "gateway down")
        )
        coordinator = ClaimCoordinator(memory_store, notifier=notifier, clock=deterministic_clock)
        (order,) = seed(make_order(status=S.IRONING, assignment=held_by(ironer)))

        result = coordinator.complete(order, ironer)

        assert not result.notification.success
        assert "gateway down" in result.notification.detail
        assert _stored(memory_store, order.id).status is S.COMPLETED
        messages = [r["message"] for r in captured_logs()]
        assert "customer_notification_failed" in messages

    def test_unsuccessful_result_is_reported(self, memory_store, seed, ironer):
        notifier = RecordingNotifier(
            result=NotificationResult(success=False, channel="test", detail="no mobile")
        )
        coordinator = ClaimCoordinator(memory_store, notifier=notifier)
        (order,) = seed(make_order(status=S.IRONING, assignment=held_by(ironer)))
        assert coordinator.complete(order, ironer).notification.detail == "no mobile"


class TestRelease:
    def test_release_clears_assignment(self, coordinator, memory_store, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(cutter)))
        released = coordinator.release(order, cutter)
        assert released.assignment is None
        assert released.status is S.CUTTING
        assert _stored(memory_store, order.id).assignment is None

    def test_release_by_non_holder(self, coordinator, seed, cutter, second_cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(second_cutter)))
        with pytest.raises(NotAssignedError):
            coordinator.release(order, cutter)

    def test_released_order_can_be_claimed_by_colleague(self, coordinator, seed, cutter,
                                                        second_cutter):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(cutter)))
        coordinator.release(order, cutter)
        assert coordinator.claim(order, second_cutter).is_assigned_to("cut-2")


class TestFullJourney:
    def test_blouse_order_through_every_department(
        self, coordinator, seed, cutter, blouse_tailor, finisher, ironer, recording_notifier
    ):
        (order,) = seed(make_order(status=S.CUTTING))

        for actor, expected in [
            (cutter, S.STITCHING),
            (blouse_tailor, S.FINISHING),
            (finisher, S.IRONING),
            (ironer, S.COMPLETED),
        ]:
            coordinator.claim(order, actor)
            assert coordinator.complete(order, actor).to_status is expected

        assert len(recording_notifier.sent) == 1

    def test_saree_skips_to_finishing_queue(self, coordinator, seed, finisher):
        (order,) = seed(make_order(garments=("Saree",), status=S.FINISHING))
        coordinator.claim(order, finisher)
        assert coordinator.complete(order, finisher).to_status is S.IRONING


class TestStaleWrites:
    def test_lost_race_is_retried(self, memory_store, seed, cutter, captured_logs):
        (order, other) = seed(
            make_order(order_id="o1", status=S.CUTTING),
            make_order(order_id="o2", status=S.CUTTING),
        )
        store = _InterferingStore(memory_store, interfere_times=1)
        coordinator = ClaimCoordinator(store)

        coordinator.claim(order, cutter)

        assert _stored(memory_store, "o1").is_assigned_to("cut-1")
        retry = next(r for r in captured_logs() if r["message"] == "stale_collection_retry")
        assert retry["order_id"] == "o1"
        assert retry["attempt"] == 1

    def test_gives_up_after_max_attempts(self, memory_store, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING))
        store = _InterferingStore(memory_store, interfere_times=5)
        coordinator = ClaimCoordinator(store, max_attempts=2)

        with pytest.raises(StaleCollectionError):
            coordinator.claim(order, cutter)

    def test_invalid_max_attempts(self, memory_store):
        with pytest.raises(ValueError):
            ClaimCoordinator(memory_store, max_attempts=0)


class TestTransitionTrace:
    def test_success_trace(self, coordinator, seed, cutter, captured_logs):
        (order,) = seed(make_order(status=S.CUTTING))
        coordinator.claim(order, cutter)

        traces = [r for r in captured_logs() if r["message"] == "order_transition"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["trace_type"] == "ORDER_TRANSITION"
        assert trace["action"] == "claim"
        assert trace["outcome"] == "success"
        assert trace["department"] == "cutting"
        assert trace["from_status"] == "cutting"

    def test_rejected_trace_carries_error_code(self, coordinator, seed, cutter, second_cutter,
                                               captured_logs):
        (order,) = seed(make_order(status=S.CUTTING, assignment=held_by(second_cutter)))
        with pytest.raises(ClaimConflictError):
            coordinator.claim(order, cutter)

        records = captured_logs()
        trace = next(r for r in records if r["message"] == "order_transition")
        assert trace["outcome"] == "rejected"
        assert trace["error_code"] == "CLAIM_CONFLICT"
        assert any(r["message"] == "claim_conflict" for r in records)

    def test_log_context_restored_after_action(self, coordinator, seed, cutter):
        (order,) = seed(make_order(status=S.CUTTING))
        coordinator.claim(order, cutter)
        assert LogContext.get_all() == {}


class _InterferingStore(OrderStore):
    """Wraps a store and bumps its revision between read and write."""

    def __init__(self, inner, interfere_times):
        self._inner = inner
        self._remaining = interfere_times
        self.collection_key = inner.collection_key

    def load(self):
        return self._inner.load()

    def save(self, orders, expected_revision):
        if self._remaining > 0:
            self._remaining -= 1
            self._inner.save_orders(self._inner.load_orders())
        return self._inner.save(orders, expected_revision)
