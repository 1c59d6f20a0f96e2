"""
Property-based tests for routing and queue membership.

Generates arbitrary garment mixes (catalogue names in any case, unknown
names, blanks) and checks that the lifecycle rules stay total and that
every order sits in at most one queue.
"""

from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from tailor_engines.work_queue import list_queue
from tailor_engines.workflow import (
    department_queue_of,
    next_status,
    stage_path,
    stage_progress,
)
from tailor_kernel.domain.catalog import DEFAULT_CATALOG
from tailor_kernel.domain.order import STATUS_SEQUENCE, Department, Item, OrderStatus
from tests.factories import make_order

garment_names = st.one_of(
    st.sampled_from(DEFAULT_CATALOG.garment_types),
    st.sampled_from(DEFAULT_CATALOG.garment_types).map(str.upper),
    st.sampled_from(["Lehenga", "", "  ", "Sherwani"]),
)
garment_mixes = st.lists(garment_names, min_size=0, max_size=5).map(tuple)
statuses = st.sampled_from(STATUS_SEQUENCE)


@settings(max_examples=200, deadline=None)
@given(status=statuses, garments=garment_mixes)
def test_next_status_is_closed_over_pipeline(status, garments):
    nxt = next_status(status, tuple(Item(g) for g in garments))
    if status is OrderStatus.COMPLETED:
        assert nxt is None
    else:
        assert nxt in STATUS_SEQUENCE
        assert STATUS_SEQUENCE.index(nxt) > STATUS_SEQUENCE.index(status)


@settings(max_examples=200, deadline=None)
@given(garments=garment_mixes)
def test_stage_path_runs_pending_to_completed(garments):
    path = stage_path(Item(g) for g in garments)
    assert path[0] is OrderStatus.PENDING
    assert path[-1] is OrderStatus.COMPLETED
    assert len(set(path)) == len(path)


@settings(max_examples=200, deadline=None)
@given(status=statuses, garments=garment_mixes)
def test_order_is_listed_in_at_most_one_queue(status, garments):
    order = make_order(garments=garments, status=status)
    listed_in = [dept for dept in Department if list_queue([order], dept)]
    expected = department_queue_of(order)
    assert listed_in == ([expected] if expected is not None else [])


@settings(max_examples=200, deadline=None)
@given(status=statuses, garments=garment_mixes)
def test_progress_is_a_percentage(status, garments):
    progress = stage_progress(make_order(garments=garments, status=status))
    assert Decimal("0") <= progress.percent <= Decimal("100")
