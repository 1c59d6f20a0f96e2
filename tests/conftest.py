"""
Pytest fixtures for the tailor workflow test suite.

Provides:
- Structured logging setup and a ``captured_logs`` helper
- A deterministic clock
- In-memory and SQLite-backed order stores
- Department actors and an order factory
- A recording notifier

Environment Variables:
- DATABASE_URL: optional PostgreSQL URL.  Tests marked ``postgres`` run
  the SQL store against it; they are skipped when it is not set.
"""

import json
import logging
import os
from datetime import datetime, timezone
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from tailor_kernel.db.engine import build_engine, create_tables, drop_tables
from tailor_kernel.domain.clock import DeterministicClock
from tailor_kernel.domain.order import Actor, Department
from tailor_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tailor_kernel.storage.memory import InMemoryOrderStore
from tailor_kernel.storage.sql import SqlOrderStore
from tests.factories import RecordingNotifier, make_order


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture tailor_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, coordinator):
            coordinator.claim(order, cutter)
            logs = captured_logs()
            assert any(r["message"] == "order_claimed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("tailor_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL (DATABASE_URL)"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as using real threads"
    )


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 3, 15, 10, 30, 0, tzinfo=timezone.utc))


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def memory_store():
    return InMemoryOrderStore()


@pytest.fixture
def sqlite_engine(tmp_path):
    """File-backed SQLite so each thread gets its own connection."""
    engine = build_engine(f"sqlite:///{tmp_path / 'orders.db'}")
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine, deterministic_clock):
    return SqlOrderStore(
        sessionmaker(bind=sqlite_engine, expire_on_commit=False),
        clock=deterministic_clock,
    )


@pytest.fixture
def postgres_store():
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not set")
    engine = build_engine(url)
    create_tables(engine)
    store = SqlOrderStore(
        sessionmaker(bind=engine, expire_on_commit=False),
        collection_key=f"test-{uuid4()}",
    )
    yield store
    engine.dispose()


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request):
    """Run a test once per store implementation."""
    if request.param == "memory":
        return InMemoryOrderStore()
    return request.getfixturevalue("sql_store")


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def cutter():
    return Actor(actor_id="cut-1", name="Ravi", department=Department.CUTTING)


@pytest.fixture
def second_cutter():
    return Actor(actor_id="cut-2", name="Meena", department=Department.CUTTING)


@pytest.fixture
def blouse_tailor():
    return Actor(actor_id="bl-1", name="Lakshmi", department=Department.BLOUSE_STITCHING)


@pytest.fixture
def dress_tailor():
    return Actor(actor_id="dr-1", name="Kavya", department=Department.DRESS_STITCHING)


@pytest.fixture
def finisher():
    return Actor(actor_id="fin-1", name="Suresh", department=Department.FINISHING)


@pytest.fixture
def ironer():
    return Actor(actor_id="iron-1", name="Anil", department=Department.IRONING)


# =============================================================================
# Order factory
# =============================================================================


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def seed(memory_store):
    """Store orders in the in-memory store and return them."""

    def _seed(*orders, store=None):
        (store or memory_store).save_orders(orders)
        return orders

    return _seed


# =============================================================================
# Notifier
# =============================================================================


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()
