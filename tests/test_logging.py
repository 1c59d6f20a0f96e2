"""Tests for the structured logging system (tailor_kernel/logging_config.py)."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from tailor_kernel.domain.order import OrderStatus
from tailor_kernel.exceptions import ClaimConflictError
from tailor_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    mask_phone,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "tailor_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("order_claimed", extra={"bill_no": "ST000042", "attempt": 2})

        record = _parse_log(stream)
        assert record["bill_no"] == "ST000042"
        assert record["attempt"] == 2

    def test_domain_values_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "bill_created",
            extra={
                "row_id": uid,
                "balance": Decimal("350.50"),
                "status": OrderStatus.CUTTING,
                "claimed_at": datetime(2024, 3, 15, 9, 0, tzinfo=timezone.utc),
            },
        )

        record = _parse_log(stream)
        assert record["row_id"] == str(uid)
        assert record["balance"] == "350.50"
        assert record["status"] == "cutting"
        assert record["claimed_at"] == "2024-03-15T09:00:00+00:00"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(station_id="cutting-table-1", order_id="o-1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["station_id"] == "cutting-table-1"
        assert record["order_id"] == "o-1"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code attribute and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise ClaimConflictError("o-1", "cut-2", "Meena")
        except ClaimConflictError:
            logger.error("claim_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "CLAIM_CONFLICT"
        assert record["exc_type"] == "ClaimConflictError"
        assert record["exc_held_by_id"] == "cut-2"
        assert record["exc_held_by_name"] == "Meena"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "order_id" not in record

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="cut-1")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "cut-1"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(department="cutting")
        with LogContext.bind(department="ironing"):
            assert LogContext.get_all()["department"] == "ironing"
        assert LogContext.get_all()["department"] == "cutting"

    def test_bind_restores_none(self):
        assert "order_id" not in LogContext.get_all()
        with LogContext.bind(order_id="temp"):
            assert LogContext.get_all()["order_id"] == "temp"
        assert "order_id" not in LogContext.get_all()

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            station_id="s",
            order_id="o",
            actor_id="a",
            department="d",
        )
        assert len(LogContext.get_all()) == 5

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(customer="Priya")
        with pytest.raises(TypeError):
            with LogContext.bind(order_id="o-1", customer="Priya"):
                pass
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("tailor_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.claim_coordinator").name == (
            "tailor_kernel.services.claim_coordinator"
        )

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "tailor_kernel.deep.nested.module"


# ---------------------------------------------------------------------------
# Phone masking
# ---------------------------------------------------------------------------


class TestPhoneMasking:
    def test_mobile_extra_masked(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("customer_message_logged", extra={"mobile": "+919876543210"})

        assert _parse_log(stream)["mobile"] == "*********3210"

    def test_short_and_empty_values(self):
        assert mask_phone("123") == "***"
        assert mask_phone("") == ""

    def test_other_fields_untouched(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("order_claimed", extra={"bill_no": "ST123456"})

        assert _parse_log(stream)["bill_no"] == "ST123456"
