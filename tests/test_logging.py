"""Tests for the structured logging system (funeral_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from funeral_kernel.exceptions import ValidationError
from funeral_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
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
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


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

        get_logger("test").info("hello")

        record = _parse_all_logs(stream)[0]
        assert record["message"] == "hello"
        assert record["level"] == "INFO"
        assert record["logger"] == "funeral_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        get_logger("test").info(
            "payment_recorded", extra={"amount": Decimal("150.00"), "payment_id": uuid4()},
        )

        record = _parse_all_logs(stream)[0]
        assert record["amount"] == "150.00"
        assert len(record["payment_id"]) == 36

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        with LogContext.bind(case_id="case-1", actor_id="staff-7"):
            get_logger("test").info("inside")

        record = _parse_all_logs(stream)[0]
        assert record["case_id"] == "case-1"
        assert record["actor_id"] == "staff-7"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        get_logger("test").info("plain")

        record = _parse_all_logs(stream)[0]
        assert "case_id" not in record
        assert "correlation_id" not in record

    def test_domain_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        try:
            raise ValidationError("Amount must be positive", field="amount")
        except ValidationError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_all_logs(stream)[0]
        assert record["exc_type"] == "ValidationError"
        assert record["exc_code"] == "VALIDATION_ERROR"
        assert record["exc_field"] == "amount"
        assert "traceback" in record

    def test_level_as_string(self):
        handler, stream = _make_handler()
        configure_logging(level="warning", handler=handler)

        logger = get_logger("test")
        logger.info("hidden")
        logger.warning("shown")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["shown"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(funeral_home_id="fh-1")
        assert LogContext.get_all() == {"funeral_home_id": "fh-1"}

    def test_additive_set(self):
        LogContext.set(actor_id="a")
        LogContext.set(case_id="c")
        assert LogContext.get_all() == {"actor_id": "a", "case_id": "c"}

    def test_clear(self):
        LogContext.set(actor_id="a")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(case_id="outer")
        with LogContext.bind(case_id="inner"):
            assert LogContext.get_all()["case_id"] == "inner"
        assert LogContext.get_all()["case_id"] == "outer"

    def test_bind_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="Unknown log context fields"):
            LogContext.bind(tenant="x")


# ---------------------------------------------------------------------------
# Configuration tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def _unconfigured_logging(self):
        reset_logging()
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_idempotent(self):
        handler, _ = _make_handler()
        configure_logging(handler=handler)
        configure_logging(handler=logging.StreamHandler(StringIO()))

        assert logging.getLogger("funeral_kernel").handlers == [handler]

    def test_get_logger_returns_child(self):
        assert get_logger("modules.case").name == "funeral_kernel.modules.case"

    def test_does_not_propagate_to_root(self):
        configure_logging(handler=_make_handler()[0])
        assert logging.getLogger("funeral_kernel").propagate is False
