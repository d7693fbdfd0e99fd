"""Tests for the structured logging system (payroll_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payroll_config.schema import Country
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
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
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "payroll.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("computed", extra={"line_count": 4, "table_key": "IN:2025:NEW"})

        record = _parse_log(stream)
        assert record["line_count"] == 4
        assert record["table_key"] == "IN:2025:NEW"

    def test_money_and_enums_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "amounts",
            extra={"net_pay": Decimal("78000.00"), "country": Country.IN, "flags": {"b", "a"}},
        )

        record = _parse_log(stream)
        assert record["net_pay"] == "78000.00"
        assert record["country"] == "IN"
        assert record["flags"] == ["a", "b"]

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(run_id="abc-123", employee_id="EMP-1", table_key="IN:2025:NEW"):
            get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["run_id"] == "abc-123"
        assert record["employee_id"] == "EMP-1"
        assert record["table_key"] == "IN:2025:NEW"

    def test_enum_country_logged_by_value(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(country=Country.IN):
            get_logger("test").info("test_msg")

        assert _parse_log(stream)["country"] == "IN"

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

    def test_payroll_exception_code_extracted(self):
        """Payroll engine exceptions carry a .code attribute."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from payroll_kernel.exceptions import ConfigurationMissingError

        try:
            raise ConfigurationMissingError("IN", 2030, "NEW")
        except ConfigurationMissingError:
            logger.error("lookup_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "CONFIGURATION_MISSING"
        assert record["exc_type"] == "ConfigurationMissingError"
        assert record["exc_country"] == "IN"
        assert record["exc_fiscal_year"] == 2030

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "run_id" not in record
        assert "employee_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"run_ref": uid})

        assert _parse_log(stream)["run_ref"] == str(uid)

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_bind_and_get(self):
        with LogContext.bind(run_id="x", country="US"):
            assert LogContext.get_all() == {"run_id": "x", "country": "US"}
        assert LogContext.get_all() == {}

    def test_clear(self):
        with LogContext.bind(run_id="x"):
            LogContext.clear()
            assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer(self):
        with LogContext.bind(employee_id="outer"):
            with LogContext.bind(employee_id="inner"):
                assert LogContext.get_all()["employee_id"] == "inner"
            assert LogContext.get_all()["employee_id"] == "outer"

    def test_bind_restores_none(self):
        assert "run_id" not in LogContext.get_all()
        with LogContext.bind(run_id="temp"):
            assert LogContext.get_all()["run_id"] == "temp"
        assert "run_id" not in LogContext.get_all()

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(table_key="US:2025:SINGLE"):
                raise RuntimeError("fail")
        assert LogContext.get_all() == {}

    def test_bind_ignores_none_values(self):
        with LogContext.bind(employee_id=None, country="IN"):
            assert LogContext.get_all() == {"country": "IN"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="correlation_id"):
            with LogContext.bind(correlation_id="c"):
                pass

    def test_all_fields(self):
        with LogContext.bind(run_id="r", employee_id="e", country="IN", table_key="t"):
            assert len(LogContext.get_all()) == 4


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert len(logging.getLogger("payroll").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("engines.tax").name == "payroll.engines.tax"

    def test_logger_hierarchy(self):
        """Child loggers inherit the payroll root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "payroll.deep.nested.module"
