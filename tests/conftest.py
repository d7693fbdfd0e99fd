"""
Pytest fixtures for the payroll engine test suite.

Provides:
- Structured logging configured for every test
- Captured log records as parsed JSON
- Published jurisdiction tables (India FY2025, US TY2025)
- Salary-structure builders
"""

import json
import logging
from decimal import Decimal
from io import StringIO
from pathlib import Path

import pytest
import yaml

from payroll_config import clear_table_cache, get_tax_table
from payroll_engines.components import SalaryComponent
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

SETS_DIR = Path(__file__).resolve().parent.parent / "payroll_config" / "sets"


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


@pytest.fixture(autouse=True)
def _fresh_table_cache():
    """Every test loads tables from disk on first use."""
    clear_table_cache()
    yield
    clear_table_cache()


@pytest.fixture
def captured_logs():
    """
    Capture payroll logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            compute_annual_tax(...)
            logs = captured_logs()
            assert any(r["message"] == "tax_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Tables
# =============================================================================


@pytest.fixture
def india_new():
    return get_tax_table("IN", 2025, "NEW")


@pytest.fixture
def india_old():
    return get_tax_table("IN", 2025, "OLD")


@pytest.fixture
def us_single():
    return get_tax_table("US", 2025, "SINGLE")


@pytest.fixture
def raw_india_set():
    """The bundled India set file as a dict, for building variants."""
    with open(SETS_DIR / "in_fy2025.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture
def raw_us_set():
    """The bundled US set file as a dict, for building variants."""
    with open(SETS_DIR / "us_ty2025.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture
def write_set(tmp_path):
    """Write a set dict into a temporary sets directory and return the dir."""

    def _write(data: dict, name: str = "set.yaml") -> Path:
        (tmp_path / name).write_text(yaml.safe_dump(data))
        return tmp_path

    return _write


# =============================================================================
# Salary structures
# =============================================================================


def component(name, type_="EARNING", calc="FIXED", value="0", taxable=True):
    """Shorthand SalaryComponent builder used across the suite."""
    return SalaryComponent(
        name=name,
        type=type_,
        calculation_type=calc,
        value=Decimal(value),
        is_taxable=taxable,
    )


@pytest.fixture
def standard_structure():
    """Basic 50% of gross, HRA 40% of basic, Special Allowance 10% of gross."""
    return (
        component("Basic Salary", calc="PERCENTAGE_OF_GROSS", value="50"),
        component("HRA", calc="PERCENTAGE_OF_BASIC", value="40"),
        component("Special Allowance", calc="PERCENTAGE_OF_GROSS", value="10"),
    )
