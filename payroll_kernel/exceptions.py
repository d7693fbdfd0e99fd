"""
Typed Exception Hierarchy for the Payroll Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (payroll runs, salary-structure previews, batch approval) must be
able to tell a missing jurisdiction table apart from a malformed salary
structure without parsing message strings:

    try:
        breakdown = service.preview(request)
    except ConfigurationMissingError as e:
        show_error(code=e.code, country=e.country, fiscal_year=e.fiscal_year)
    except MalformedComponentError as e:
        show_error(code=e.code, component=e.component_name)

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollEngineError (base)
    |
    +-- ConfigurationError
    |   +-- ConfigurationMissingError
    |   +-- InvalidBracketTableError
    |   +-- InvalidTaxTableError
    |   +-- ConfigIntegrityError
    |
    +-- ComponentError
        +-- MalformedComponentError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_MISSING       | No active table for country/year/regime
                | INVALID_BRACKET_TABLE       | Brackets unsorted, overlapping or gapped
                | INVALID_TAX_TABLE           | Other structural table problems
                | CONFIG_INTEGRITY_MISMATCH   | Table fingerprint differs from pin file
----------------|-----------------------------|-----------------------------------------
Component       | MALFORMED_COMPONENT         | Unknown component type / calc type

===============================================================================
PROPAGATION
===============================================================================

All errors are raised synchronously to the immediate caller. Nothing in the
engine is transient, so nothing is retried, and a failed computation never
yields a partially filled breakdown.

Bracket tables are validated when they are loaded. A calculation against an
already-loaded table never raises InvalidBracketTableError.
"""

from __future__ import annotations

from typing import Any


class PayrollEngineError(Exception):
    """
    Base exception for all payroll engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_ENGINE_ERROR"


# Configuration exceptions


class ConfigurationError(PayrollEngineError):
    """Base exception for jurisdiction table configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class ConfigurationMissingError(ConfigurationError):
    """No active jurisdiction table for the requested key."""

    code: str = "CONFIGURATION_MISSING"

    def __init__(
        self,
        country: str,
        fiscal_year: int | None,
        regime: str | None = None,
        as_of: Any = None,
    ):
        self.country = country
        self.fiscal_year = fiscal_year
        self.regime = regime
        self.as_of = as_of
        where = f"fiscal year {fiscal_year}" if fiscal_year is not None else f"date {as_of}"
        super().__init__(
            f"No active tax table for country {country}, {where}, "
            f"regime {regime or '<default>'}"
        )


class InvalidBracketTableError(ConfigurationError):
    """
    Bracket schedule is not ascending and contiguous from zero.

    Detected at load time; one error carries every problem found.
    """

    code: str = "INVALID_BRACKET_TABLE"

    def __init__(self, table_key: str, problems: list[str]):
        self.table_key = table_key
        self.problems = problems
        super().__init__(
            f"Invalid bracket table {table_key}: " + "; ".join(problems)
        )


class InvalidTaxTableError(ConfigurationError):
    """Tax table is structurally invalid (missing keys, bad values)."""

    code: str = "INVALID_TAX_TABLE"

    def __init__(self, table_key: str, reason: str):
        self.table_key = table_key
        self.reason = reason
        super().__init__(f"Invalid tax table {table_key}: {reason}")


class ConfigIntegrityError(ConfigurationError):
    """Table fingerprint does not match the approved pin.

    Raised when:
      - An APPROVED_FINGERPRINT file exists next to the table set
      - The computed checksum of a published table differs from the pin
    """

    code: str = "CONFIG_INTEGRITY_MISMATCH"

    def __init__(self, table_key: str, expected: str, actual: str, pin_path: Any):
        self.table_key = table_key
        self.expected = expected
        self.actual = actual
        self.pin_path = pin_path
        super().__init__(
            f"Config integrity check failed for '{table_key}': "
            f"pinned fingerprint {expected[:16]}... != "
            f"computed fingerprint {actual[:16]}... "
            f"(pin file: {pin_path})"
        )


# Salary component exceptions


class ComponentError(PayrollEngineError):
    """Base exception for salary component errors."""

    code: str = "COMPONENT_ERROR"


class MalformedComponentError(ComponentError):
    """Component has an unrecognized type or calculation type."""

    code: str = "MALFORMED_COMPONENT"

    def __init__(self, component_name: str, field_name: str, value: Any):
        self.component_name = component_name
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Salary component '{component_name}' has unrecognized "
            f"{field_name}: {value!r}"
        )
