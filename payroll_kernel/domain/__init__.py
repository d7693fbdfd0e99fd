"""
Pure domain layer.

Value objects and Decimal helpers with NO dependencies on:
- Configuration files
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from payroll_kernel.domain.values import (
    HUNDRED,
    MONTHS_PER_YEAR,
    ZERO,
    PayrollLine,
    annualize,
    percent_of,
    round_money,
    sum_annual,
    sum_monthly,
    to_decimal,
)

__all__ = [
    "HUNDRED",
    "MONTHS_PER_YEAR",
    "ZERO",
    "PayrollLine",
    "annualize",
    "percent_of",
    "round_money",
    "sum_annual",
    "sum_monthly",
    "to_decimal",
]
