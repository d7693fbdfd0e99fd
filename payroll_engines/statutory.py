"""
Statutory -- Government-mandated contributions.

Responsibility:
    Applies each statutory contribution in a jurisdiction table (provident
    fund, ESI, social security, Medicare) to the resolved basic salary or
    total earnings, producing an employee deduction line and an employer
    contribution line per applicable entry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Reads ``payroll_config.schema`` types only; never looks tables up.

Invariants enforced:
    - An entry whose ``requires_flag`` is not enabled, or whose
      ``eligibility_max`` is exceeded by total earnings, yields no lines.
    - MONTHLY ceilings clamp each period's basis.
    - ANNUAL ceilings clamp the period basis to what remains of the cap
      after the caller-supplied year-to-date basis.  The engine never
      tracks year-to-date amounts itself.
    - Surtax (``additional_rate`` above ``additional_threshold``) is
      employee-only.
    - Employer contributions are reported, never deducted from pay.

Failure modes:
    - None.  A missing YTD entry is treated as zero.

Audit relevance:
    Each line carries its basis and whether a ceiling applied in
    ``metadata``, so a payslip reviewer can reproduce the figure.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from payroll_config.schema import (
    CeilingPeriod,
    ContributionBasis,
    StatutoryContribution,
    TaxTableBase,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import (
    ZERO,
    PayrollLine,
    annualize,
    percent_of,
    sum_monthly,
    to_decimal,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.statutory")


@dataclass(frozen=True)
class StatutoryResult:
    """Employee deductions and employer contributions, in table order."""

    deductions: tuple[PayrollLine, ...]
    employer_contributions: tuple[PayrollLine, ...]

    @property
    def total_employee(self) -> Decimal:
        return sum_monthly(self.deductions)

    @property
    def total_employer(self) -> Decimal:
        return sum_monthly(self.employer_contributions)

    def deduction(self, code: str) -> PayrollLine | None:
        """Employee line for a contribution code."""
        for line in self.deductions:
            if line.code == code:
                return line
        return None

    def employer_contribution(self, code: str) -> PayrollLine | None:
        """Employer line for a contribution code."""
        for line in self.employer_contributions:
            if line.code == code:
                return line
        return None


def is_applicable(
    entry: StatutoryContribution,
    total_earnings: Decimal,
    enabled_flags: frozenset[str],
) -> bool:
    """Whether an entry produces lines for this employee and period."""
    if entry.requires_flag is not None and entry.requires_flag not in enabled_flags:
        return False
    if entry.eligibility_max is not None and total_earnings > entry.eligibility_max:
        return False
    return True


def clamp_basis(
    entry: StatutoryContribution,
    basis: Decimal,
    ytd_basis: Decimal = ZERO,
) -> tuple[Decimal, Decimal]:
    """
    Apply an entry's ceiling to a monthly basis.

    Returns:
        (monthly basis, annual basis) after the ceiling.
    """
    if entry.ceiling is None:
        return basis, annualize(basis)
    if entry.ceiling_period == CeilingPeriod.MONTHLY:
        monthly = min(basis, entry.ceiling)
        return monthly, annualize(monthly)
    remaining = max(ZERO, entry.ceiling - ytd_basis)
    return min(basis, remaining), min(annualize(basis), entry.ceiling)


def surtax(
    entry: StatutoryContribution,
    basis: Decimal,
    ytd_basis: Decimal = ZERO,
) -> tuple[Decimal, Decimal]:
    """
    Employee-only surtax on earnings above the annual threshold.

    The monthly figure taxes only the part of this period's basis that
    falls above the threshold once year-to-date earnings are counted.

    Returns:
        (monthly surtax, annual surtax); zeros when the entry has none.
    """
    if not entry.has_surtax:
        return ZERO, ZERO
    threshold = entry.additional_threshold
    year_to_date_after = ytd_basis + basis
    monthly_excess = max(ZERO, year_to_date_after - max(ytd_basis, threshold))
    annual_excess = max(ZERO, annualize(basis) - threshold)
    return (
        percent_of(monthly_excess, entry.additional_rate),
        percent_of(annual_excess, entry.additional_rate),
    )


def _label(entry: StatutoryContribution, employer: bool) -> str:
    if employer:
        return entry.employer_label or f"{entry.name} (Employer)"
    return entry.employee_label or f"{entry.name} (Employee)"


@traced_engine(
    "statutory",
    "1.0",
    fingerprint_fields=("basic", "total_earnings", "table", "enabled_flags", "ytd_basis"),
)
def compute_statutory(
    basic: Decimal,
    total_earnings: Decimal,
    table: TaxTableBase,
    enabled_flags: frozenset[str] = frozenset(),
    ytd_basis: Mapping[str, Decimal] | None = None,
) -> StatutoryResult:
    """
    Compute every applicable statutory contribution for one month.

    Args:
        basic: Resolved monthly basic salary.
        total_earnings: Resolved monthly total earnings.
        table: Jurisdiction table carrying the contribution entries.
        enabled_flags: Employer feature flags (e.g. ``{"pf_enabled"}``).
        ytd_basis: Year-to-date basis already contributed on, by entry
            code.  Only annual ceilings and surtax thresholds read it.

    Returns:
        StatutoryResult with one employee and one employer line per
        applicable entry.
    """
    t0 = time.monotonic()
    basic = to_decimal(basic)
    total_earnings = to_decimal(total_earnings)
    ytd_basis = ytd_basis or {}
    logger.info("statutory_calculation_started", extra={
        "table_key": table.key,
        "basic": str(basic),
        "total_earnings": str(total_earnings),
        "enabled_flags": sorted(enabled_flags),
    })

    deductions: list[PayrollLine] = []
    employer_lines: list[PayrollLine] = []

    for entry in table.statutory_contributions:
        if not is_applicable(entry, total_earnings, enabled_flags):
            logger.debug("statutory_entry_skipped", extra={"code": entry.code})
            continue

        basis = basic if entry.basis == ContributionBasis.BASIC else total_earnings
        ytd = to_decimal(ytd_basis.get(entry.code, ZERO))
        monthly_basis, annual_basis = clamp_basis(entry, basis, ytd)
        extra_monthly, extra_annual = surtax(entry, basis, ytd)

        metadata = {
            "basis": str(basis),
            "monthly_basis": str(monthly_basis),
            "ceiling_applied": monthly_basis != basis,
        }
        deductions.append(PayrollLine(
            name=_label(entry, employer=False),
            monthly_amount=percent_of(monthly_basis, entry.employee_rate) + extra_monthly,
            annual_amount=percent_of(annual_basis, entry.employee_rate) + extra_annual,
            code=entry.code,
            metadata=metadata,
        ))
        employer_lines.append(PayrollLine(
            name=_label(entry, employer=True),
            monthly_amount=percent_of(monthly_basis, entry.employer_rate),
            annual_amount=percent_of(annual_basis, entry.employer_rate),
            code=entry.code,
            metadata=metadata,
        ))

    result = StatutoryResult(
        deductions=tuple(deductions),
        employer_contributions=tuple(employer_lines),
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("statutory_calculation_completed", extra={
        "table_key": table.key,
        "applied_codes": [line.code for line in deductions],
        "total_employee": str(result.total_employee),
        "total_employer": str(result.total_employer),
        "duration_ms": duration_ms,
    })
    return result
