"""
Aggregator -- Payroll breakdown totals.

Responsibility:
    Combines resolved earnings, component deductions, statutory deductions,
    employer contributions and income tax into a single breakdown with
    monthly and annual totals and net pay.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Imports kernel only.

Invariants enforced:
    - total_deductions = component deductions + statutory deductions + tax.
    - net_pay = total_earnings - total_deductions, never clamped; a
      negative figure surfaces a salary structure that cannot be paid.
    - Employer contributions are reported and never subtracted from pay.
    - Annual totals sum each line's own annual figure, so annually capped
      statutory lines keep their capped amount.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.values import PayrollLine, sum_annual, sum_monthly
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.aggregator")


@dataclass(frozen=True)
class PayrollBreakdown:
    """
    Complete payroll preview for one employee and period.

    Consumers (payslip rendering, approval totals) read the totals and
    lines; nothing here is rounded beyond what each line already carries.
    """

    earnings: tuple[PayrollLine, ...]
    component_deductions: tuple[PayrollLine, ...]
    statutory_deductions: tuple[PayrollLine, ...]
    employer_contributions: tuple[PayrollLine, ...]
    tax: PayrollLine | None = None

    @property
    def deductions(self) -> tuple[PayrollLine, ...]:
        """Every line subtracted from pay, tax last."""
        lines = self.component_deductions + self.statutory_deductions
        if self.tax is not None:
            lines += (self.tax,)
        return lines

    @property
    def total_earnings(self) -> Decimal:
        return sum_monthly(self.earnings)

    @property
    def total_deductions(self) -> Decimal:
        return sum_monthly(self.deductions)

    @property
    def net_pay(self) -> Decimal:
        return self.total_earnings - self.total_deductions

    @property
    def total_employer_contributions(self) -> Decimal:
        return sum_monthly(self.employer_contributions)

    @property
    def cost_to_company(self) -> Decimal:
        """Monthly earnings plus employer contributions."""
        return self.total_earnings + self.total_employer_contributions

    @property
    def annual_earnings(self) -> Decimal:
        return sum_annual(self.earnings)

    @property
    def annual_deductions(self) -> Decimal:
        return sum_annual(self.deductions)

    @property
    def annual_net_pay(self) -> Decimal:
        return self.annual_earnings - self.annual_deductions

    @property
    def annual_employer_contributions(self) -> Decimal:
        return sum_annual(self.employer_contributions)

    def as_dict(self) -> dict[str, Any]:
        """Serializable view; amounts are strings."""
        return {
            "earnings": [line.as_dict() for line in self.earnings],
            "component_deductions": [line.as_dict() for line in self.component_deductions],
            "statutory_deductions": [line.as_dict() for line in self.statutory_deductions],
            "employer_contributions": [
                line.as_dict() for line in self.employer_contributions
            ],
            "tax": self.tax.as_dict() if self.tax is not None else None,
            "totals": {
                "total_earnings": str(self.total_earnings),
                "total_deductions": str(self.total_deductions),
                "net_pay": str(self.net_pay),
                "total_employer_contributions": str(self.total_employer_contributions),
                "annual_earnings": str(self.annual_earnings),
                "annual_deductions": str(self.annual_deductions),
                "annual_net_pay": str(self.annual_net_pay),
                "annual_employer_contributions": str(
                    self.annual_employer_contributions
                ),
            },
        }


def aggregate(
    earnings: Iterable[PayrollLine],
    component_deductions: Iterable[PayrollLine],
    statutory_deductions: Iterable[PayrollLine],
    employer_contributions: Iterable[PayrollLine],
    tax: PayrollLine | None = None,
) -> PayrollBreakdown:
    """Assemble a breakdown; totals are derived from the lines."""
    breakdown = PayrollBreakdown(
        earnings=tuple(earnings),
        component_deductions=tuple(component_deductions),
        statutory_deductions=tuple(statutory_deductions),
        employer_contributions=tuple(employer_contributions),
        tax=tax,
    )
    if breakdown.net_pay < 0:
        logger.warning("negative_net_pay", extra={
            "total_earnings": str(breakdown.total_earnings),
            "total_deductions": str(breakdown.total_deductions),
            "net_pay": str(breakdown.net_pay),
        })
    logger.info("payroll_aggregated", extra={
        "total_earnings": str(breakdown.total_earnings),
        "total_deductions": str(breakdown.total_deductions),
        "net_pay": str(breakdown.net_pay),
        "total_employer_contributions": str(breakdown.total_employer_contributions),
    })
    return breakdown
