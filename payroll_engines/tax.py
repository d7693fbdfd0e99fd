"""
Tax -- Progressive income tax and withholding.

Responsibility:
    Computes annual income tax from a jurisdiction table: standard
    deduction and declared exemptions, cumulative marginal bracket tax,
    the India section 87A rebate, surcharge with marginal relief and
    health-and-education cess.  Converts the annual figure into the
    monthly amount withheld from pay.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Reads ``payroll_config.schema`` types only.

Invariants enforced:
    - Decimal-only arithmetic; intermediate figures are never rounded.
    - The single rounding point is the monthly figure: annual / 12,
      ROUND_HALF_UP to two places.
    - Bracket tax is monotonically non-decreasing in taxable income.
    - The rebate is a cliff: full rebate at or below the threshold, none
      one unit above it.
    - Marginal relief keeps total tax non-decreasing across surcharge
      slab thresholds.
    - US tables carry no rebate, surcharge or cess; those figures are zero.

Failure modes:
    - None at calculation time.  Bracket schedules are validated when the
      table is loaded.

Usage:
    from payroll_engines.tax import compute_annual_tax, compute_tax

    result = compute_annual_tax(Decimal("1500000"), india_new_regime)
    result.total_annual_tax    # Decimal("97500.00")
    compute_tax(Decimal("1500000"), india_new_regime)   # Decimal("8125.00")
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payroll_config.schema import (
    IndiaTaxTable,
    JurisdictionTaxTable,
    TaxBracket,
    TaxRegime,
    USTaxTable,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import (
    MONTHS_PER_YEAR,
    ZERO,
    PayrollLine,
    annualize,
    percent_of,
    round_money,
    to_decimal,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.tax")

INCOME_TAX_CODE = "INCOME_TAX"

# HRA exemption limits, as a percent of basic
_HRA_RENT_EXCESS_PERCENT = Decimal("10")
_HRA_METRO_PERCENT = Decimal("50")
_HRA_NON_METRO_PERCENT = Decimal("40")


@dataclass(frozen=True)
class TaxComputation:
    """
    Annual tax breakdown.

    All figures are annual and unrounded except ``monthly_tax``.
    """

    gross_income: Decimal
    standard_deduction: Decimal
    exemptions: Decimal
    taxable_income: Decimal
    bracket_tax: Decimal
    rebate: Decimal
    surcharge: Decimal
    cess: Decimal
    total_annual_tax: Decimal

    @property
    def tax_after_rebate(self) -> Decimal:
        return self.bracket_tax - self.rebate

    @property
    def monthly_tax(self) -> Decimal:
        """Annual total / 12, rounded half-up to two places."""
        return round_money(self.total_annual_tax / MONTHS_PER_YEAR)

    @property
    def effective_rate(self) -> Decimal:
        """Total tax as a fraction of gross income (0 for no income)."""
        if self.gross_income <= ZERO:
            return ZERO
        return self.total_annual_tax / self.gross_income

    def as_line(
        self,
        name: str = "Income Tax",
        monthly_amount: Decimal | None = None,
    ) -> PayrollLine:
        """
        The monthly withholding as a payroll line.

        ``monthly_amount`` replaces the even annual / 12 figure, e.g. with
        a ``compute_withholding`` projection.
        """
        return PayrollLine(
            name=name,
            monthly_amount=self.monthly_tax if monthly_amount is None else monthly_amount,
            code=INCOME_TAX_CODE,
            metadata={
                "taxable_income": str(self.taxable_income),
                "total_annual_tax": str(self.total_annual_tax),
            },
        )


@dataclass(frozen=True)
class TaxDeclarations:
    """
    Employee declarations that reduce taxable income.

    India (old regime only): section 80C investments, 80D health premiums
    for self and parents, HRA received and rent paid (annual amounts).
    US: W-4 allowances.
    """

    section_80c: Decimal = ZERO
    section_80d_self: Decimal = ZERO
    section_80d_parents: Decimal = ZERO
    hra_received: Decimal | None = None
    rent_paid: Decimal = ZERO
    metro_city: bool = False
    w4_allowances: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TaxDeclarations:
        """Build from snake_case or camelCase keys."""

        def pick(snake: str, camel: str, default: Any = None) -> Any:
            return data.get(snake, data.get(camel, default))

        hra = pick("hra_received", "hraReceived")
        return cls(
            section_80c=to_decimal(pick("section_80c", "section80C", 0)),
            section_80d_self=to_decimal(pick("section_80d_self", "section80DSelf", 0)),
            section_80d_parents=to_decimal(
                pick("section_80d_parents", "section80DParents", 0)
            ),
            hra_received=None if hra is None else to_decimal(hra),
            rent_paid=to_decimal(pick("rent_paid", "rentPaid", 0)),
            metro_city=bool(pick("metro_city", "metroCity", False)),
            w4_allowances=int(pick("w4_allowances", "w4Allowances", 0)),
        )


def compute_bracket_tax(taxable: Decimal, brackets: tuple[TaxBracket, ...]) -> Decimal:
    """
    Cumulative marginal tax: each bracket taxes only the income inside it.

    Brackets must be ascending and contiguous from zero (checked at load).
    """
    tax = ZERO
    for bracket in brackets:
        if taxable <= bracket.min:
            break
        upper = taxable if bracket.max is None else min(taxable, bracket.max)
        tax += percent_of(upper - bracket.min, bracket.rate)
    return tax


def compute_rebate(taxable: Decimal, bracket_tax: Decimal, table: IndiaTaxTable) -> Decimal:
    """Section 87A rebate: ``min(tax, max_rebate)`` up to the income limit."""
    rebate = table.rebate
    if rebate is None or taxable > rebate.max_income:
        return ZERO
    return min(bracket_tax, rebate.max_rebate)


def _tax_after_rebate(taxable: Decimal, table: IndiaTaxTable) -> Decimal:
    bracket_tax = compute_bracket_tax(taxable, table.brackets)
    return bracket_tax - compute_rebate(taxable, bracket_tax, table)


def compute_surcharge(taxable: Decimal, tax: Decimal, table: IndiaTaxTable) -> Decimal:
    """
    Surcharge on tax after rebate, by taxable-income slab.

    The slab rate is capped at ``surcharge_rate_cap`` when the regime has
    one.  Marginal relief: tax plus surcharge may exceed the tax plus
    surcharge due at the slab threshold (itself computed at the lower
    slab's rate) by no more than the income above the threshold.
    """
    applicable = None
    for slab in table.surcharge_slabs:
        if taxable > slab.min:
            applicable = slab
    if applicable is None or tax <= ZERO:
        return ZERO

    rate = applicable.rate
    if table.surcharge_rate_cap is not None:
        rate = min(rate, table.surcharge_rate_cap)
    surcharge = percent_of(tax, rate)

    threshold = applicable.min
    tax_at_threshold = _tax_after_rebate(threshold, table)
    ceiling = (
        tax_at_threshold
        + compute_surcharge(threshold, tax_at_threshold, table)
        + (taxable - threshold)
    )
    return max(ZERO, min(surcharge, ceiling - tax))


@traced_engine("tax", "1.0", fingerprint_fields=("annual_income", "table", "exemptions"))
def compute_annual_tax(
    annual_income: Decimal,
    table: JurisdictionTaxTable,
    exemptions: Decimal = ZERO,
) -> TaxComputation:
    """
    Compute the annual income tax for one employee.

    Steps:
        1. taxable = max(0, income - standard deduction - exemptions)
        2. cumulative bracket tax
        3. India: rebate (cliff), surcharge, cess on tax + surcharge

    Args:
        annual_income: Annual taxable earnings before deductions.
        table: Jurisdiction table for the employee's regime.
        exemptions: Annual exemptions from ``compute_exemptions``.
    """
    t0 = time.monotonic()
    annual_income = to_decimal(annual_income)
    exemptions = to_decimal(exemptions)
    logger.info("tax_calculation_started", extra={
        "table_key": table.key,
        "annual_income": str(annual_income),
        "exemptions": str(exemptions),
    })

    taxable = max(ZERO, annual_income - table.standard_deduction - exemptions)
    bracket_tax = compute_bracket_tax(taxable, table.brackets)

    rebate = surcharge = cess = ZERO
    if isinstance(table, IndiaTaxTable):
        rebate = compute_rebate(taxable, bracket_tax, table)
        surcharge = compute_surcharge(taxable, bracket_tax - rebate, table)
        cess = percent_of(bracket_tax - rebate + surcharge, table.cess_rate)

    result = TaxComputation(
        gross_income=annual_income,
        standard_deduction=table.standard_deduction,
        exemptions=exemptions,
        taxable_income=taxable,
        bracket_tax=bracket_tax,
        rebate=rebate,
        surcharge=surcharge,
        cess=cess,
        total_annual_tax=bracket_tax - rebate + surcharge + cess,
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("tax_calculation_completed", extra={
        "table_key": table.key,
        "taxable_income": str(taxable),
        "bracket_tax": str(bracket_tax),
        "rebate": str(rebate),
        "surcharge": str(surcharge),
        "cess": str(cess),
        "total_annual_tax": str(result.total_annual_tax),
        "monthly_tax": str(result.monthly_tax),
        "duration_ms": duration_ms,
    })
    return result


def compute_tax(
    annual_income: Decimal,
    table: JurisdictionTaxTable,
    exemptions: Decimal = ZERO,
) -> Decimal:
    """Monthly tax: annual total / 12, rounded half-up to two places."""
    return compute_annual_tax(annual_income, table, exemptions).monthly_tax


def compute_withholding(
    annual_tax: Decimal,
    ytd_tax_paid: Decimal,
    months_remaining: int,
) -> Decimal:
    """
    Spread the unpaid part of the projected annual tax over the rest of
    the year.  Never negative; months_remaining below 1 counts as 1.
    """
    outstanding = to_decimal(annual_tax) - to_decimal(ytd_tax_paid)
    months = max(1, months_remaining)
    return round_money(max(ZERO, outstanding / Decimal(months)))


def hra_exemption(
    hra_received: Decimal,
    rent_paid: Decimal,
    basic_annual: Decimal,
    metro_city: bool,
) -> Decimal:
    """
    Least of: HRA received, rent paid minus 10% of basic, and 50% (metro)
    or 40% of basic.  All annual.
    """
    percent = _HRA_METRO_PERCENT if metro_city else _HRA_NON_METRO_PERCENT
    exempt = min(
        hra_received,
        rent_paid - percent_of(basic_annual, _HRA_RENT_EXCESS_PERCENT),
        percent_of(basic_annual, percent),
    )
    return max(ZERO, exempt)


def compute_exemptions(
    declarations: TaxDeclarations | None,
    basic_monthly: Decimal,
    table: JurisdictionTaxTable,
) -> Decimal:
    """
    Annual exemptions from employee declarations.

    India old regime: 80C, 80D self and 80D parents each capped, plus HRA.
    India new regime: declarations are ignored.
    US: W-4 allowances times the table's allowance amount.
    """
    if declarations is None:
        return ZERO

    if isinstance(table, USTaxTable):
        return Decimal(max(0, declarations.w4_allowances)) * table.allowance_amount

    if table.regime != TaxRegime.OLD.value:
        return ZERO

    total = ZERO
    caps = table.deduction_caps
    if caps is not None:
        total += min(max(ZERO, declarations.section_80c), caps.section_80c)
        total += min(max(ZERO, declarations.section_80d_self), caps.section_80d_self)
        total += min(
            max(ZERO, declarations.section_80d_parents), caps.section_80d_parents
        )
    if declarations.hra_received is not None:
        total += hra_exemption(
            declarations.hra_received,
            declarations.rent_paid,
            annualize(to_decimal(basic_monthly)),
            declarations.metro_city,
        )

    logger.debug("exemptions_computed", extra={
        "table_key": table.key,
        "exemptions": str(total),
    })
    return total
