"""
Regional -- State-level payroll taxes.

Responsibility:
    India: monthly professional tax by state slab.
    US: state income tax withholding (none, flat rate, or brackets).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Unknown states owe nothing; the lookup never raises.
    - Professional tax picks the highest slab whose lower bound the gross
      reaches, so fractional amounts between published slabs are covered.
    - State withholding is computed on annual gross and rounded once,
      on the monthly figure.
"""

from __future__ import annotations

from decimal import Decimal

from payroll_config.schema import (
    IndiaTaxTable,
    JurisdictionTaxTable,
    StateTaxKind,
    USTaxTable,
)
from payroll_engines.tax import compute_bracket_tax
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

logger = get_logger("engines.regional")

PROFESSIONAL_TAX_CODE = "PROFESSIONAL_TAX"
STATE_INCOME_TAX_CODE = "STATE_INCOME_TAX"


def compute_professional_tax(
    state: str | None,
    monthly_gross: Decimal,
    table: IndiaTaxTable,
) -> Decimal:
    """Monthly professional tax for a state (0 for states without one)."""
    slabs = table.professional_tax.get(state or "", ())
    monthly_gross = to_decimal(monthly_gross)
    tax = ZERO
    for slab in slabs:
        if monthly_gross >= slab.min_monthly:
            tax = slab.tax
    return tax


def compute_state_withholding(
    state: str | None,
    annual_gross: Decimal,
    table: USTaxTable,
) -> Decimal:
    """Monthly state income tax withholding, rounded half-up."""
    rule = table.state_taxes.get((state or "").upper())
    if rule is None or rule.kind == StateTaxKind.NONE:
        return ZERO
    annual_gross = max(ZERO, to_decimal(annual_gross))
    if rule.kind == StateTaxKind.FLAT:
        annual = percent_of(annual_gross, rule.rate)
    else:
        annual = compute_bracket_tax(annual_gross, rule.brackets)
    return round_money(annual / MONTHS_PER_YEAR)


@traced_engine("regional", "1.0", fingerprint_fields=("state", "monthly_gross", "table"))
def regional_tax_line(
    state: str | None,
    monthly_gross: Decimal,
    table: JurisdictionTaxTable,
) -> PayrollLine | None:
    """
    The regional tax for a table's country as a deduction line.

    Returns None when no state is given.
    """
    if not state:
        return None
    if isinstance(table, IndiaTaxTable):
        amount = compute_professional_tax(state, monthly_gross, table)
        line = PayrollLine(
            name="Professional Tax",
            monthly_amount=amount,
            code=PROFESSIONAL_TAX_CODE,
            metadata={"state": state},
        )
    else:
        amount = compute_state_withholding(state, annualize(to_decimal(monthly_gross)), table)
        line = PayrollLine(
            name=f"State Income Tax ({state.upper()})",
            monthly_amount=amount,
            code=STATE_INCOME_TAX_CODE,
            metadata={"state": state.upper()},
        )
    logger.debug("regional_tax_computed", extra={
        "table_key": table.key,
        "state": state,
        "monthly_amount": str(amount),
    })
    return line
