"""
Jurisdiction tax table schema.

Defines the typed, immutable form of the tax configuration: progressive
bracket schedules, standard deductions, rebates, surcharge and cess, and
statutory contribution rates with their ceilings. YAML set files are parsed
into these types by the loader and checked by the validator before any
engine sees them.

Country rules are modeled as a tagged union rather than one wide record:

  IndiaTaxTable = brackets + rebate (87A) + surcharge + cess + professional tax
  USTaxTable    = filing-status brackets + FICA + W-4 allowances + state tax

Both carry the common ``TaxTableBase`` fields, so the progressive and
statutory engines can work against either one.

All rates are percentages (``12`` means 12%), matching how the tables are
published.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from payroll_config.lifecycle import ConfigStatus

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class Country(str, Enum):
    """Payroll country; selects the table variant and its rules."""

    IN = "IN"
    US = "US"


class TaxRegime(str, Enum):
    """India income-tax regime chosen by the employee."""

    NEW = "NEW"
    OLD = "OLD"


class FilingStatus(str, Enum):
    """US W-4 filing status; selects the federal bracket schedule."""

    SINGLE = "SINGLE"
    MARRIED_FILING_JOINTLY = "MARRIED_FILING_JOINTLY"
    MARRIED_FILING_SEPARATELY = "MARRIED_FILING_SEPARATELY"
    HEAD_OF_HOUSEHOLD = "HEAD_OF_HOUSEHOLD"


# Regime used when a caller does not name one
DEFAULT_REGIMES: dict[Country, str] = {
    Country.IN: TaxRegime.NEW.value,
    Country.US: FilingStatus.SINGLE.value,
}


# ---------------------------------------------------------------------------
# Brackets and adjustments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxBracket:
    """One marginal bracket: income in [min, max) taxed at ``rate`` percent."""

    min: Decimal
    max: Decimal | None  # None = unbounded
    rate: Decimal

    @property
    def is_unbounded(self) -> bool:
        return self.max is None


@dataclass(frozen=True)
class Rebate:
    """
    Income-threshold rebate (India section 87A).

    When taxable income is at or below ``max_income`` the bracket tax is
    reduced by ``min(bracket_tax, max_rebate)``. Above the threshold no
    rebate applies at all.
    """

    max_income: Decimal
    max_rebate: Decimal


@dataclass(frozen=True)
class SurchargeSlab:
    """Surcharge rate applied when taxable income exceeds ``min``."""

    min: Decimal
    rate: Decimal


@dataclass(frozen=True)
class DeductionCaps:
    """Old-regime caps on declared deductions."""

    section_80c: Decimal = _ZERO
    section_80d_self: Decimal = _ZERO
    section_80d_parents: Decimal = _ZERO


@dataclass(frozen=True)
class ProfessionalTaxSlab:
    """Monthly professional tax for gross in [min_monthly, max_monthly]."""

    min_monthly: Decimal
    max_monthly: Decimal | None
    tax: Decimal


class StateTaxKind(str, Enum):
    """How a US state taxes wage income."""

    NONE = "none"
    FLAT = "flat"
    BRACKET = "bracket"


@dataclass(frozen=True)
class StateIncomeTax:
    """US state income tax: none, a flat rate, or a bracket schedule."""

    kind: StateTaxKind
    rate: Decimal = _ZERO
    brackets: tuple[TaxBracket, ...] = ()


# ---------------------------------------------------------------------------
# Statutory contributions
# ---------------------------------------------------------------------------


class ContributionBasis(str, Enum):
    """Which amount a contribution rate is applied to."""

    BASIC = "basic"
    GROSS = "gross"


class CeilingPeriod(str, Enum):
    """Whether a contribution ceiling caps each period or the whole year."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


@dataclass(frozen=True)
class StatutoryContribution:
    """
    A government-mandated contribution with employee and employer shares.

    Examples: provident fund (12% of basic, capped at 15,000/month),
    ESI (only while gross <= 21,000/month), social security (6.2% up to an
    annual wage base), Medicare (uncapped, plus an employee-only surtax
    above 200,000/year).
    """

    code: str
    name: str
    employee_rate: Decimal
    employer_rate: Decimal
    basis: ContributionBasis = ContributionBasis.GROSS
    ceiling: Decimal | None = None
    ceiling_period: CeilingPeriod = CeilingPeriod.MONTHLY
    # Skip the entry when monthly earnings exceed this amount
    eligibility_max: Decimal | None = None
    # Feature flag the employer must enable (e.g. "pf_enabled")
    requires_flag: str | None = None
    # Employee-only surtax on annual basis above a threshold
    additional_rate: Decimal | None = None
    additional_threshold: Decimal | None = None
    employee_label: str | None = None
    employer_label: str | None = None

    @property
    def has_surtax(self) -> bool:
        return self.additional_rate is not None and self.additional_threshold is not None


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TaxTableBase:
    """Fields every jurisdiction table carries."""

    country: Country
    fiscal_year: int
    regime: str
    currency: str
    effective_from: date
    effective_to: date | None
    standard_deduction: Decimal
    brackets: tuple[TaxBracket, ...]
    statutory_contributions: tuple[StatutoryContribution, ...] = ()
    status: ConfigStatus = ConfigStatus.PUBLISHED
    version: int = 1
    checksum: str = ""

    @property
    def key(self) -> str:
        """Registry key: ``COUNTRY:fiscal_year:REGIME``."""
        return f"{self.country.value}:{self.fiscal_year}:{self.regime}"

    def is_effective(self, on_date: date) -> bool:
        """Check if the table covers the given date."""
        if on_date < self.effective_from:
            return False
        if self.effective_to and on_date > self.effective_to:
            return False
        return True

    def contribution(self, code: str) -> StatutoryContribution | None:
        """Look up a statutory contribution by code."""
        for entry in self.statutory_contributions:
            if entry.code == code:
                return entry
        return None


@dataclass(frozen=True)
class IndiaTaxTable(TaxTableBase):
    """India (FY) table for one regime."""

    rebate: Rebate | None = None
    cess_rate: Decimal = _ZERO
    surcharge_slabs: tuple[SurchargeSlab, ...] = ()
    surcharge_rate_cap: Decimal | None = None
    deduction_caps: DeductionCaps | None = None
    professional_tax: Mapping[str, tuple[ProfessionalTaxSlab, ...]] = field(
        default_factory=dict, hash=False
    )


@dataclass(frozen=True)
class USTaxTable(TaxTableBase):
    """US (tax year) federal table for one filing status."""

    allowance_amount: Decimal = _ZERO
    state_taxes: Mapping[str, StateIncomeTax] = field(
        default_factory=dict, hash=False
    )


JurisdictionTaxTable = IndiaTaxTable | USTaxTable
