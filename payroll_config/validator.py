"""
Tax Table Validator (``payroll_config.validator``).

Responsibility
--------------
Validates a parsed jurisdiction table at load time, before the registry
will serve it.  A table that fails here never reaches an engine.

Architecture position
---------------------
**Config layer** -- load-time validation.  Called by the registry after
parsing each set file.

Invariants enforced
-------------------
* Bracket schedules (federal and state) start at zero, are ascending and
  contiguous (each ``min`` equals the previous ``max``), and only the last
  bracket is unbounded.  Rates are non-negative.
* Statutory contribution codes are unique; rates are non-negative and
  ceilings positive.
* Professional tax slabs are ascending with non-negative amounts.
* Rebate, cess and surcharge figures are non-negative.

Failure modes
-------------
* Bracket problems  -> ``InvalidBracketTableError`` (all problems listed).
* Any other error  -> ``InvalidTaxTableError`` from
  ``raise_for_result``.
* Warnings (e.g. a surtax with no threshold) do not block loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import (
    IndiaTaxTable,
    JurisdictionTaxTable,
    StateTaxKind,
    TaxBracket,
    USTaxTable,
)
from payroll_kernel.exceptions import InvalidBracketTableError, InvalidTaxTableError

_ZERO = Decimal("0")


@dataclass
class ConfigValidationResult:
    """
    Result of table validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block loading but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def check_brackets(brackets: tuple[TaxBracket, ...], label: str = "brackets") -> list[str]:
    """
    Return every structural problem in a bracket schedule.

    An empty list means the schedule is usable by ``compute_bracket_tax``.
    """
    problems: list[str] = []
    if not brackets:
        return [f"{label}: schedule is empty"]

    if brackets[0].min != _ZERO:
        problems.append(f"{label}: first bracket starts at {brackets[0].min}, not 0")

    for i, bracket in enumerate(brackets):
        if bracket.rate < _ZERO:
            problems.append(f"{label}[{i}]: negative rate {bracket.rate}")
        is_last = i == len(brackets) - 1
        if bracket.max is None:
            if not is_last:
                problems.append(f"{label}[{i}]: unbounded bracket is not the last one")
            continue
        if bracket.max <= bracket.min:
            problems.append(
                f"{label}[{i}]: max {bracket.max} is not above min {bracket.min}"
            )
        if not is_last and brackets[i + 1].min != bracket.max:
            problems.append(
                f"{label}[{i + 1}]: starts at {brackets[i + 1].min}, "
                f"expected {bracket.max} (gap or overlap)"
            )

    if brackets[-1].max is not None:
        problems.append(f"{label}: last bracket must be unbounded")

    return problems


def validate_brackets(table: JurisdictionTaxTable) -> None:
    """
    Check the federal schedule and, for US tables, every state schedule.

    Raises:
        InvalidBracketTableError: listing all problems found.
    """
    problems = check_brackets(table.brackets)
    if isinstance(table, USTaxTable):
        for state, rule in table.state_taxes.items():
            if rule.kind == StateTaxKind.BRACKET:
                problems.extend(check_brackets(rule.brackets, f"state {state}"))
    if problems:
        raise InvalidBracketTableError(table.key, problems)


def validate_tax_table(table: JurisdictionTaxTable) -> ConfigValidationResult:
    """Validate everything except bracket structure."""
    result = ConfigValidationResult()

    if table.standard_deduction < _ZERO:
        result.add_error(f"negative standard deduction {table.standard_deduction}")
    if table.effective_to is not None and table.effective_to < table.effective_from:
        result.add_error(
            f"effective_to {table.effective_to} precedes "
            f"effective_from {table.effective_from}"
        )

    _validate_contributions(table, result)

    if isinstance(table, IndiaTaxTable):
        _validate_india(table, result)
    elif isinstance(table, USTaxTable):
        _validate_us(table, result)

    return result


def _validate_contributions(
    table: JurisdictionTaxTable, result: ConfigValidationResult
) -> None:
    seen: set[str] = set()
    for entry in table.statutory_contributions:
        if entry.code in seen:
            result.add_error(f"Duplicate statutory contribution: {entry.code}")
        seen.add(entry.code)
        if entry.employee_rate < _ZERO or entry.employer_rate < _ZERO:
            result.add_error(f"{entry.code}: negative contribution rate")
        if entry.ceiling is not None and entry.ceiling <= _ZERO:
            result.add_error(f"{entry.code}: ceiling must be positive")
        if entry.eligibility_max is not None and entry.eligibility_max <= _ZERO:
            result.add_error(f"{entry.code}: eligibility_max must be positive")
        if (entry.additional_rate is None) != (entry.additional_threshold is None):
            result.add_warning(
                f"{entry.code}: surtax needs both additional_rate and "
                f"additional_threshold; it will be ignored"
            )


def _validate_india(table: IndiaTaxTable, result: ConfigValidationResult) -> None:
    if table.rebate is not None and (
        table.rebate.max_income < _ZERO or table.rebate.max_rebate < _ZERO
    ):
        result.add_error("rebate figures must be non-negative")
    if table.cess_rate < _ZERO:
        result.add_error(f"negative cess rate {table.cess_rate}")

    previous = None
    for slab in table.surcharge_slabs:
        if slab.rate < _ZERO:
            result.add_error(f"surcharge slab {slab.min}: negative rate")
        if previous is not None and slab.min <= previous:
            result.add_error("surcharge slabs must be in ascending order")
        previous = slab.min

    for state, slabs in table.professional_tax.items():
        previous = None
        for slab in slabs:
            if slab.tax < _ZERO:
                result.add_error(f"professional tax {state}: negative amount")
            if previous is not None and slab.min_monthly <= previous:
                result.add_error(f"professional tax {state}: slabs not ascending")
            previous = slab.min_monthly
        if slabs and slabs[-1].max_monthly is not None:
            result.add_warning(
                f"professional tax {state}: top slab is bounded; "
                f"higher salaries pay nothing"
            )


def _validate_us(table: USTaxTable, result: ConfigValidationResult) -> None:
    if table.allowance_amount < _ZERO:
        result.add_error("allowance_amount must be non-negative")
    for state, rule in table.state_taxes.items():
        if rule.kind == StateTaxKind.FLAT and rule.rate < _ZERO:
            result.add_error(f"state {state}: negative flat rate")


def raise_for_result(table: JurisdictionTaxTable, result: ConfigValidationResult) -> None:
    """Raise ``InvalidTaxTableError`` when the result carries errors."""
    if not result.is_valid:
        raise InvalidTaxTableError(table.key, "; ".join(result.errors))
