"""
payroll_services.preview -- Payroll preview for one employee and period.

Responsibility:
    Runs the full computation pipeline for a salary structure:
    table lookup -> component resolution -> statutory contributions ->
    regional tax -> income tax -> aggregation.  Used for salary-structure
    previews, monthly payroll runs and bonus runs.

Architecture position:
    Services -- orchestration over engines + config.
    The only layer that looks tables up; engines receive them as values.

Invariants enforced:
    - Monthly gross = annual CTC / 12.
    - Income tax is computed on annualized taxable earnings (plus the
      bonus for bonus runs).
    - A bonus run pays the bonus alone.  It skips statutory contributions
      and professional tax; US state income tax still withholds on it.
    - With year-to-date tax paid or months remaining supplied, the tax
      line spreads the unpaid projected annual tax over the months left.
    - A failed request raises; no partial breakdown is returned, and a
      batch with one failing request returns nothing.

Failure modes:
    - ConfigurationMissingError when no table covers the request.
    - MalformedComponentError from component construction.

Audit relevance:
    Every preview is logged with the table key and checksum under a
    ``LogContext`` bound to the batch run, employee, country and table,
    alongside the engine traces of each step.

Usage:
    from payroll_services.preview import PayrollPreviewService, PayrollRequest

    service = PayrollPreviewService()
    breakdown = service.preview(PayrollRequest(
        employee_id="E-100",
        components=structure,
        annual_ctc=Decimal("1200000"),
        country="IN",
        fiscal_year=2025,
        state="Karnataka",
        enabled_flags=frozenset({"pf_enabled"}),
    ))
    breakdown.net_pay
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

from payroll_config import get_active_tax_table, get_tax_table
from payroll_config.schema import JurisdictionTaxTable, TaxRegime, USTaxTable
from payroll_engines import (
    PayrollBreakdown,
    SalaryComponent,
    TaxComputation,
    TaxDeclarations,
    aggregate,
    compute_annual_tax,
    compute_exemptions,
    compute_statutory,
    compute_withholding,
    regional_tax_line,
    resolve_components,
)
from payroll_kernel.domain.values import (
    MONTHS_PER_YEAR,
    ZERO,
    PayrollLine,
    annualize,
    to_decimal,
)
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.preview")

_HRA_MARKERS = ("hra", "house rent")
_FULL_YEAR_MONTHS = 12

BONUS_CODE = "BONUS"


@dataclass(frozen=True)
class PayrollRequest:
    """
    Inputs for one employee's payroll preview.

    Either ``fiscal_year`` or ``as_of`` selects the table.  ``regime`` is
    the India regime (NEW / OLD) or the US filing status; it defaults to
    NEW / SINGLE.

    ``ytd_tax_paid`` and ``months_remaining`` switch the tax line from an
    even annual / 12 split to spreading the unpaid projected tax over the
    months left in the fiscal year.  A bonus run pays ``bonus_amount``
    alone; the salary structure only feeds the annual tax projection.
    """

    components: tuple[SalaryComponent, ...]
    annual_ctc: Decimal
    country: str
    fiscal_year: int | None = None
    as_of: date | None = None
    regime: str | None = None
    state: str | None = None
    employee_id: str | None = None
    enabled_flags: frozenset[str] = frozenset()
    declarations: TaxDeclarations | None = None
    ytd_basis: Mapping[str, Decimal] = field(default_factory=dict, hash=False)
    is_bonus: bool = False
    bonus_amount: Decimal = ZERO
    ytd_tax_paid: Decimal | None = None
    months_remaining: int | None = None

    def __post_init__(self) -> None:
        if self.fiscal_year is None and self.as_of is None:
            raise ValueError("PayrollRequest needs fiscal_year or as_of")
        object.__setattr__(self, "components", tuple(self.components))
        object.__setattr__(self, "annual_ctc", to_decimal(self.annual_ctc))
        object.__setattr__(self, "bonus_amount", to_decimal(self.bonus_amount))
        object.__setattr__(self, "enabled_flags", frozenset(self.enabled_flags))
        if self.ytd_tax_paid is not None:
            object.__setattr__(self, "ytd_tax_paid", to_decimal(self.ytd_tax_paid))

    @property
    def monthly_gross(self) -> Decimal:
        return self.annual_ctc / MONTHS_PER_YEAR


class PayrollPreviewService:
    """
    Computes payroll breakdowns.

    Contract:
        Receives an optional sets directory via constructor injection;
        tables are looked up through ``payroll_config`` only.
    Guarantees:
        - ``preview`` returns a complete ``PayrollBreakdown`` or raises.
        - ``preview_batch`` returns one breakdown per request, in order.
    Non-goals:
        - Does not persist breakdowns or track year-to-date figures;
          callers supply ``ytd_basis``, ``ytd_tax_paid`` and
          ``months_remaining``.
    """

    def __init__(self, config_dir: Path | None = None):
        self._config_dir = config_dir

    def resolve_table(self, request: PayrollRequest) -> JurisdictionTaxTable:
        """Table for the request's country, year (or date) and regime."""
        if request.fiscal_year is not None:
            return get_tax_table(
                request.country, request.fiscal_year, request.regime, self._config_dir
            )
        return get_active_tax_table(
            request.country, request.as_of, request.regime, self._config_dir
        )

    def preview(self, request: PayrollRequest) -> PayrollBreakdown:
        """Run the pipeline for one request."""
        with LogContext.bind(employee_id=request.employee_id, country=request.country):
            table = self.resolve_table(request)
            return self.preview_with_table(request, table)

    def preview_with_table(
        self,
        request: PayrollRequest,
        table: JurisdictionTaxTable,
    ) -> PayrollBreakdown:
        """Run the pipeline against an already-selected table."""
        with LogContext.bind(table_key=table.key):
            return self._run(request, table)

    def _run(
        self,
        request: PayrollRequest,
        table: JurisdictionTaxTable,
    ) -> PayrollBreakdown:
        t0 = time.monotonic()
        logger.info("payroll_preview_started", extra={
            "table_key": table.key,
            "table_checksum": table.checksum,
            "annual_ctc": str(request.annual_ctc),
            "is_bonus": request.is_bonus,
        })

        resolved = resolve_components(request.components, request.monthly_gross)
        annual_taxable = annualize(resolved.taxable_earnings)

        statutory_lines: list[PayrollLine] = []
        employer_lines: list[PayrollLine] = []

        if request.is_bonus:
            earnings = [PayrollLine(
                name="Bonus",
                monthly_amount=request.bonus_amount,
                annual_amount=request.bonus_amount,
                code=BONUS_CODE,
                is_taxable=True,
            )]
            component_deductions: tuple[PayrollLine, ...] = ()
            annual_taxable += request.bonus_amount
            # State income tax withholds on bonuses; professional tax does not
            if isinstance(table, USTaxTable):
                regional = regional_tax_line(request.state, request.bonus_amount, table)
                if regional is not None:
                    statutory_lines.append(regional)
        else:
            earnings = list(resolved.earnings)
            component_deductions = resolved.deductions
            statutory = compute_statutory(
                resolved.basic,
                resolved.total_earnings,
                table,
                enabled_flags=request.enabled_flags,
                ytd_basis=request.ytd_basis,
            )
            statutory_lines.extend(statutory.deductions)
            employer_lines.extend(statutory.employer_contributions)

            regional = regional_tax_line(request.state, resolved.total_earnings, table)
            if regional is not None:
                statutory_lines.append(regional)

        declarations = self._with_hra(request.declarations, resolved.earnings, table)
        exemptions = compute_exemptions(declarations, resolved.basic, table)
        computation = compute_annual_tax(annual_taxable, table, exemptions)

        breakdown = aggregate(
            earnings=earnings,
            component_deductions=component_deductions,
            statutory_deductions=statutory_lines,
            employer_contributions=employer_lines,
            tax=self._tax_line(request, computation),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("payroll_preview_completed", extra={
            "table_key": table.key,
            "total_earnings": str(breakdown.total_earnings),
            "net_pay": str(breakdown.net_pay),
            "tax_withheld": str(breakdown.tax.monthly_amount),
            "duration_ms": duration_ms,
        })
        return breakdown

    def preview_batch(self, requests: Iterable[PayrollRequest]) -> list[PayrollBreakdown]:
        """
        Preview many employees.  The first failure propagates and no
        results are returned.
        """
        requests = list(requests)
        with LogContext.bind(run_id=uuid4().hex):
            logger.info("payroll_batch_started", extra={"request_count": len(requests)})
            results = [self.preview(request) for request in requests]
            logger.info("payroll_batch_completed", extra={"request_count": len(results)})
        return results

    @staticmethod
    def _tax_line(request: PayrollRequest, computation: TaxComputation) -> PayrollLine:
        if request.ytd_tax_paid is None and request.months_remaining is None:
            return computation.as_line()
        months = request.months_remaining
        withholding = compute_withholding(
            computation.total_annual_tax,
            request.ytd_tax_paid if request.ytd_tax_paid is not None else ZERO,
            months if months is not None else _FULL_YEAR_MONTHS,
        )
        return computation.as_line(monthly_amount=withholding)

    @staticmethod
    def _with_hra(
        declarations: TaxDeclarations | None,
        earnings: tuple[PayrollLine, ...],
        table: JurisdictionTaxTable,
    ) -> TaxDeclarations | None:
        # Old-regime HRA defaults to the HRA earning when not declared
        if (
            declarations is None
            or declarations.hra_received is not None
            or declarations.rent_paid <= ZERO
            or table.regime != TaxRegime.OLD.value
        ):
            return declarations
        hra_monthly = sum(
            (
                line.monthly_amount
                for line in earnings
                if any(marker in line.name.lower() for marker in _HRA_MARKERS)
            ),
            ZERO,
        )
        return replace(declarations, hra_received=annualize(hra_monthly))
