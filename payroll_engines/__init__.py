"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll calculators.  This is the import surface for
    ``payroll_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import payroll_kernel and the ``payroll_config.schema`` types.
    MUST NOT import payroll_services or the table registry/loader.

Invariants enforced:
    - Decimal-only arithmetic: floats are forbidden in money math.
    - Determinism: identical inputs always produce identical outputs.
    - Tables are passed in; engines never look them up.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE records with
    engine name, version, input fingerprint and duration.

Usage:
    from payroll_engines import resolve_components, compute_statutory
    from payroll_engines import compute_annual_tax, aggregate
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.aggregator import PayrollBreakdown, aggregate
from payroll_engines.components import (
    CalculationType,
    ComponentType,
    ResolvedComponents,
    SalaryComponent,
    resolve_components,
)
from payroll_engines.regional import (
    PROFESSIONAL_TAX_CODE,
    STATE_INCOME_TAX_CODE,
    compute_professional_tax,
    compute_state_withholding,
    regional_tax_line,
)
from payroll_engines.statutory import StatutoryResult, compute_statutory
from payroll_engines.tax import (
    INCOME_TAX_CODE,
    TaxComputation,
    TaxDeclarations,
    compute_annual_tax,
    compute_bracket_tax,
    compute_exemptions,
    compute_tax,
    compute_withholding,
    hra_exemption,
)
from payroll_engines.tracer import traced_engine

__all__ = [
    "INCOME_TAX_CODE",
    "PROFESSIONAL_TAX_CODE",
    "STATE_INCOME_TAX_CODE",
    "CalculationType",
    "ComponentType",
    "PayrollBreakdown",
    "ResolvedComponents",
    "SalaryComponent",
    "StatutoryResult",
    "TaxComputation",
    "TaxDeclarations",
    "aggregate",
    "compute_annual_tax",
    "compute_bracket_tax",
    "compute_exemptions",
    "compute_professional_tax",
    "compute_state_withholding",
    "compute_statutory",
    "compute_tax",
    "compute_withholding",
    "hra_exemption",
    "regional_tax_line",
    "resolve_components",
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 6,
    "modules": ["components", "statutory", "tax", "regional", "aggregator", "tracer"],
})
