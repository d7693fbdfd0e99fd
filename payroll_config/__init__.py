"""
payroll_config -- jurisdiction tax tables.

Responsibility:
    Provides the ONLY way to obtain tax tables at runtime:
    ``get_tax_table()`` by (country, fiscal year, regime) and
    ``get_active_tax_table()`` by date.  YAML loading and validation are
    internal and never exposed to engines.

Architecture position:
    Configuration -- sits above ``payroll_kernel`` and below
    ``payroll_services``.  ``payroll_engines`` depends on the schema types
    only, never on lookup.

Invariants enforced:
    - Tables are frozen, validated at load time and served only when
      PUBLISHED.
    - Fingerprint pinning: when a set has an APPROVED_FINGERPRINT pin, its
      checksum must match.
    - Lookups fail fast with ``ConfigurationMissingError``; there is no
      fallback to another year or regime.
"""

from payroll_config.lifecycle import ConfigStatus
from payroll_config.registry import (
    DEFAULT_SETS_DIR,
    clear_table_cache,
    get_active_tax_table,
    get_tax_table,
)
from payroll_config.schema import (
    CeilingPeriod,
    ContributionBasis,
    Country,
    DeductionCaps,
    FilingStatus,
    IndiaTaxTable,
    JurisdictionTaxTable,
    ProfessionalTaxSlab,
    Rebate,
    StateIncomeTax,
    StateTaxKind,
    StatutoryContribution,
    SurchargeSlab,
    TaxBracket,
    TaxRegime,
    TaxTableBase,
    USTaxTable,
)

__all__ = [
    "DEFAULT_SETS_DIR",
    "CeilingPeriod",
    "ConfigStatus",
    "ContributionBasis",
    "Country",
    "DeductionCaps",
    "FilingStatus",
    "IndiaTaxTable",
    "JurisdictionTaxTable",
    "ProfessionalTaxSlab",
    "Rebate",
    "StateIncomeTax",
    "StateTaxKind",
    "StatutoryContribution",
    "SurchargeSlab",
    "TaxBracket",
    "TaxRegime",
    "TaxTableBase",
    "USTaxTable",
    "clear_table_cache",
    "get_active_tax_table",
    "get_tax_table",
]
