"""
Tax Table Registry (``payroll_config.registry``).

Responsibility
--------------
Loads every set file in a sets directory once per process, verifies pins,
validates each table and serves immutable tables by key or by date.

Architecture position
---------------------
**Config layer** -- the only place set files are read at runtime.  Engines
never call this; services look tables up and pass them down.

Invariants enforced
-------------------
* Only PUBLISHED tables are served.
* Exactly one published table per ``COUNTRY:fiscal_year:REGIME``.
* A table that fails validation makes the whole directory unloadable.
* Lookups never fall back to another year or regime.

Failure modes
-------------
* ``ConfigurationMissingError`` -- no published table for the key / date.
* ``InvalidBracketTableError`` / ``InvalidTaxTableError`` -- a set failed
  load-time validation, or two published tables share a key.
* ``ConfigIntegrityError`` -- a set no longer matches its pin file.

Audit relevance
---------------
Every successful lookup emits a ``PAYROLL_CONFIG_TRACE`` entry with the
table key, version and checksum, tying each computation to the exact rates
that produced it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType

from payroll_config.integrity import verify_fingerprint_pin
from payroll_config.lifecycle import SERVABLE_STATUSES
from payroll_config.loader import compute_checksum, load_yaml_file, parse_tax_table_set
from payroll_config.schema import DEFAULT_REGIMES, Country, JurisdictionTaxTable
from payroll_config.validator import raise_for_result, validate_brackets, validate_tax_table
from payroll_kernel.exceptions import ConfigurationMissingError, InvalidTaxTableError
from payroll_kernel.logging_config import get_logger

logger = get_logger("config")

# Default table sets directory
DEFAULT_SETS_DIR = Path(__file__).parent / "sets"


@lru_cache(maxsize=None)
def load_tables(sets_dir: Path) -> Mapping[str, JurisdictionTaxTable]:
    """
    Load, verify and validate every ``*.yaml`` set in ``sets_dir``.

    Memoized per directory; call ``clear_table_cache()`` to reload.

    Returns:
        Read-only mapping of table key to published table.
    """
    if not sets_dir.is_dir():
        raise FileNotFoundError(f"Tax table sets directory not found: {sets_dir}")

    tables: dict[str, JurisdictionTaxTable] = {}
    for set_path in sorted(sets_dir.glob("*.yaml")):
        raw = load_yaml_file(set_path)
        verify_fingerprint_pin(set_path.stem, compute_checksum(raw), set_path)

        for table in parse_tax_table_set(raw):
            validate_brackets(table)
            result = validate_tax_table(table)
            for warning in result.warnings:
                logger.warning(
                    "tax_table_warning",
                    extra={"table_key": table.key, "warning": warning},
                )
            raise_for_result(table, result)

            if table.status not in SERVABLE_STATUSES:
                logger.debug(
                    "tax_table_skipped",
                    extra={"table_key": table.key, "status": table.status.value},
                )
                continue
            if table.key in tables:
                raise InvalidTaxTableError(
                    table.key, f"more than one published table (see {set_path.name})"
                )
            tables[table.key] = table

    logger.info(
        "tax_tables_loaded",
        extra={"sets_dir": str(sets_dir), "table_count": len(tables)},
    )
    return MappingProxyType(tables)


def clear_table_cache() -> None:
    """Forget loaded tables. Used by tests and after publishing new sets."""
    load_tables.cache_clear()


def _normalize(country: Country | str, regime: str | None) -> tuple[Country, str]:
    country = Country(str(getattr(country, "value", country)).upper())
    if regime is None:
        return country, DEFAULT_REGIMES[country]
    # str-valued enums (TaxRegime, FilingStatus) carry the key in .value
    return country, str(getattr(regime, "value", regime)).upper()


def _trace(table: JurisdictionTaxTable) -> None:
    logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "table_key": table.key,
            "table_version": table.version,
            "checksum": table.checksum,
            "effective_from": table.effective_from,
            "effective_to": table.effective_to,
            "bracket_count": len(table.brackets),
        },
    )


def get_tax_table(
    country: Country | str,
    fiscal_year: int,
    regime: str | None = None,
    config_dir: Path | None = None,
) -> JurisdictionTaxTable:
    """
    Look up the published table for (country, fiscal year, regime).

    ``regime`` defaults to NEW for India and SINGLE for the US.

    Raises:
        ConfigurationMissingError: if no such table is published.
    """
    country, regime_key = _normalize(country, regime)
    tables = load_tables(config_dir or DEFAULT_SETS_DIR)
    table = tables.get(f"{country.value}:{fiscal_year}:{regime_key}")
    if table is None:
        raise ConfigurationMissingError(country.value, fiscal_year, regime_key)
    _trace(table)
    return table


def get_active_tax_table(
    country: Country | str,
    as_of: date,
    regime: str | None = None,
    config_dir: Path | None = None,
) -> JurisdictionTaxTable:
    """
    Look up the published table whose effective range covers ``as_of``.

    Raises:
        ConfigurationMissingError: if no published table covers the date.
    """
    country, regime_key = _normalize(country, regime)
    tables = load_tables(config_dir or DEFAULT_SETS_DIR)
    candidates = [
        t
        for t in tables.values()
        if t.country == country and t.regime == regime_key and t.is_effective(as_of)
    ]
    if not candidates:
        raise ConfigurationMissingError(country.value, None, regime_key, as_of=as_of)
    table = max(candidates, key=lambda t: (t.fiscal_year, t.version))
    _trace(table)
    return table
