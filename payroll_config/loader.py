"""
Tax Table Loader (``payroll_config.loader``).

Responsibility
--------------
Loads jurisdiction set files (one YAML file per country and fiscal year)
and parses them into typed ``payroll_config.schema`` tables.  This is
internal tooling; runtime callers go through
``payroll_config.get_tax_table()`` / ``get_active_tax_table()``.

A set file carries the fields shared by every regime at the top level and
a ``regimes:`` mapping with the per-regime schedule.  Each regime entry is
overlaid on the shared fields and parsed into its own table, so one file
yields ``IndiaTaxTable`` NEW + OLD, or one ``USTaxTable`` per filing status.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel only for
Decimal coercion and the typed configuration errors.

Invariants enforced
-------------------
* Every numeric field is converted with ``to_decimal`` (floats via ``str``).
* Every parsed object is a frozen dataclass; mappings are wrapped in
  ``MappingProxyType`` so a loaded table cannot be changed in place.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  regime data; it is stored on the table for audit and pin checks.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys or unparseable values  -> ``InvalidTaxTableError``.
* Invalid date format  -> ``InvalidTaxTableError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from payroll_config.lifecycle import ConfigStatus
from payroll_config.schema import (
    CeilingPeriod,
    ContributionBasis,
    Country,
    DeductionCaps,
    IndiaTaxTable,
    JurisdictionTaxTable,
    ProfessionalTaxSlab,
    Rebate,
    StateIncomeTax,
    StateTaxKind,
    StatutoryContribution,
    SurchargeSlab,
    TaxBracket,
    USTaxTable,
)
from payroll_kernel.domain.values import ZERO, to_decimal
from payroll_kernel.exceptions import InvalidTaxTableError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        ValueError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def _optional_decimal(value: Any):
    return None if value is None else to_decimal(value)


def parse_brackets(raw: list[dict[str, Any]]) -> tuple[TaxBracket, ...]:
    """Parse a bracket list; ``max: null`` marks the unbounded top bracket."""
    return tuple(
        TaxBracket(
            min=to_decimal(b["min"]),
            max=_optional_decimal(b.get("max")),
            rate=to_decimal(b["rate"]),
        )
        for b in raw
    )


def parse_contribution(data: dict[str, Any]) -> StatutoryContribution:
    """Parse one statutory contribution entry."""
    return StatutoryContribution(
        code=data["code"],
        name=data.get("name", data["code"]),
        employee_rate=to_decimal(data.get("employee_rate", 0)),
        employer_rate=to_decimal(data.get("employer_rate", 0)),
        basis=ContributionBasis(data.get("basis", ContributionBasis.GROSS.value)),
        ceiling=_optional_decimal(data.get("ceiling")),
        ceiling_period=CeilingPeriod(
            data.get("ceiling_period", CeilingPeriod.MONTHLY.value)
        ),
        eligibility_max=_optional_decimal(data.get("eligibility_max")),
        requires_flag=data.get("requires_flag"),
        additional_rate=_optional_decimal(data.get("additional_rate")),
        additional_threshold=_optional_decimal(data.get("additional_threshold")),
        employee_label=data.get("employee_label"),
        employer_label=data.get("employer_label"),
    )


def parse_professional_tax(
    raw: dict[str, list[dict[str, Any]]],
) -> MappingProxyType:
    """Parse the state -> slab list mapping for professional tax."""
    return MappingProxyType({
        state: tuple(
            ProfessionalTaxSlab(
                min_monthly=to_decimal(s["min_monthly"]),
                max_monthly=_optional_decimal(s.get("max_monthly")),
                tax=to_decimal(s["tax"]),
            )
            for s in slabs
        )
        for state, slabs in raw.items()
    })


def parse_state_taxes(raw: dict[str, dict[str, Any]]) -> MappingProxyType:
    """Parse the US state -> income tax rule mapping."""
    states: dict[str, StateIncomeTax] = {}
    for state, data in raw.items():
        states[state] = StateIncomeTax(
            kind=StateTaxKind(data.get("kind", StateTaxKind.NONE.value)),
            rate=to_decimal(data.get("rate", 0)),
            brackets=parse_brackets(data.get("brackets", [])),
        )
    return MappingProxyType(states)


def _regime_data(data: dict[str, Any], regime: str) -> dict[str, Any]:
    """Shared fields overlaid with one regime's fields."""
    merged = {k: v for k, v in data.items() if k != "regimes"}
    merged.update(data["regimes"][regime])
    merged["regime"] = regime
    return merged


def parse_tax_table(data: dict[str, Any]) -> JurisdictionTaxTable:
    """
    Parse one regime-resolved table dict into its country's table type.

    Raises:
        InvalidTaxTableError: on missing keys or unparseable values.
    """
    key = f"{data.get('country')}:{data.get('fiscal_year')}:{data.get('regime')}"
    try:
        country = Country(data["country"])
        common: dict[str, Any] = dict(
            country=country,
            fiscal_year=int(data["fiscal_year"]),
            regime=str(data["regime"]),
            currency=data["currency"],
            effective_from=parse_date(data["effective_from"]),
            effective_to=(
                parse_date(data["effective_to"]) if data.get("effective_to") else None
            ),
            standard_deduction=to_decimal(data.get("standard_deduction", 0)),
            brackets=parse_brackets(data["brackets"]),
            statutory_contributions=tuple(
                parse_contribution(c) for c in data.get("statutory_contributions", [])
            ),
            status=ConfigStatus(data.get("status", ConfigStatus.DRAFT.value)),
            version=int(data.get("version", 1)),
            checksum=compute_checksum(data),
        )

        if country == Country.IN:
            rebate_data = data.get("rebate")
            caps_data = data.get("deduction_caps")
            return IndiaTaxTable(
                **common,
                rebate=(
                    Rebate(
                        max_income=to_decimal(rebate_data["max_income"]),
                        max_rebate=to_decimal(rebate_data["max_rebate"]),
                    )
                    if rebate_data
                    else None
                ),
                cess_rate=to_decimal(data.get("cess_rate", 0)),
                surcharge_slabs=tuple(
                    SurchargeSlab(min=to_decimal(s["min"]), rate=to_decimal(s["rate"]))
                    for s in data.get("surcharge_slabs", [])
                ),
                surcharge_rate_cap=_optional_decimal(data.get("surcharge_rate_cap")),
                deduction_caps=(
                    DeductionCaps(
                        section_80c=to_decimal(caps_data.get("section_80c", ZERO)),
                        section_80d_self=to_decimal(
                            caps_data.get("section_80d_self", ZERO)
                        ),
                        section_80d_parents=to_decimal(
                            caps_data.get("section_80d_parents", ZERO)
                        ),
                    )
                    if caps_data
                    else None
                ),
                professional_tax=parse_professional_tax(
                    data.get("professional_tax") or {}
                ),
            )

        return USTaxTable(
            **common,
            allowance_amount=to_decimal(data.get("allowance_amount", 0)),
            state_taxes=parse_state_taxes(data.get("state_taxes") or {}),
        )
    except KeyError as exc:
        raise InvalidTaxTableError(key, f"missing required key {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise InvalidTaxTableError(key, str(exc)) from exc


def parse_tax_table_set(data: dict[str, Any]) -> tuple[JurisdictionTaxTable, ...]:
    """
    Expand a set file into one table per regime.

    Raises:
        InvalidTaxTableError: if the set declares no regimes.
    """
    regimes = data.get("regimes")
    if not regimes:
        key = f"{data.get('country')}:{data.get('fiscal_year')}"
        raise InvalidTaxTableError(key, "set declares no regimes")
    return tuple(parse_tax_table(_regime_data(data, regime)) for regime in regimes)


def load_tax_table_set(path: Path) -> tuple[JurisdictionTaxTable, ...]:
    """Load and parse one set file."""
    return parse_tax_table_set(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
