"""
Components -- Salary component resolver.

Responsibility:
    Turns a salary structure (an ordered list of salary components) and a
    target monthly gross into concrete monthly earning and deduction lines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports payroll_kernel only.

Invariants enforced:
    - Two-pass evaluation: FIXED and PERCENTAGE_OF_GROSS earnings are
      resolved first, then PERCENTAGE_OF_BASIC earnings against the basic
      found in the first pass.  Nesting never goes deeper than one level.
    - The basic component is the FIRST earning whose name contains
      "basic" (case-insensitive).  No basic component means basic = 0.
    - Deduction PERCENTAGE_OF_GROSS uses the resolved total earnings, not
      the target gross.
    - Output lines keep input order.  Nothing is rounded here.

Failure modes:
    - MalformedComponentError for an unrecognized component type or
      calculation type (raised at construction, never defaulted).

Usage:
    from payroll_engines.components import SalaryComponent, resolve_components

    resolved = resolve_components(
        [
            SalaryComponent.from_dict({"name": "Basic", "type": "EARNING",
                "calculationType": "PERCENTAGE_OF_GROSS", "value": 50}),
            SalaryComponent.from_dict({"name": "HRA", "type": "EARNING",
                "calculationType": "PERCENTAGE_OF_BASIC", "value": 40}),
        ],
        monthly_gross=Decimal("100000"),
    )
    resolved.basic           # Decimal("50000")
    resolved.total_earnings  # Decimal("70000")
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO, PayrollLine, percent_of, to_decimal
from payroll_kernel.exceptions import MalformedComponentError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.components")

BASIC_MARKER = "basic"


class ComponentType(str, Enum):
    """Whether a component adds to or subtracts from pay."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"


class CalculationType(str, Enum):
    """How a component's value is turned into an amount."""

    FIXED = "FIXED"
    PERCENTAGE_OF_BASIC = "PERCENTAGE_OF_BASIC"
    PERCENTAGE_OF_GROSS = "PERCENTAGE_OF_GROSS"


@dataclass(frozen=True)
class SalaryComponent:
    """
    One line of a salary structure.

    ``value`` is a currency amount for FIXED components and a percentage
    (``50`` = 50%) otherwise.  String ``type`` / ``calculation_type``
    values are coerced to their enums.
    """

    name: str
    type: ComponentType
    calculation_type: CalculationType
    value: Decimal
    is_taxable: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "type", _coerce(ComponentType, self.type, self.name, "type")
        )
        object.__setattr__(
            self,
            "calculation_type",
            _coerce(
                CalculationType, self.calculation_type, self.name, "calculation_type"
            ),
        )
        try:
            object.__setattr__(self, "value", to_decimal(self.value))
        except ValueError as exc:
            raise MalformedComponentError(self.name, "value", self.value) from exc

    @property
    def is_earning(self) -> bool:
        return self.type == ComponentType.EARNING

    @property
    def is_basic(self) -> bool:
        return self.is_earning and BASIC_MARKER in self.name.lower()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SalaryComponent:
        """
        Build from a payroll-module record.

        Accepts camelCase (``calculationType``, ``isTaxable``) or
        snake_case keys.
        """
        name = data.get("name", "")
        calc = data.get("calculation_type", data.get("calculationType"))
        taxable = data.get("is_taxable", data.get("isTaxable", True))
        return cls(
            name=name,
            type=data.get("type"),
            calculation_type=calc,
            value=data.get("value", 0),
            is_taxable=bool(taxable),
        )


def _coerce(enum_cls: type[Enum], raw: Any, name: str, field_name: str):
    if isinstance(raw, enum_cls):
        return raw
    try:
        return enum_cls(str(raw).upper())
    except ValueError as exc:
        raise MalformedComponentError(name, field_name, raw) from exc


@dataclass(frozen=True)
class ResolvedComponents:
    """
    Result of resolving a salary structure.

    Guarantees:
        - ``earnings`` and ``deductions`` follow input order.
        - ``total_earnings`` is the sum of ``earnings``.
    """

    earnings: tuple[PayrollLine, ...]
    deductions: tuple[PayrollLine, ...]
    basic: Decimal
    total_earnings: Decimal
    total_deductions: Decimal

    @property
    def taxable_earnings(self) -> Decimal:
        """Monthly sum of earnings flagged taxable."""
        return sum(
            (line.monthly_amount for line in self.earnings if line.is_taxable),
            ZERO,
        )


def _first_pass_amount(component: SalaryComponent, monthly_gross: Decimal) -> Decimal | None:
    if component.calculation_type == CalculationType.FIXED:
        return component.value
    if component.calculation_type == CalculationType.PERCENTAGE_OF_GROSS:
        return percent_of(monthly_gross, component.value)
    return None


def _line(component: SalaryComponent, amount: Decimal) -> PayrollLine:
    return PayrollLine(
        name=component.name,
        monthly_amount=amount,
        is_taxable=component.is_taxable,
        metadata={"calculation_type": component.calculation_type.value},
    )


@traced_engine("components", "1.0", fingerprint_fields=("components", "monthly_gross"))
def resolve_components(
    components: Iterable[SalaryComponent],
    monthly_gross: Decimal,
) -> ResolvedComponents:
    """
    Resolve every component to a monthly amount.

    Args:
        components: Salary structure, in display order.
        monthly_gross: Target monthly gross (usually annual CTC / 12).

    Returns:
        ResolvedComponents with earning and deduction lines.
    """
    t0 = time.monotonic()
    components = tuple(components)
    monthly_gross = to_decimal(monthly_gross)
    logger.info("component_resolution_started", extra={
        "component_count": len(components),
        "monthly_gross": str(monthly_gross),
    })

    earning_components = [c for c in components if c.is_earning]

    # Pass 1: fixed and gross-relative earnings, and locate basic
    first_pass: dict[int, Decimal] = {}
    basic_index: int | None = None
    for i, component in enumerate(earning_components):
        amount = _first_pass_amount(component, monthly_gross)
        if amount is not None:
            first_pass[i] = amount
        if basic_index is None and component.is_basic:
            basic_index = i

    # A basic that is itself a percentage of basic cannot resolve
    basic = first_pass.get(basic_index, ZERO) if basic_index is not None else ZERO
    if basic_index is None:
        logger.debug("basic_component_not_found", extra={})

    # Pass 2: basic-relative earnings
    earnings: list[PayrollLine] = []
    for i, component in enumerate(earning_components):
        if i in first_pass:
            amount = first_pass[i]
        elif i == basic_index:
            amount = ZERO
        else:
            amount = percent_of(basic, component.value)
        earnings.append(_line(component, amount))

    total_earnings = sum((line.monthly_amount for line in earnings), ZERO)

    deductions: list[PayrollLine] = []
    for component in components:
        if component.is_earning:
            continue
        if component.calculation_type == CalculationType.FIXED:
            amount = component.value
        elif component.calculation_type == CalculationType.PERCENTAGE_OF_BASIC:
            amount = percent_of(basic, component.value)
        else:
            amount = percent_of(total_earnings, component.value)
        deductions.append(_line(component, amount))

    total_deductions = sum((line.monthly_amount for line in deductions), ZERO)

    result = ResolvedComponents(
        earnings=tuple(earnings),
        deductions=tuple(deductions),
        basic=basic,
        total_earnings=total_earnings,
        total_deductions=total_deductions,
    )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("component_resolution_completed", extra={
        "basic": str(basic),
        "total_earnings": str(total_earnings),
        "total_deductions": str(total_deductions),
        "earning_count": len(earnings),
        "deduction_count": len(deductions),
        "duration_ms": duration_ms,
    })
    return result
