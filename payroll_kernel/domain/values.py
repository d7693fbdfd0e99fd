"""
Values -- Immutable payroll value objects and Decimal helpers.

Responsibility:
    Provides the PayrollLine value object (one named amount with its
    monthly and annual figures) and the small set of Decimal helpers every
    engine uses: coercion from config/JSON scalars, percentage application
    and the single money-rounding rule.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines, config and services. No outward dependencies.

Invariants enforced:
    - Decimal-only arithmetic: ``to_decimal`` converts floats through
      ``str`` so binary float noise never enters a computation.
    - Rounding happens in one place (``round_money``), ROUND_HALF_UP to
      two places, and only where a caller asks for it.

Failure modes:
    - ValueError from ``to_decimal`` for values that are not numeric.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
_TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an int, str, float or Decimal to Decimal.

    Floats go through ``str`` so ``0.75`` becomes ``Decimal("0.75")``
    rather than its binary expansion.

    Raises:
        ValueError: if the value is not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot convert boolean {value!r} to Decimal")
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Cannot convert {value!r} to Decimal") from exc


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Apply a percentage (e.g. 12 for 12%) to an amount, unrounded."""
    return amount * percent / HUNDRED


def round_money(amount: Decimal) -> Decimal:
    """Round a money amount to two places, half up."""
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def annualize(monthly: Decimal) -> Decimal:
    """Monthly figure times twelve."""
    return monthly * MONTHS_PER_YEAR


@dataclass(frozen=True)
class PayrollLine:
    """
    One named amount on a payroll breakdown.

    Contract:
        ``annual_amount`` defaults to ``monthly_amount * 12``. Lines whose
        annual figure is capped (annual wage-base contributions) pass the
        capped annual amount explicitly.

    Guarantees:
        - Immutable.
        - Amounts are Decimal; never rounded here.
    """

    name: str
    monthly_amount: Decimal
    annual_amount: Decimal | None = None
    code: str | None = None
    is_taxable: bool | None = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "monthly_amount", to_decimal(self.monthly_amount))
        if self.annual_amount is None:
            object.__setattr__(self, "annual_amount", annualize(self.monthly_amount))
        else:
            object.__setattr__(self, "annual_amount", to_decimal(self.annual_amount))

    def as_dict(self) -> dict[str, Any]:
        """Serializable view (amounts as strings)."""
        data: dict[str, Any] = {
            "name": self.name,
            "monthly_amount": str(self.monthly_amount),
            "annual_amount": str(self.annual_amount),
        }
        if self.code is not None:
            data["code"] = self.code
        if self.is_taxable is not None:
            data["is_taxable"] = self.is_taxable
        return data


def sum_monthly(lines: tuple[PayrollLine, ...] | list[PayrollLine]) -> Decimal:
    """Sum of monthly amounts (ZERO for no lines)."""
    return sum((line.monthly_amount for line in lines), ZERO)


def sum_annual(lines: tuple[PayrollLine, ...] | list[PayrollLine]) -> Decimal:
    """Sum of annual amounts (ZERO for no lines)."""
    return sum((line.annual_amount for line in lines), ZERO)
