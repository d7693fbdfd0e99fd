"""
Tests for load-time table validation.

Bracket problems raise InvalidBracketTableError listing every problem;
other structural problems are collected in ConfigValidationResult.
"""

from dataclasses import replace
from decimal import Decimal
from types import MappingProxyType

import pytest

from payroll_config.schema import StateIncomeTax, StateTaxKind, TaxBracket
from payroll_config.validator import (
    check_brackets,
    raise_for_result,
    validate_brackets,
    validate_tax_table,
)
from payroll_kernel.exceptions import InvalidBracketTableError, InvalidTaxTableError


def _b(lo, hi, rate):
    return TaxBracket(Decimal(lo), None if hi is None else Decimal(hi), Decimal(rate))


class TestCheckBrackets:
    """Ascending, contiguous, from zero, only the last unbounded."""

    def test_valid_schedule(self):
        assert check_brackets((_b("0", "100", "0"), _b("100", None, "10"))) == []

    def test_empty(self):
        assert check_brackets(()) == ["brackets: schedule is empty"]

    def test_not_starting_at_zero(self):
        problems = check_brackets((_b("1", "100", "0"), _b("100", None, "10")))

        assert any("not 0" in p for p in problems)

    def test_gap(self):
        problems = check_brackets((_b("0", "100", "0"), _b("150", None, "10")))

        assert any("gap or overlap" in p for p in problems)

    def test_overlap(self):
        problems = check_brackets((_b("0", "100", "0"), _b("90", None, "10")))

        assert any("gap or overlap" in p for p in problems)

    def test_unbounded_in_the_middle(self):
        problems = check_brackets(
            (_b("0", None, "0"), _b("100", "200", "10"))
        )

        assert any("not the last" in p for p in problems)
        assert any("must be unbounded" in p for p in problems)

    def test_negative_rate(self):
        problems = check_brackets((_b("0", None, "-5"),))

        assert problems == ["brackets[0]: negative rate -5"]

    def test_inverted_bracket(self):
        problems = check_brackets((_b("0", "0", "0"), _b("0", None, "10")))

        assert any("not above min" in p for p in problems)


class TestValidateBrackets:
    """Table-level bracket validation."""

    def test_bundled_tables_pass(self, india_new, india_old, us_single):
        for table in (india_new, india_old, us_single):
            validate_brackets(table)

    def test_raises_with_all_problems(self, india_new):
        broken = replace(
            india_new, brackets=(_b("10", "100", "-1"), _b("150", "200", "10"))
        )

        with pytest.raises(InvalidBracketTableError) as exc_info:
            validate_brackets(broken)

        assert exc_info.value.code == "INVALID_BRACKET_TABLE"
        assert exc_info.value.table_key == "IN:2025:NEW"
        assert len(exc_info.value.problems) == 4

    def test_state_schedules_checked(self, us_single):
        states = dict(us_single.state_taxes)
        states["CA"] = StateIncomeTax(
            kind=StateTaxKind.BRACKET, brackets=(_b("0", "100", "1"),)
        )
        broken = replace(us_single, state_taxes=MappingProxyType(states))

        with pytest.raises(InvalidBracketTableError) as exc_info:
            validate_brackets(broken)

        assert exc_info.value.problems == ["state CA: last bracket must be unbounded"]


class TestValidateTaxTable:
    """Non-bracket structure."""

    def test_bundled_tables_valid(self, india_new, us_single):
        assert validate_tax_table(india_new).is_valid
        assert validate_tax_table(us_single).is_valid

    def test_duplicate_contribution_code(self, india_new):
        pf = india_new.contribution("PF")
        broken = replace(india_new, statutory_contributions=(pf, pf))

        result = validate_tax_table(broken)

        assert not result.is_valid
        assert "Duplicate statutory contribution: PF" in result.errors

    def test_negative_cess(self, india_new):
        result = validate_tax_table(replace(india_new, cess_rate=Decimal("-1")))

        assert not result.is_valid

    def test_dates_reversed(self, us_single):
        broken = replace(us_single, effective_to=us_single.effective_from.replace(year=2024))

        assert not validate_tax_table(broken).is_valid

    def test_half_specified_surtax_is_warning(self, us_single):
        medicare = replace(us_single.contribution("MEDICARE"), additional_threshold=None)
        table = replace(us_single, statutory_contributions=(medicare,))

        result = validate_tax_table(table)

        assert result.is_valid
        assert len(result.warnings) == 1

    def test_raise_for_result(self, india_new):
        broken = replace(india_new, standard_deduction=Decimal("-1"))
        result = validate_tax_table(broken)

        with pytest.raises(InvalidTaxTableError) as exc_info:
            raise_for_result(broken, result)

        assert "negative standard deduction" in exc_info.value.reason
