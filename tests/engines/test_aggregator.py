"""Tests for the payroll aggregator."""

from decimal import Decimal

from payroll_engines.aggregator import aggregate
from payroll_kernel.domain.values import PayrollLine


def _line(name, monthly, annual=None, code=None):
    return PayrollLine(name=name, monthly_amount=Decimal(monthly), annual_amount=annual, code=code)


class TestTotals:
    """Net pay identity and employer contributions."""

    def setup_method(self):
        self.breakdown = aggregate(
            earnings=[_line("Basic", "50000"), _line("HRA", "20000")],
            component_deductions=[_line("Loan", "1000")],
            statutory_deductions=[_line("PF", "1800", code="PF")],
            employer_contributions=[_line("PF Employer", "1800", code="PF")],
            tax=_line("Income Tax", "2500"),
        )

    def test_total_earnings(self):
        assert self.breakdown.total_earnings == Decimal("70000")

    def test_total_deductions_include_tax(self):
        assert self.breakdown.total_deductions == Decimal("5300")

    def test_net_pay(self):
        assert self.breakdown.net_pay == Decimal("64700")

    def test_employer_contributions_not_deducted(self):
        assert self.breakdown.total_employer_contributions == Decimal("1800")
        assert self.breakdown.cost_to_company == Decimal("71800")
        assert self.breakdown.net_pay == (
            self.breakdown.total_earnings - self.breakdown.total_deductions
        )

    def test_deductions_order_tax_last(self):
        names = [line.name for line in self.breakdown.deductions]
        assert names == ["Loan", "PF", "Income Tax"]

    def test_annual_totals(self):
        assert self.breakdown.annual_earnings == Decimal("840000")
        assert self.breakdown.annual_net_pay == Decimal("776400")


class TestEdgeCases:
    """No tax, negative net pay, capped annual lines."""

    def test_without_tax(self):
        breakdown = aggregate([_line("Basic", "1000")], [], [], [], None)

        assert breakdown.tax is None
        assert breakdown.net_pay == Decimal("1000")

    def test_negative_net_pay_is_not_clamped(self, captured_logs):
        breakdown = aggregate(
            [_line("Basic", "1000")], [_line("Advance Recovery", "1500")], [], [], None
        )

        assert breakdown.net_pay == Decimal("-500")
        assert any(r["message"] == "negative_net_pay" for r in captured_logs())

    def test_capped_annual_line_kept(self):
        breakdown = aggregate(
            [_line("Salary", "20000")],
            [],
            [_line("Social Security", "1240", annual=Decimal("10918.2"))],
            [],
            None,
        )

        assert breakdown.annual_deductions == Decimal("10918.2")

    def test_as_dict(self):
        breakdown = aggregate(
            [_line("Basic", "1000")], [], [], [], _line("Income Tax", "100.50")
        )
        data = breakdown.as_dict()

        assert data["totals"]["net_pay"] == "899.50"
        assert data["tax"]["monthly_amount"] == "100.50"
        assert data["earnings"][0]["name"] == "Basic"
        assert data["statutory_deductions"] == []
