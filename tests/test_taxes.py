"""
Tests for the payroll withholding calculator.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from finance_calc.data_models import Periodicity, TaxBracket, TaxInput
from finance_calc.errors import TaxTableError, ValidationError
from finance_calc.taxes import TaxWithholdingCalculator, evaluate_bracket, marginal_rate

MINIMUM_WAGE = Decimal("1750905")
TAX_UNIT = Decimal("52374")


def concepts(result):
    return [item.concept for item in result.line_items]


class TestBrackets:
    """Test the progressive withholding table."""

    def test_exempt_bracket(self, tables_2026):
        brackets = tables_2026.withholding_brackets
        assert evaluate_bracket(0, brackets) == 0
        assert evaluate_bracket(95, brackets) == 0
        assert marginal_rate(95, brackets) == 0

    def test_just_above_exempt_bracket(self, tables_2026):
        assert evaluate_bracket(Decimal("95.01"), tables_2026.withholding_brackets) > 0

    def test_accumulated_tax_carried(self, tables_2026):
        brackets = tables_2026.withholding_brackets
        assert evaluate_bracket(100, brackets) == Decimal("0.95")
        assert evaluate_bracket(200, brackets) == Decimal("24.45")
        assert evaluate_bracket(3000, brackets) == Decimal("1042.75")

    def test_continuous_at_bracket_edges(self, tables_2026):
        brackets = tables_2026.withholding_brackets
        for lower, upper in zip(brackets, brackets[1:]):
            edge = lower.upper_bound
            assert evaluate_bracket(edge, brackets) == upper.accumulated_tax
            assert evaluate_bracket(edge + Decimal("0.01"), brackets) >= evaluate_bracket(edge, brackets)

    def test_monotonic(self, tables_2026):
        brackets = tables_2026.withholding_brackets
        points = sorted(
            {Decimal(step) for step in range(0, 3000, 5)}
            | {b.upper_bound + delta for b in brackets[:-1] for delta in (Decimal("-0.01"), 0, Decimal("0.01"))}
        )
        taxes = [evaluate_bracket(point, brackets) for point in points]
        assert all(later >= earlier for earlier, later in zip(taxes, taxes[1:]))

    def test_marginal_rate(self, tables_2026):
        brackets = tables_2026.withholding_brackets
        assert marginal_rate(100, brackets) == Decimal("0.19")
        assert marginal_rate(5000, brackets) == Decimal("0.39")

    def test_bounded_last_bracket_extends(self):
        brackets = (TaxBracket(Decimal("10"), Decimal("0"), Decimal("0")), TaxBracket(Decimal("20"), Decimal("0.5"), Decimal("0")))
        assert evaluate_bracket(30, brackets) == Decimal("10.0")

    def test_empty_table(self):
        with pytest.raises(TaxTableError):
            evaluate_bracket(100, ())


class TestDeductions:
    def test_allowance_threshold(self, calculator):
        assert calculator.non_taxable_allowance(2 * MINIMUM_WAGE) == Decimal("249095.00")
        assert calculator.non_taxable_allowance(2 * MINIMUM_WAGE + Decimal("0.01")) == 0

    def test_solidarity_threshold(self, calculator):
        assert calculator.solidarity_fund_contribution(4 * MINIMUM_WAGE - Decimal("0.01")) == 0
        assert calculator.solidarity_fund_contribution(4 * MINIMUM_WAGE) == Decimal("70036.20")

    def test_solidarity_brackets(self, calculator):
        assert calculator.solidarity_fund_contribution(17 * MINIMUM_WAGE) == Decimal("357184.62")
        assert calculator.solidarity_fund_contribution(Decimal("40000000")) == Decimal("800000.00")

    def test_dependents(self, calculator):
        assert calculator.dependent_deduction(2) == Decimal("628488.00")
        assert calculator.dependent_deduction(0) == 0

    def test_prepaid_health_cap(self, calculator):
        assert calculator.prepaid_health_deduction(Decimal("300000")) == Decimal("300000.00")
        assert calculator.prepaid_health_deduction(Decimal("2000000")) == 16 * TAX_UNIT


class TestCalculate:
    """Test full payroll breakdowns."""

    def test_minimum_wage(self, calculator):
        result = calculator.calculate(TaxInput(gross_salary=MINIMUM_WAGE))

        assert result.allowance == Decimal("249095.00")
        assert result.pension == Decimal("70036.20")
        assert result.health == Decimal("70036.20")
        assert result.solidarity == 0
        assert result.taxable_base == Decimal("1610832.60")
        assert result.withholding == 0
        assert result.gross_monthly == Decimal("2000000.00")
        assert result.net_monthly == Decimal("1859927.60")
        assert result.net_annual == Decimal("22319131.20")
        assert result.effective_rate == 0
        assert result.marginal_rate == 0
        assert concepts(result) == ["base_salary", "transport_allowance", "total_earned", "contribution_base", "pension", "health"]

    def test_high_salary(self, calculator):
        result = calculator.calculate(TaxInput(gross_salary=Decimal("20000000")))

        assert result.allowance == 0
        assert result.solidarity == Decimal("200000.00")
        assert result.taxable_base == Decimal("18200000.00")
        assert result.withholding == Decimal("3443600.30")
        assert result.total_deductions == Decimal("5243600.30")
        assert result.net_monthly == Decimal("14756399.70")
        assert result.effective_rate == Decimal("17.22")
        assert result.marginal_rate == Decimal("28.00")
        assert concepts(result) == ["base_salary", "contribution_base", "pension", "health", "solidarity_fund", "withholding"]

    def test_net_pay_identity(self, calculator):
        result = calculator.calculate(TaxInput(gross_salary=Decimal("9500000"), dependents=1))
        assert result.net_monthly == (
            result.base_salary - result.pension - result.health - result.solidarity - result.withholding + result.allowance
        )
        assert result.gross_annual == result.gross_monthly * 12

    def test_line_items_signed(self, calculator):
        result = calculator.calculate(TaxInput(gross_salary=Decimal("20000000")))
        for item in result.line_items:
            assert (item.amount < 0) == item.is_deduction
        assert result.line_items[-1].amount == -result.withholding

    def test_optional_deductions(self, calculator):
        result = calculator.calculate(
            TaxInput(
                gross_salary=Decimal("20000000"),
                dependents=2,
                voluntary_pension=Decimal("500000"),
                prepaid_health=Decimal("2000000"),
            )
        )
        assert result.dependent_deduction == Decimal("628488.00")
        assert result.prepaid_health == Decimal("837984.00")
        assert result.voluntary_pension == Decimal("500000.00")
        assert result.taxable_base == Decimal("16233528.00")
        assert concepts(result) == [
            "base_salary",
            "contribution_base",
            "pension",
            "health",
            "prepaid_health",
            "voluntary_pension",
            "dependents",
            "solidarity_fund",
            "withholding",
        ]

    def test_deductions_lower_withholding(self, calculator):
        plain = calculator.calculate(TaxInput(gross_salary=Decimal("20000000")))
        deducted = calculator.calculate(TaxInput(gross_salary=Decimal("20000000"), dependents=2))
        assert deducted.withholding < plain.withholding
        assert deducted.net_monthly > plain.net_monthly

    def test_annual_periodicity(self, calculator):
        annual = calculator.calculate(TaxInput(gross_salary=Decimal("24000000"), periodicity=Periodicity.ANNUAL))
        monthly = calculator.calculate(TaxInput(gross_salary=Decimal("2000000")))
        assert annual.base_salary == Decimal("2000000.00")
        assert annual == monthly

    def test_injected_tables(self, tables_2026):
        flat = replace(
            tables_2026,
            withholding_brackets=(TaxBracket(Decimal("0"), Decimal("0"), Decimal("0")), TaxBracket(None, Decimal("0.1"), Decimal("0"))),
        )
        result = TaxWithholdingCalculator(flat).calculate(TaxInput(gross_salary=MINIMUM_WAGE))
        assert result.withholding == Decimal("161083.26")
        assert result.marginal_rate == Decimal("10.00")


class TestValidation:
    def test_invalid_input(self, calculator):
        with pytest.raises(ValidationError) as excinfo:
            calculator.calculate(
                TaxInput(gross_salary=Decimal("0"), dependents=5, voluntary_pension=Decimal("-1"))
            )
        assert set(excinfo.value.errors) == {"gross_salary", "dependents", "voluntary_pension"}

    def test_negative_dependents(self, calculator):
        with pytest.raises(ValidationError) as excinfo:
            calculator.calculate(TaxInput(gross_salary=MINIMUM_WAGE, dependents=-1))
        assert "dependents" in excinfo.value.errors
