"""Payroll withholding calculator.

Computes the monthly payroll breakdown of an employee: mandatory pension and
health contributions, the solidarity-fund surcharge, the transport allowance
granted to low salaries and the progressive income-tax withholding. All
constants come from an injected ``TaxTables`` instance, so tables for several
fiscal years can be used side by side.

Key rules:

* Contributions are charged on the base salary only, never on the allowance.
* The allowance is paid only when the base salary is at or below a multiple
  of the minimum wage, and it is not taxed.
* Withholding is computed in tax units from the progressive table and
  converted back to currency.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .data_models import LineItem, Periodicity, TaxBracket, TaxInput, TaxResult, TaxTables
from .errors import TaxTableError
from .tax_tables import load_tax_tables
from .utils import HUNDRED, MONTHS_PER_YEAR, ZERO, Number, round_money, safe_percent, to_decimal
from .validation import validate_tax_input

logger = logging.getLogger(__name__)


def _find_bracket(base_units: Decimal, brackets: Sequence[TaxBracket]) -> Optional[Tuple[TaxBracket, Decimal]]:
    """Return the bracket containing ``base_units`` and its lower edge.

    ``None`` means the base is at or below the first bracket's threshold. A
    base above a bounded last bracket is charged at that last bracket.
    """
    if not brackets:
        raise TaxTableError("Withholding table has no brackets")
    first = brackets[0]
    if first.upper_bound is None or base_units <= first.upper_bound:
        return None
    lower = previous_lower = first.upper_bound
    for bracket in brackets[1:]:
        if bracket.upper_bound is None or base_units <= bracket.upper_bound:
            return bracket, lower
        previous_lower, lower = lower, bracket.upper_bound
    return brackets[-1], previous_lower


def evaluate_bracket(base_units: Number, brackets: Sequence[TaxBracket]) -> Decimal:
    """Tax, in tax units, owed on ``base_units`` under the progressive table."""
    base_units = to_decimal(base_units)
    found = _find_bracket(base_units, brackets)
    if found is None:
        return ZERO
    bracket, lower = found
    return bracket.accumulated_tax + (base_units - lower) * bracket.marginal_rate


def marginal_rate(base_units: Number, brackets: Sequence[TaxBracket]) -> Decimal:
    """Marginal rate (0-1) that applies to ``base_units``."""
    found = _find_bracket(to_decimal(base_units), brackets)
    if found is None:
        return ZERO
    return found[0].marginal_rate


class TaxWithholdingCalculator:
    """Withholding and payroll deductions for one fiscal-year table."""

    def __init__(self, tables: Optional[TaxTables] = None) -> None:
        self.tables = tables if tables is not None else load_tax_tables()

    def to_units(self, amount: Decimal) -> Decimal:
        return amount / self.tables.tax_unit_value

    def evaluate_bracket(self, base_units: Number) -> Decimal:
        return evaluate_bracket(base_units, self.tables.withholding_brackets)

    def marginal_rate(self, base_units: Number) -> Decimal:
        return marginal_rate(base_units, self.tables.withholding_brackets)

    def withholding(self, taxable_base: Decimal) -> Decimal:
        """Monthly withholding in currency for a monthly taxable base."""
        if taxable_base <= 0:
            return round_money(ZERO)
        tax_units = self.evaluate_bracket(self.to_units(taxable_base))
        return round_money(tax_units * self.tables.tax_unit_value)

    def mandatory_deductions(self, base_salary: Decimal) -> Tuple[Decimal, Decimal]:
        """Employee pension and health contributions, in that order."""
        return (
            round_money(base_salary * self.tables.pension_rate),
            round_money(base_salary * self.tables.health_rate),
        )

    def solidarity_fund_contribution(self, base_salary: Decimal) -> Decimal:
        """Solidarity-fund surcharge for salaries above the minimum-wage threshold."""
        tables = self.tables
        if base_salary < tables.solidarity_min_wage_multiple * tables.minimum_wage:
            return round_money(ZERO)
        multiples = base_salary / tables.minimum_wage
        rate = tables.solidarity_brackets[-1].rate
        for bracket in tables.solidarity_brackets:
            if bracket.upper_multiple is None or multiples <= bracket.upper_multiple:
                rate = bracket.rate
                break
        return round_money(base_salary * rate)

    def non_taxable_allowance(self, base_salary: Decimal) -> Decimal:
        tables = self.tables
        if base_salary <= tables.allowance_max_wage_multiple * tables.minimum_wage:
            return round_money(tables.allowance_amount)
        return round_money(ZERO)

    def dependent_deduction(self, dependents: int) -> Decimal:
        tables = self.tables
        return round_money(max(dependents, 0) * tables.dependent_deduction_units * tables.tax_unit_value)

    def prepaid_health_deduction(self, amount: Decimal) -> Decimal:
        cap = self.tables.prepaid_health_cap_units * self.tables.tax_unit_value
        return round_money(min(amount, cap))

    def calculate(self, tax_input: TaxInput) -> TaxResult:
        """Build the full monthly payroll breakdown for ``tax_input``."""
        validate_tax_input(tax_input)
        gross = to_decimal(tax_input.gross_salary)
        if tax_input.periodicity is Periodicity.ANNUAL:
            gross = gross / MONTHS_PER_YEAR
        base_salary = round_money(gross)

        allowance = self.non_taxable_allowance(base_salary)
        pension, health = self.mandatory_deductions(base_salary)
        solidarity = self.solidarity_fund_contribution(base_salary)
        prepaid_health = self.prepaid_health_deduction(to_decimal(tax_input.prepaid_health))
        voluntary = round_money(to_decimal(tax_input.voluntary_pension))
        dependents = self.dependent_deduction(tax_input.dependents)

        taxable_base = round_money(
            max(base_salary - pension - health - solidarity - prepaid_health - voluntary - dependents, ZERO)
        )
        withholding = self.withholding(taxable_base)

        total_deductions = round_money(pension + health + solidarity + withholding)
        net_monthly = round_money(base_salary - total_deductions + allowance)
        gross_monthly = round_money(base_salary + allowance)
        rate = self.marginal_rate(self.to_units(taxable_base))
        logger.debug(
            "Salary %s: taxable base %s, withholding %s, net %s",
            base_salary,
            taxable_base,
            withholding,
            net_monthly,
        )

        return TaxResult(
            base_salary=base_salary,
            allowance=allowance,
            gross_monthly=gross_monthly,
            gross_annual=round_money(gross_monthly * MONTHS_PER_YEAR),
            pension=pension,
            health=health,
            solidarity=solidarity,
            prepaid_health=prepaid_health,
            voluntary_pension=voluntary,
            dependent_deduction=dependents,
            taxable_base=taxable_base,
            withholding=withholding,
            total_deductions=total_deductions,
            net_monthly=net_monthly,
            net_annual=round_money(net_monthly * MONTHS_PER_YEAR),
            effective_rate=safe_percent(withholding, gross_monthly),
            marginal_rate=round_money(rate * HUNDRED),
            line_items=build_line_items(
                base_salary=base_salary,
                allowance=allowance,
                pension=pension,
                health=health,
                prepaid_health=prepaid_health,
                voluntary=voluntary,
                dependents=tax_input.dependents,
                dependent_deduction=dependents,
                solidarity=solidarity,
                withholding=withholding,
            ),
        )


def build_line_items(
    base_salary: Decimal,
    allowance: Decimal,
    pension: Decimal,
    health: Decimal,
    prepaid_health: Decimal,
    voluntary: Decimal,
    dependents: int,
    dependent_deduction: Decimal,
    solidarity: Decimal,
    withholding: Decimal,
) -> Tuple[LineItem, ...]:
    """Ordered, signed lines of the payroll breakdown.

    Earnings come first and are positive; deductions follow and are negative.
    Optional lines are left out when their amount is zero, while pension and
    health are always shown.
    """
    items: List[LineItem] = [LineItem("base_salary", "Base salary", base_salary, False)]
    if allowance > 0:
        items.append(LineItem("transport_allowance", "Transport allowance", allowance, False))
        items.append(LineItem("total_earned", "Total earned", round_money(base_salary + allowance), False))
    items.append(LineItem("contribution_base", "Social security base", base_salary, False))
    items.append(LineItem("pension", "Mandatory pension", -pension, True))
    items.append(LineItem("health", "Health insurance", -health, True))
    optional = (
        ("prepaid_health", "Prepaid health plan", prepaid_health),
        ("voluntary_pension", "Voluntary pension contributions", voluntary),
        ("dependents", f"Deduction for {dependents} dependent(s)", dependent_deduction),
        ("solidarity_fund", "Pension solidarity fund", solidarity),
        ("withholding", "Income tax withholding", withholding),
    )
    for concept, label, amount in optional:
        if amount > 0:
            items.append(LineItem(concept, label, -amount, True))
    return tuple(items)
