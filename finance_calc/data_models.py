"""Data models for the finance calculator.

This module defines dataclasses representing the inputs and results of the
three calculators: loans (terms, schedule entries, prepayments), investments
(terms and per-period growth) and payroll withholding (fiscal tables, salary
input and the resulting breakdown). Every record is frozen: engines build new
records for each call and never mutate one they have returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class PrepaymentStrategy(str, Enum):
    """How an extra principal payment changes the rest of the loan."""

    REDUCE_TERM = "reduce-term"  # keep the installment, finish earlier
    REDUCE_PAYMENT = "reduce-payment"  # keep the term, lower the installment


class CompoundingFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return {"monthly": 12, "quarterly": 4, "annually": 1}[self.value]


class Periodicity(str, Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


@dataclass(frozen=True)
class LoanTerms:
    """Parameters of a fixed-rate, fixed-installment loan.

    Attributes
    ----------
    principal: Decimal
        Amount borrowed.
    annual_rate: Decimal
        Nominal annual interest rate in percent (``5`` means 5 %).
    term_months: int
        Number of monthly installments.
    """

    principal: Decimal
    annual_rate: Decimal
    term_months: int


@dataclass(frozen=True)
class ScheduleEntry:
    """An entry in the amortization schedule.

    ``payment`` is the regular installment paid that month (principal plus
    interest). ``extra_payment`` is any prepayment applied in the same month
    and is not part of ``payment``.
    """

    period: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    extra_payment: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class Schedule:
    """A complete amortization schedule with its totals."""

    entries: Tuple[ScheduleEntry, ...]
    fixed_payment: Decimal
    total_principal: Decimal
    total_interest: Decimal
    total_paid: Decimal
    total_extra_payments: Decimal
    term_months: int


@dataclass(frozen=True)
class Prepayment:
    """Represents an extra payment applied to the principal.

    Attributes
    ----------
    month: int
        The 1-based schedule month in which the prepayment is made.
    amount: Decimal
        The amount of additional money applied to the principal.
    strategy: PrepaymentStrategy
        Whether the loan keeps its installment and ends earlier, or keeps its
        term and re-amortizes the remaining balance.
    """

    month: int
    amount: Decimal
    strategy: PrepaymentStrategy


@dataclass(frozen=True)
class PrepaymentResult:
    """Comparison of a loan with and without prepayments.

    Exactly one of ``term_reduction`` and ``new_monthly_payment`` is set when
    prepayments were applied; both are ``None`` when none were supplied.
    """

    base: Schedule
    adjusted: Schedule
    prepayments: Tuple[Prepayment, ...]
    interest_savings: Decimal
    interest_savings_percent: Decimal
    term_reduction: Optional[int]
    new_monthly_payment: Optional[Decimal]
    ignored_prepayments: Tuple[Prepayment, ...] = ()


@dataclass(frozen=True)
class InvestmentTerms:
    """Parameters of a compound-growth projection.

    ``annual_rate`` is a nominal percentage and ``monthly_contribution`` is
    deposited at the end of every month.
    """

    initial_amount: Decimal
    monthly_contribution: Decimal
    duration_months: int
    annual_rate: Decimal
    compounding: CompoundingFrequency = CompoundingFrequency.MONTHLY


@dataclass(frozen=True)
class InvestmentPeriod:
    period: int
    month: int
    contributed: Decimal
    interest: Decimal
    balance: Decimal


@dataclass(frozen=True)
class InvestmentResult:
    total_contributed: Decimal
    total_interest: Decimal
    final_balance: Decimal
    periods: Tuple[InvestmentPeriod, ...]


@dataclass(frozen=True)
class TaxBracket:
    """A row of a progressive withholding table, expressed in tax units.

    ``upper_bound`` of ``None`` marks the open-ended top bracket. The lower
    edge of a bracket is the upper bound of the previous one.
    """

    upper_bound: Optional[Decimal]
    marginal_rate: Decimal
    accumulated_tax: Decimal


@dataclass(frozen=True)
class SolidarityBracket:
    """Solidarity-fund rate for salaries up to ``upper_multiple`` minimum wages."""

    upper_multiple: Optional[Decimal]
    rate: Decimal


@dataclass(frozen=True)
class TaxTables:
    """Constant tables for one fiscal year.

    Amounts are in local currency unless the name says otherwise; ``*_units``
    values are expressed in tax units (``tax_unit_value`` each).
    """

    fiscal_year: int
    tax_unit_value: Decimal
    minimum_wage: Decimal
    allowance_amount: Decimal
    allowance_max_wage_multiple: Decimal
    pension_rate: Decimal
    health_rate: Decimal
    solidarity_min_wage_multiple: Decimal
    solidarity_brackets: Tuple[SolidarityBracket, ...]
    withholding_brackets: Tuple[TaxBracket, ...]
    prepaid_health_cap_units: Decimal
    dependent_deduction_units: Decimal


@dataclass(frozen=True)
class TaxInput:
    """Salary figures supplied by the user.

    ``voluntary_pension`` and ``prepaid_health`` are monthly amounts that
    reduce the taxable base.
    """

    gross_salary: Decimal
    periodicity: Periodicity = Periodicity.MONTHLY
    dependents: int = 0
    voluntary_pension: Decimal = Decimal("0")
    prepaid_health: Decimal = Decimal("0")


@dataclass(frozen=True)
class LineItem:
    concept: str
    label: str
    amount: Decimal
    is_deduction: bool


@dataclass(frozen=True)
class TaxResult:
    """Monthly payroll breakdown; annual figures are twelve times monthly."""

    base_salary: Decimal
    allowance: Decimal
    gross_monthly: Decimal
    gross_annual: Decimal
    pension: Decimal
    health: Decimal
    solidarity: Decimal
    prepaid_health: Decimal
    voluntary_pension: Decimal
    dependent_deduction: Decimal
    taxable_base: Decimal
    withholding: Decimal
    total_deductions: Decimal
    net_monthly: Decimal
    net_annual: Decimal
    effective_rate: Decimal
    marginal_rate: Decimal
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)
