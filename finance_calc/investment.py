"""Investment growth projections.

Two independent methods are used. The closed-form future-value formulas give
the headline totals for the chosen compounding frequency. A month-by-month
simulation (deposit, then one month of interest at ``annual_rate / 12``)
gives the shape of the growth curve. The two disagree slightly because they
assume different compounding, so the simulated interest of every period is
rescaled by a single factor that makes the last period land exactly on the
closed-form totals.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Tuple

from .data_models import InvestmentPeriod, InvestmentResult, InvestmentTerms
from .errors import InvariantViolation
from .utils import MONTHS_PER_YEAR, ZERO, Number, percent_to_fraction, round_money, to_decimal
from .validation import validate_investment_terms

logger = logging.getLogger(__name__)

MONTHLY = "monthly"
YEARLY = "yearly"
BREAKDOWN_FREQUENCIES = (MONTHLY, YEARLY)


def _split_months(years: Decimal, periods_per_year: int) -> Tuple[int, int, int]:
    """Return ``(whole_periods, leftover_months, months_per_period)`` for ``years``.

    The duration is taken to the nearest whole month.
    """
    months = int((years * MONTHS_PER_YEAR).to_integral_value())
    months_per_period = MONTHS_PER_YEAR // periods_per_year
    whole, leftover = divmod(months, months_per_period)
    return whole, leftover, months_per_period


def future_value_principal(principal: Number, annual_rate: Number, periods_per_year: int, years: Number) -> Decimal:
    """Future value of a single deposit: ``P * (1 + r/n) ** (n*t)``.

    ``annual_rate`` is a fraction (``0.075`` for 7.5 %). Only whole
    compounding periods compound; months left over after the last full
    period earn simple interest at ``r/n`` pro rata.

    >>> future_value_principal(10000, Decimal("0.075"), 1, 5)
    Decimal('14356.29')
    """
    principal = to_decimal(principal)
    years = to_decimal(years)
    if principal <= 0 or years <= 0:
        return round_money(ZERO)
    rate = to_decimal(annual_rate)
    if rate == 0:
        return principal
    period_rate = rate / periods_per_year
    whole, leftover, months_per_period = _split_months(years, periods_per_year)
    grown = principal * (1 + period_rate) ** whole
    return round_money(grown * (1 + period_rate * leftover / months_per_period))


def future_value_contributions(
    monthly_contribution: Number, annual_rate: Number, periods_per_year: int, years: Number
) -> Decimal:
    """Future value of a stream of monthly deposits.

    Deposits are grouped into the compounding period (three months' worth per
    quarter, twelve per year) and treated as an ordinary annuity over the
    whole periods::

        FV = PMT * ((1 + r/n) ** k - 1) / (r/n)

    Months after the last full period earn simple interest at ``r/n`` pro
    rata, both on that value and on the deposits made during them. With a
    zero rate this is just the sum of all deposits.
    """
    contribution = to_decimal(monthly_contribution)
    years = to_decimal(years)
    if contribution <= 0 or years <= 0:
        return round_money(ZERO)
    rate = to_decimal(annual_rate)
    if rate == 0:
        return round_money(contribution * MONTHS_PER_YEAR * years)
    period_rate = rate / periods_per_year
    whole, leftover, months_per_period = _split_months(years, periods_per_year)
    period_payment = contribution * months_per_period
    value = period_payment * (((1 + period_rate) ** whole - 1) / period_rate)
    if leftover:
        monthly_simple = period_rate / months_per_period
        # deposit k of the leftover months earns interest for (leftover - k) months
        value = value * (1 + monthly_simple * leftover)
        value += contribution * leftover + contribution * monthly_simple * leftover * (leftover - 1) / 2
    return round_money(value)


def closed_form_totals(terms: InvestmentTerms) -> Tuple[Decimal, Decimal, Decimal]:
    """Return ``(total_invested, total_interest, final_value)`` for ``terms``."""
    initial = to_decimal(terms.initial_amount)
    contribution = to_decimal(terms.monthly_contribution)
    annual_rate = percent_to_fraction(terms.annual_rate)
    periods_per_year = terms.compounding.periods_per_year
    years = Decimal(terms.duration_months) / MONTHS_PER_YEAR

    fv_principal = future_value_principal(initial, annual_rate, periods_per_year, years)
    fv_contributions = future_value_contributions(contribution, annual_rate, periods_per_year, years)

    total_invested = round_money(initial + contribution * terms.duration_months)
    final_value = round_money(fv_principal + fv_contributions)
    total_interest = round_money(final_value - total_invested)
    return total_invested, total_interest, final_value


def simulate_breakdown(terms: InvestmentTerms, frequency: str = MONTHLY) -> Tuple[InvestmentPeriod, ...]:
    """Period-by-period growth of ``terms``, reconciled with the closed form.

    ``frequency`` selects one row per month or one per year. In yearly mode a
    duration that is not a whole number of years gets a final partial-year
    row at its last month, so the breakdown always ends at the full duration.
    """
    validate_investment_terms(terms)
    if frequency not in BREAKDOWN_FREQUENCIES:
        raise ValueError(f"Breakdown frequency must be one of {', '.join(BREAKDOWN_FREQUENCIES)}")
    step = MONTHS_PER_YEAR if frequency == YEARLY else 1

    contribution = to_decimal(terms.monthly_contribution)
    monthly_rate = percent_to_fraction(terms.annual_rate) / MONTHS_PER_YEAR
    balance = to_decimal(terms.initial_amount)
    contributed = balance

    simulated: List[Tuple[int, Decimal, Decimal]] = []
    for month in range(1, terms.duration_months + 1):
        balance += contribution
        balance += balance * monthly_rate
        contributed += contribution
        if month % step == 0 or month == terms.duration_months:
            simulated.append((month, contributed, balance - contributed))

    _, closed_interest, _ = closed_form_totals(terms)
    simulated_interest = simulated[-1][2]
    if simulated_interest == 0:
        if closed_interest != 0:
            raise InvariantViolation("Simulation earned no interest but the closed form did")
        factor = Decimal(1)
    else:
        factor = closed_interest / simulated_interest
    if factor < 0:
        raise InvariantViolation(
            f"Closed-form interest {closed_interest} and simulated interest {simulated_interest} disagree in sign"
        )
    logger.debug("Rescaling simulated interest %s by %s", simulated_interest, factor)

    periods = []
    for index, (month, contributed_so_far, interest) in enumerate(simulated, start=1):
        contributed_so_far = round_money(contributed_so_far)
        interest = round_money(interest * factor)
        periods.append(
            InvestmentPeriod(
                period=index,
                month=month,
                contributed=contributed_so_far,
                interest=interest,
                balance=contributed_so_far + interest,
            )
        )
    if periods[-1].interest != closed_interest:
        raise InvariantViolation(
            f"Breakdown interest {periods[-1].interest} does not match closed form {closed_interest}"
        )
    return tuple(periods)


def project(terms: InvestmentTerms, frequency: str = MONTHLY) -> InvestmentResult:
    """Closed-form totals plus the reconciled breakdown for ``terms``."""
    periods = simulate_breakdown(terms, frequency)
    total_invested, total_interest, final_value = closed_form_totals(terms)
    logger.debug(
        "Investment of %s grows to %s over %d months",
        total_invested,
        final_value,
        terms.duration_months,
    )
    return InvestmentResult(
        total_contributed=total_invested,
        total_interest=total_interest,
        final_balance=final_value,
        periods=periods,
    )
