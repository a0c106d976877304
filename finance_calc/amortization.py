"""Core amortization engine.

This module implements the fixed-installment (annuity) loan: the payment
formula, the monthly principal/interest split and the schedule built by
iterating those two month by month. Every monetary step is rounded to cents,
so a schedule can end with a few cents of accumulated drift; the last entry
absorbs that drift so the final balance is exactly zero. Drift larger than
rounding can produce raises ``InvariantViolation`` instead of being hidden.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Tuple

from .data_models import LoanTerms, Schedule, ScheduleEntry
from .errors import InvariantViolation
from .utils import CENT, MONTHS_PER_YEAR, ZERO, Number, percent_to_fraction, round_money, to_decimal
from .validation import validate_loan_terms

logger = logging.getLogger(__name__)


def compute_fixed_payment(principal: Number, annual_rate: Number, term_months: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` the monthly rate (``annual_rate / 12``,
    with ``annual_rate`` given as a fraction such as ``0.05``) and ``n`` the
    number of payments. When the rate is zero the payment is ``P / n``. A
    non-positive principal or term yields a payment of zero.

    >>> compute_fixed_payment(200000, Decimal("0.05"), 360)
    Decimal('1073.64')
    """
    principal = to_decimal(principal)
    if principal <= 0 or term_months <= 0:
        return round_money(ZERO)
    monthly_rate = to_decimal(annual_rate) / MONTHS_PER_YEAR
    if monthly_rate == 0:
        return round_money(principal / term_months)
    factor = (1 + monthly_rate) ** term_months
    return round_money(principal * (monthly_rate * factor) / (factor - 1))


def split_payment(balance: Decimal, payment: Decimal, monthly_rate: Decimal) -> Tuple[Decimal, Decimal]:
    """Split ``payment`` into its ``(principal, interest)`` portions.

    Interest is charged on the outstanding ``balance``; whatever is left of
    the payment goes to principal.
    """
    interest = round_money(balance * monthly_rate)
    principal = round_money(payment - interest)
    return principal, interest


def rounding_tolerance(monthly_rate: Decimal, periods: int) -> Decimal:
    """Largest residual that per-step rounding can leave after ``periods`` months.

    Each month can be off by at most one cent (half a cent on the payment and
    half a cent on the interest), and each cent of error keeps accruing
    interest for the rest of the loan.
    """
    if periods <= 0:
        return CENT
    if monthly_rate == 0:
        return CENT * periods
    return CENT * (((1 + monthly_rate) ** periods - 1) / monthly_rate)


def payoff_entry(period: int, balance: Decimal, interest: Decimal, extra: Decimal = ZERO) -> ScheduleEntry:
    """Build an entry that retires the whole outstanding ``balance``."""
    return ScheduleEntry(
        period=period,
        payment=round_money(balance + interest),
        principal=balance,
        interest=interest,
        extra_payment=extra,
        remaining_balance=round_money(ZERO),
    )


def check_residual(residual: Decimal, monthly_rate: Decimal, periods: int) -> None:
    """Raise if the drift absorbed by a final entry is larger than rounding allows."""
    tolerance = rounding_tolerance(monthly_rate, periods)
    if abs(residual) > tolerance:
        raise InvariantViolation(
            f"Schedule residual {residual} after {periods} months exceeds the rounding tolerance {tolerance:.2f}"
        )
    if abs(residual) > CENT:
        logger.warning(
            "Final entry absorbs %s of rounding drift after %d months (tolerance %.2f)",
            residual,
            periods,
            tolerance,
        )


def summarize(entries: Iterable[ScheduleEntry], fixed_payment: Decimal) -> Schedule:
    """Collect ``entries`` into a ``Schedule`` with its totals."""
    entries = tuple(entries)
    total_principal = round_money(sum((e.principal for e in entries), ZERO))
    total_interest = round_money(sum((e.interest for e in entries), ZERO))
    total_extra = round_money(sum((e.extra_payment for e in entries), ZERO))
    return Schedule(
        entries=entries,
        fixed_payment=fixed_payment,
        total_principal=total_principal,
        total_interest=total_interest,
        total_paid=round_money(total_principal + total_interest),
        total_extra_payments=total_extra,
        term_months=len(entries),
    )


def generate_schedule(terms: LoanTerms) -> Schedule:
    """Compute the amortization schedule for ``terms``.

    Parameters
    ----------
    terms: LoanTerms
        Principal, annual rate in percent and term in months. Invalid terms
        raise ``ValidationError`` before anything is computed.

    Returns
    -------
    Schedule
        One entry per month. The schedule is shorter than the term only when
        a rounded-up installment retires the balance early.
    """
    validate_loan_terms(terms)
    principal = to_decimal(terms.principal)
    annual_rate = percent_to_fraction(terms.annual_rate)
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    payment = compute_fixed_payment(principal, annual_rate, terms.term_months)
    logger.debug(
        "Fixed payment %s for principal %s at %s%% over %d months",
        payment,
        principal,
        terms.annual_rate,
        terms.term_months,
    )

    entries: List[ScheduleEntry] = []
    balance = round_money(principal)
    for period in range(1, terms.term_months + 1):
        principal_part, interest = split_payment(balance, payment, monthly_rate)
        residual = balance - principal_part
        if residual <= 0 or period == terms.term_months:
            # Retire whatever is left; drift is bounded by the rounding policy.
            check_residual(residual, monthly_rate, period)
            entries.append(payoff_entry(period, balance, interest))
            break
        balance = round_money(residual)
        entries.append(
            ScheduleEntry(
                period=period,
                payment=payment,
                principal=principal_part,
                interest=interest,
                extra_payment=round_money(ZERO),
                remaining_balance=balance,
            )
        )

    schedule = summarize(entries, payment)
    logger.debug(
        "Schedule of %d entries, total interest %s",
        schedule.term_months,
        schedule.total_interest,
    )
    return schedule
