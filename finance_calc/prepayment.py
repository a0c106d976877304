"""Prepayment simulation.

Extra principal payments are replayed month by month against a running
balance, because each one changes the interest charged in every later month.
The replay is a single pass over the term that consumes the prepayments in
month order:

* ``reduce-term`` keeps the installment unchanged. The extra amount comes off
  the balance right after that month's regular payment and the loop stops as
  soon as the balance reaches zero.
* ``reduce-payment`` keeps the term unchanged. The extra amount comes off the
  balance at the start of its month and the installment is re-amortized over
  the months that remain, starting with that same month.

When prepayments mix both strategies only the earliest one is applied; the
others are reported back as ignored.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .amortization import (
    check_residual,
    compute_fixed_payment,
    generate_schedule,
    payoff_entry,
    split_payment,
    summarize,
)
from .data_models import LoanTerms, Prepayment, PrepaymentResult, PrepaymentStrategy, Schedule, ScheduleEntry
from .errors import ValidationError
from .utils import MONTHS_PER_YEAR, ZERO, percent_to_fraction, round_money, safe_percent, to_decimal
from .validation import check_positive

logger = logging.getLogger(__name__)


def balance_before(schedule: Schedule, month: int) -> Decimal:
    """Outstanding balance at the start of ``month``, before its regular payment."""
    entry = schedule.entries[month - 1]
    return round_money(entry.remaining_balance + entry.principal + entry.extra_payment)


def validate_prepayments(base: Schedule, prepayments: Sequence[Prepayment]) -> None:
    """Check every prepayment against the unmodified schedule.

    The month must fall inside the schedule and the amount must be positive
    and no larger than the balance outstanding at that month. All problems
    are reported together, keyed by the prepayment's position in
    ``prepayments``.
    """
    errors: Dict[str, str] = {}
    length = base.term_months
    for index, prepayment in enumerate(prepayments):
        key = f"prepayments[{index}]"
        month = prepayment.month
        month_ok = isinstance(month, int) and not isinstance(month, bool) and 1 <= month <= length
        if not month_ok:
            errors[f"{key}.month"] = f"Prepayment month must be between 1 and {length}"

        error = check_positive(prepayment.amount, "Prepayment amount")
        if error:
            errors[f"{key}.amount"] = error
        elif month_ok:
            outstanding = balance_before(base, month)
            if to_decimal(prepayment.amount) > outstanding:
                errors[f"{key}.amount"] = (
                    f"Prepayment amount cannot exceed the remaining balance ({outstanding:.2f})"
                )

        if not isinstance(prepayment.strategy, PrepaymentStrategy):
            errors[f"{key}.strategy"] = "Prepayment strategy must be reduce-term or reduce-payment"
    if errors:
        raise ValidationError(errors)


def _amounts_by_month(prepayments: Iterable[Prepayment]) -> Dict[int, Decimal]:
    """Total extra amount per month; several prepayments may share a month."""
    mapping: Dict[int, Decimal] = {}
    for prepayment in prepayments:
        mapping[prepayment.month] = mapping.get(prepayment.month, ZERO) + to_decimal(prepayment.amount)
    return mapping


def replay_schedule(
    terms: LoanTerms,
    base: Schedule,
    prepayments: Sequence[Prepayment],
    strategy: PrepaymentStrategy,
) -> Tuple[Schedule, Decimal]:
    """Rebuild the schedule of ``terms`` with ``prepayments`` applied.

    Returns the adjusted schedule and the installment in force at its end
    (the base installment for ``reduce-term``, the last recomputed one for
    ``reduce-payment``).
    """
    annual_rate = percent_to_fraction(terms.annual_rate)
    monthly_rate = annual_rate / MONTHS_PER_YEAR
    term = terms.term_months
    extras = _amounts_by_month(prepayments)

    payment = base.fixed_payment
    balance = round_money(to_decimal(terms.principal))
    entries: List[ScheduleEntry] = []

    for period in range(1, term + 1):
        extra = round_money(min(extras.get(period, ZERO), balance))

        if strategy is PrepaymentStrategy.REDUCE_PAYMENT and extra > 0:
            balance = round_money(balance - extra)
            payment = compute_fixed_payment(balance, annual_rate, term - period + 1)
            logger.debug("Month %d: prepaid %s, installment now %s", period, extra, payment)
            if balance == 0:
                entries.append(payoff_entry(period, balance, round_money(ZERO), extra))
                break

        principal_part, interest = split_payment(balance, payment, monthly_rate)
        residual = balance - principal_part
        if residual <= 0 or period == term:
            # A shortened reduce-term loan normally ends on a partial installment.
            if strategy is PrepaymentStrategy.REDUCE_PAYMENT or residual > 0:
                check_residual(residual, monthly_rate, period)
            applied = extra if strategy is PrepaymentStrategy.REDUCE_PAYMENT else round_money(ZERO)
            entries.append(payoff_entry(period, balance, interest, applied))
            break
        balance = round_money(residual)

        if strategy is PrepaymentStrategy.REDUCE_TERM:
            extra = round_money(min(extra, balance))
            if extra > 0:
                balance = round_money(balance - extra)
                logger.debug("Month %d: prepaid %s, balance now %s", period, extra, balance)

        entries.append(
            ScheduleEntry(
                period=period,
                payment=payment,
                principal=principal_part,
                interest=interest,
                extra_payment=extra,
                remaining_balance=balance,
            )
        )
        if balance == 0:
            break

    fixed = base.fixed_payment if strategy is PrepaymentStrategy.REDUCE_TERM else payment
    return summarize(entries, fixed), payment


def interest_savings(base: Schedule, adjusted: Schedule) -> Tuple[Decimal, Decimal]:
    """Return the interest saved as an absolute amount and as a percentage of the base."""
    savings = round_money(base.total_interest - adjusted.total_interest)
    return savings, safe_percent(savings, base.total_interest)


def apply_prepayments(terms: LoanTerms, prepayments: Sequence[Prepayment]) -> PrepaymentResult:
    """Compare the schedule of ``terms`` with and without ``prepayments``.

    Raises ``ValidationError`` when the loan terms or any prepayment are
    invalid; nothing is computed past the base schedule in that case.
    """
    base = generate_schedule(terms)
    if not prepayments:
        return PrepaymentResult(
            base=base,
            adjusted=base,
            prepayments=(),
            interest_savings=round_money(ZERO),
            interest_savings_percent=round_money(ZERO),
            term_reduction=None,
            new_monthly_payment=None,
        )

    validate_prepayments(base, prepayments)
    ordered = sorted(prepayments, key=lambda p: p.month)
    strategy = ordered[0].strategy
    applied: Tuple[Prepayment, ...] = tuple(ordered)
    ignored: Tuple[Prepayment, ...] = ()
    if any(p.strategy is not strategy for p in ordered):
        applied, ignored = (ordered[0],), tuple(ordered[1:])
        logger.warning(
            "Prepayments mix strategies; applying only the month %d %s prepayment and ignoring %d others",
            ordered[0].month,
            strategy.value,
            len(ignored),
        )

    adjusted, final_payment = replay_schedule(terms, base, applied, strategy)
    savings, savings_percent = interest_savings(base, adjusted)

    term_reduction: Optional[int] = None
    new_payment: Optional[Decimal] = None
    if strategy is PrepaymentStrategy.REDUCE_TERM:
        term_reduction = base.term_months - adjusted.term_months
    else:
        new_payment = final_payment

    logger.debug(
        "Prepayments (%s) save %s interest (%s%%)", strategy.value, savings, savings_percent
    )
    return PrepaymentResult(
        base=base,
        adjusted=adjusted,
        prepayments=applied,
        interest_savings=savings,
        interest_savings_percent=savings_percent,
        term_reduction=term_reduction,
        new_monthly_payment=new_payment,
        ignored_prepayments=ignored,
    )
