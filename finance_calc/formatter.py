"""Output helpers for the finance calculator.

This module renders schedules, prepayment comparisons, investment breakdowns
and payroll results as plain tab-separated text. Values are printed exactly
as the engines computed them; nothing here recomputes a number.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .data_models import InvestmentPeriod, InvestmentResult, PrepaymentResult, Schedule, ScheduleEntry, TaxResult


def print_summary(schedule: Schedule, title: str = "Summary") -> None:
    """Print the totals of a schedule in a human-readable format."""
    print(title)
    print("-" * 72)
    print(f"Monthly payment    : {schedule.fixed_payment:.2f}")
    print(f"Total principal    : {schedule.total_principal:.2f}")
    print(f"Total interest     : {schedule.total_interest:.2f}")
    if schedule.total_extra_payments:
        print(f"Extra payments     : {schedule.total_extra_payments:.2f}")
    print(f"Total paid         : {schedule.total_paid:.2f}")
    print(f"Payments made      : {schedule.term_months}")
    print("-" * 72)


def print_schedule(entries: Iterable[ScheduleEntry], show_extra: bool = False) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    entries: Iterable[ScheduleEntry]
        The schedule entries to print.
    show_extra: bool
        Whether to include the ``Extra`` column. It is hidden by default
        because only prepayment scenarios use it.
    """
    headers = ["Period", "Payment", "Principal", "Interest"]
    if show_extra:
        headers.append("Extra")
    headers.append("Balance")
    print("\t".join(headers))
    for entry in entries:
        row = [
            str(entry.period),
            f"{entry.payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
        ]
        if show_extra:
            row.append(f"{entry.extra_payment:.2f}")
        row.append(f"{entry.remaining_balance:.2f}")
        print("\t".join(row))


def print_prepayment_comparison(result: PrepaymentResult) -> None:
    """Print the base and adjusted scenarios side by side.

    The difference column is adjusted minus base, so a negative value means
    the prepayment scenario is cheaper or shorter.
    """
    base, adjusted = result.base, result.adjusted
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Base':>15s} {'Prepayment':>15s} {'Difference':>15s}")
    rows = [
        ("monthly_payment", base.fixed_payment, adjusted.fixed_payment),
        ("total_interest", base.total_interest, adjusted.total_interest),
        ("total_paid", base.total_paid, adjusted.total_paid),
        ("payments_made", base.term_months, adjusted.term_months),
    ]
    for key, v1, v2 in rows:
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    print("=" * 72)
    print(f"Interest saved     : {result.interest_savings:.2f} ({result.interest_savings_percent:.2f}%)")
    if result.term_reduction is not None:
        print(f"Term reduction     : {result.term_reduction} months")
    if result.new_monthly_payment is not None:
        print(f"New payment        : {result.new_monthly_payment:.2f}")
    if result.ignored_prepayments:
        print(f"Ignored            : {len(result.ignored_prepayments)} prepayment(s) with a different strategy")


def print_investment(result: InvestmentResult, max_rows: Optional[int] = None) -> None:
    print("Investment")
    print("-" * 72)
    print(f"Total contributed  : {result.total_contributed:.2f}")
    print(f"Interest earned    : {result.total_interest:.2f}")
    print(f"Final balance      : {result.final_balance:.2f}")
    print("-" * 72)
    periods = result.periods if max_rows is None else result.periods[:max_rows]
    print_breakdown(periods)


def print_breakdown(periods: Iterable[InvestmentPeriod]) -> None:
    print("\t".join(["Period", "Month", "Contributed", "Interest", "Balance"]))
    for period in periods:
        print(
            "\t".join(
                [
                    str(period.period),
                    str(period.month),
                    f"{period.contributed:.2f}",
                    f"{period.interest:.2f}",
                    f"{period.balance:.2f}",
                ]
            )
        )


def print_tax(result: TaxResult) -> None:
    """Print the payroll line items followed by the headline figures."""
    print("Payroll (monthly)")
    print("-" * 72)
    for item in result.line_items:
        print(f"{item.label:40s} {item.amount:>20,.2f}")
    print("-" * 72)
    print(f"{'Net pay':40s} {result.net_monthly:>20,.2f}")
    print(f"{'Net pay (annual)':40s} {result.net_annual:>20,.2f}")
    print(f"{'Effective rate':40s} {result.effective_rate:>19.2f}%")
    print(f"{'Marginal rate':40s} {result.marginal_rate:>19.2f}%")
