"""Utility functions for the finance calculator.

This module holds the rounding policy shared by every engine together with a
few helpers for turning user input into ``Decimal`` values. All monetary
amounts are rounded to cents with ``ROUND_HALF_UP`` (ties go away from zero).
The engines round after every arithmetic step that produces a money value,
not only on output, so long schedules reproduce reference tables exactly.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = 12

Number = Union[Decimal, int, float, str]


def round_money(value: Number) -> Decimal:
    """Round ``value`` to the nearest cent using round-half-up.

    >>> round_money(Decimal("44274.585"))
    Decimal('44274.59')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Number) -> Decimal:
    """Coerce ints, floats, strings and decimals into a ``Decimal``.

    Floats go through ``str`` first so ``0.1`` becomes ``Decimal("0.1")``
    instead of its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean values are not numeric amounts")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    return decimal_from_str(value)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def percent_to_fraction(percent: Number) -> Decimal:
    """Convert a percentage (7.5) into a fraction (0.075)."""
    return to_decimal(percent) / HUNDRED


def safe_percent(part: Decimal, total: Decimal) -> Decimal:
    """Return ``part`` as a percentage of ``total`` rounded to two places.

    A zero (or negative) total yields zero instead of raising.
    """
    if total <= 0:
        return ZERO.quantize(CENT)
    return round_money(part / total * HUNDRED)
