"""Exception types raised by the calculation engines.

Two kinds of failure exist. ``ValidationError`` reports bad user input and is
raised before any computation starts; it carries one message per offending
field. ``InvariantViolation`` signals a defect in a formula or in a constant
table (for example a schedule residual far larger than rounding can explain)
and should never be caught and ignored by callers.
"""

from __future__ import annotations

from typing import Dict, Mapping


class ValidationError(ValueError):
    """Raised when inputs are missing or out of range.

    Attributes
    ----------
    errors: Dict[str, str]
        Mapping of field name to a human-readable message. Field names for
        list members use an indexed form such as ``prepayments[0].amount``.
    """

    def __init__(self, errors: Mapping[str, str]) -> None:
        self.errors: Dict[str, str] = dict(errors)
        message = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(message or "Invalid input")


class InvariantViolation(RuntimeError):
    """Raised when a computed result breaks a guaranteed invariant."""


class TaxTableError(InvariantViolation):
    """Raised when a fiscal-year table is malformed or cannot be loaded."""
