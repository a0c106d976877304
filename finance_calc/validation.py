"""Field-keyed validation of engine inputs.

Each ``check_*`` helper returns an error message or ``None``. The
``validate_*`` functions run every check for one record, collect the messages
by field name and raise a single ``ValidationError`` so callers can report all
problems at once. Values are never clamped here.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Optional

from .data_models import (
    CompoundingFrequency,
    InvestmentTerms,
    LoanTerms,
    Periodicity,
    TaxInput,
)
from .errors import ValidationError

MAX_LOAN_AMOUNT = Decimal("100000000")
MAX_TERM_MONTHS = 600
MAX_RATE_PERCENT = Decimal("100")
MAX_INITIAL_INVESTMENT = Decimal("1000000000")
MAX_MONTHLY_CONTRIBUTION = Decimal("1000000")
MAX_INVESTMENT_MONTHS = 1200
MAX_DEPENDENTS = 4


def _is_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    return isinstance(value, (int, float)) and value == value


def check_positive(value, name: str) -> Optional[str]:
    if value is None:
        return f"{name} is required"
    if not _is_number(value):
        return f"{name} must be a number"
    if value <= 0:
        return f"{name} must be positive"
    return None


def check_non_negative(value, name: str) -> Optional[str]:
    if value is None:
        return f"{name} is required"
    if not _is_number(value):
        return f"{name} must be a number"
    if value < 0:
        return f"{name} must be non-negative"
    return None


def check_range(value, name: str, minimum, maximum, strict_min: bool = False) -> Optional[str]:
    """Check ``value`` against inclusive bounds (exclusive lower bound if ``strict_min``)."""
    error = check_positive(value, name) if strict_min else check_non_negative(value, name)
    if error:
        return error
    if value < minimum:
        return f"{name} must be at least {minimum}"
    if value > maximum:
        return f"{name} must be at most {maximum}"
    return None


def check_whole_months(value, name: str, maximum: int) -> Optional[str]:
    if value is None:
        return f"{name} is required"
    if isinstance(value, bool) or not isinstance(value, int):
        return f"{name} must be a whole number of months"
    if value < 1:
        return f"{name} must be positive"
    if value > maximum:
        return f"{name} must be at most {maximum} months"
    return None


def _raise_if_any(errors: Dict[str, str]) -> None:
    if errors:
        raise ValidationError(errors)


def validate_loan_terms(terms: LoanTerms) -> None:
    errors: Dict[str, str] = {}
    for field_name, error in (
        ("principal", check_range(terms.principal, "Loan amount", 0, MAX_LOAN_AMOUNT, strict_min=True)),
        ("annual_rate", check_range(terms.annual_rate, "Interest rate", 0, MAX_RATE_PERCENT)),
        ("term_months", check_whole_months(terms.term_months, "Loan term", MAX_TERM_MONTHS)),
    ):
        if error:
            errors[field_name] = error
    _raise_if_any(errors)


def validate_investment_terms(terms: InvestmentTerms) -> None:
    errors: Dict[str, str] = {}
    for field_name, error in (
        ("initial_amount", check_range(terms.initial_amount, "Initial amount", 0, MAX_INITIAL_INVESTMENT, strict_min=True)),
        ("monthly_contribution", check_range(terms.monthly_contribution, "Monthly contribution", 0, MAX_MONTHLY_CONTRIBUTION)),
        ("duration_months", check_whole_months(terms.duration_months, "Duration", MAX_INVESTMENT_MONTHS)),
        ("annual_rate", check_range(terms.annual_rate, "Interest rate", 0, MAX_RATE_PERCENT)),
    ):
        if error:
            errors[field_name] = error
    if not isinstance(terms.compounding, CompoundingFrequency):
        errors["compounding"] = "Compounding frequency must be monthly, quarterly or annually"
    _raise_if_any(errors)


def validate_tax_input(tax_input: TaxInput) -> None:
    errors: Dict[str, str] = {}
    error = check_positive(tax_input.gross_salary, "Salary")
    if error:
        errors["gross_salary"] = error
    if not isinstance(tax_input.periodicity, Periodicity):
        errors["periodicity"] = "Periodicity must be monthly or annual"
    dependents = tax_input.dependents
    if isinstance(dependents, bool) or not isinstance(dependents, int) or dependents < 0:
        errors["dependents"] = "Dependents must be a non-negative whole number"
    elif dependents > MAX_DEPENDENTS:
        errors["dependents"] = f"Dependents must be at most {MAX_DEPENDENTS}"
    for field_name, label in (("voluntary_pension", "Voluntary pension contribution"), ("prepaid_health", "Prepaid health plan")):
        error = check_non_negative(getattr(tax_input, field_name), label)
        if error:
            errors[field_name] = error
    _raise_if_any(errors)
