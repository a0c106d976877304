"""
Pytest configuration and shared fixtures.
"""

from decimal import Decimal

import pytest

from finance_calc.config import Settings
from finance_calc.data_models import LoanTerms
from finance_calc.tax_tables import load_tax_tables
from finance_calc.taxes import TaxWithholdingCalculator


@pytest.fixture
def mortgage_terms():
    """The reference 30-year mortgage: 200,000 at 5%."""
    return LoanTerms(principal=Decimal("200000"), annual_rate=Decimal("5"), term_months=360)


@pytest.fixture(scope="session")
def tables_2026():
    # Explicit settings so a developer's environment overrides are ignored.
    return load_tax_tables(2026, settings=Settings())


@pytest.fixture
def calculator(tables_2026):
    return TaxWithholdingCalculator(tables_2026)
