"""Loading of fiscal-year tax tables.

Tables are JSON documents shipped next to this module in ``tables/`` (one per
country and year, e.g. ``co_2026.json``). Numbers are written as strings so
they parse into exact ``Decimal`` values, and an open-ended upper bound is
written as ``null``. A table is checked for structural sanity when loaded;
any problem raises ``TaxTableError``.
"""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .config import Settings, settings_from_env
from .data_models import SolidarityBracket, TaxBracket, TaxTables
from .errors import TaxTableError
from .utils import decimal_from_str

logger = logging.getLogger(__name__)

TABLES_DIR = Path(__file__).resolve().parent / "tables"
DEFAULT_COUNTRY = "co"


def _decimal(data: Mapping[str, Any], key: str) -> Decimal:
    try:
        return decimal_from_str(str(data[key]))
    except KeyError as exc:
        raise TaxTableError(f"Tax table is missing {key!r}") from exc
    except ValueError as exc:
        raise TaxTableError(f"Tax table value {key!r} is not a number") from exc


def _optional_decimal(data: Mapping[str, Any], key: str) -> Optional[Decimal]:
    if data.get(key) is None:
        return None
    return _decimal(data, key)


def _check_bounds(bounds: Sequence[Optional[Decimal]], name: str) -> None:
    """Bounds must be ascending with only the last one open-ended."""
    if not bounds:
        raise TaxTableError(f"{name} must not be empty")
    if any(bound is None for bound in bounds[:-1]):
        raise TaxTableError(f"Only the last entry of {name} may be unbounded")
    finite = [bound for bound in bounds if bound is not None]
    if any(later <= earlier for earlier, later in zip(finite, finite[1:])):
        raise TaxTableError(f"{name} upper bounds must be strictly ascending")


def _warn_on_discontinuities(brackets: Sequence[TaxBracket]) -> None:
    """Log each bracket edge where the accumulated tax does not meet the tax below it."""
    lower: Optional[Decimal] = None
    for current, following in zip(brackets, brackets[1:]):
        edge_tax = Decimal(0)
        if lower is not None:
            edge_tax = current.accumulated_tax + (current.upper_bound - lower) * current.marginal_rate
        if following.accumulated_tax != edge_tax:
            logger.warning(
                "Withholding jumps from %s to %s tax units at %s",
                edge_tax,
                following.accumulated_tax,
                current.upper_bound,
            )
        lower = current.upper_bound


def parse_tax_tables(data: Mapping[str, Any]) -> TaxTables:
    """Build ``TaxTables`` from a decoded JSON document."""
    try:
        withholding = tuple(
            TaxBracket(
                upper_bound=_optional_decimal(row, "upper_bound"),
                marginal_rate=_decimal(row, "marginal_rate"),
                accumulated_tax=_decimal(row, "accumulated_tax"),
            )
            for row in data["withholding_brackets"]
        )
        solidarity = tuple(
            SolidarityBracket(upper_multiple=_optional_decimal(row, "upper_multiple"), rate=_decimal(row, "rate"))
            for row in data["solidarity_brackets"]
        )
        fiscal_year = int(data["fiscal_year"])
    except KeyError as exc:
        raise TaxTableError(f"Tax table is missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise TaxTableError(f"Malformed tax table: {exc}") from exc

    _check_bounds([b.upper_bound for b in withholding], "withholding_brackets")
    _check_bounds([b.upper_multiple for b in solidarity], "solidarity_brackets")
    for bracket in withholding:
        if not 0 <= bracket.marginal_rate <= 1:
            raise TaxTableError("Withholding rates must be between 0 and 1")
    if any(later.accumulated_tax < earlier.accumulated_tax for earlier, later in zip(withholding, withholding[1:])):
        raise TaxTableError("Accumulated tax must not decrease between brackets")
    _warn_on_discontinuities(withholding)

    tables = TaxTables(
        fiscal_year=fiscal_year,
        tax_unit_value=_decimal(data, "tax_unit_value"),
        minimum_wage=_decimal(data, "minimum_wage"),
        allowance_amount=_decimal(data, "allowance_amount"),
        allowance_max_wage_multiple=_decimal(data, "allowance_max_wage_multiple"),
        pension_rate=_decimal(data, "pension_rate"),
        health_rate=_decimal(data, "health_rate"),
        solidarity_min_wage_multiple=_decimal(data, "solidarity_min_wage_multiple"),
        solidarity_brackets=solidarity,
        withholding_brackets=withholding,
        prepaid_health_cap_units=_decimal(data, "prepaid_health_cap_units"),
        dependent_deduction_units=_decimal(data, "dependent_deduction_units"),
    )
    if tables.tax_unit_value <= 0 or tables.minimum_wage <= 0:
        raise TaxTableError("Tax unit value and minimum wage must be positive")
    return tables


def load_tax_tables_file(path: Path) -> TaxTables:
    """Read and parse the JSON table stored at ``path``."""
    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise TaxTableError(f"Cannot read tax table {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TaxTableError(f"Tax table {path} is not valid JSON: {exc}") from exc
    logger.debug("Loaded tax table from %s", path)
    return parse_tax_tables(data)


def load_tax_tables(year: Optional[int] = None, settings: Optional[Settings] = None) -> TaxTables:
    """Return the tables for ``year``.

    The ``FINANCE_CALC_TAX_TABLES`` override wins over the bundled tables;
    otherwise ``year`` (or ``FINANCE_CALC_TAX_YEAR``) picks a bundled file.
    """
    settings = settings or settings_from_env()
    if settings.tax_tables_path is not None:
        return load_tax_tables_file(settings.tax_tables_path)
    year = year or settings.tax_year
    path = TABLES_DIR / f"{DEFAULT_COUNTRY}_{year}.json"
    if not path.exists():
        available = sorted(p.stem for p in TABLES_DIR.glob("*.json"))
        raise TaxTableError(f"No tax table for {year}; available: {', '.join(available)}")
    return load_tax_tables_file(path)
