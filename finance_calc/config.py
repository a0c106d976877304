"""Runtime settings read from the environment.

``FINANCE_CALC_TAX_YEAR``
    Fiscal year whose bundled withholding table is used (default 2026).
``FINANCE_CALC_TAX_TABLES``
    Path to a JSON table file that replaces the bundled one.
``FINANCE_CALC_LOG_LEVEL``
    Logging level name for the command-line interface (default WARNING).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_TAX_YEAR = 2026
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    tax_year: int = DEFAULT_TAX_YEAR
    tax_tables_path: Optional[Path] = None
    log_level: str = DEFAULT_LOG_LEVEL


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from ``environ`` (``os.environ`` by default)."""
    env = os.environ if environ is None else environ
    year_text = env.get("FINANCE_CALC_TAX_YEAR", "").strip()
    try:
        tax_year = int(year_text) if year_text else DEFAULT_TAX_YEAR
    except ValueError as exc:
        raise ValueError(f"FINANCE_CALC_TAX_YEAR must be a year, got {year_text!r}") from exc
    tables = env.get("FINANCE_CALC_TAX_TABLES", "").strip()
    return Settings(
        tax_year=tax_year,
        tax_tables_path=Path(tables) if tables else None,
        log_level=env.get("FINANCE_CALC_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL,
    )
