# sales_kpi/kpi_engine/helpers.py
"""
Helper Utilities for the KPI Engine

Small coercion helpers shared across components:
- Email normalization for case-insensitive matching
- Safe numeric coercion (missing/malformed -> 0)
- Lenient date parsing (unparsable -> None)
- Half-up rounding for percentages and forecasts

VERSION: 1.0.0
"""

import math
from datetime import date, datetime
from typing import Any, Optional

import pandas as pd


def normalize_email(value: Any) -> str:
    """
    Normalize an email for comparison.

    Example:
        >>> normalize_email('  Asha@Example.com ')
        'asha@example.com'
        >>> normalize_email(None)
        ''
    """
    if value is None:
        return ''
    return str(value).strip().lower()


def safe_int(value: Any) -> int:
    """
    Coerce a numeric field to int, treating missing or malformed values as 0.

    Example:
        >>> safe_int('4')
        4
        >>> safe_int(None)
        0
        >>> safe_int(float('nan'))
        0
    """
    if value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number)


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a record date into a calendar day.

    Accepts date/datetime objects and date strings (ISO or anything pandas
    can read). Returns None for missing or unparsable values.
    Timestamps with a UTC offset keep the calendar day of that offset.

    Example:
        >>> parse_date('2026-10-17T09:30:00')
        datetime.date(2026, 10, 17)
        >>> parse_date('not a date') is None
        True
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    try:
        ts = pd.to_datetime(value.strip(), errors='coerce')
    except (TypeError, ValueError, OverflowError):
        return None

    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves rounding up.

    Built-in round() uses banker's rounding (round(2.5) == 2), which would
    make 12.5% read as 12%.
    """
    return int(math.floor(value + 0.5))
