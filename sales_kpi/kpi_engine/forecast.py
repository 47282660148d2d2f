# sales_kpi/kpi_engine/forecast.py
"""
Month-end Forecast

Linear run-rate projection: month-to-date total divided by elapsed days,
times the number of days in the month. No seasonality or weighting.
"""

import calendar
from datetime import date

from .helpers import round_half_up


def linear_forecast(mtd_total: float, day_of_month: int, days_in_month: int) -> int:
    """
    Project a month-to-date total to the full month.

    Args:
        mtd_total: Total so far this month (bookings or walk-ins)
        day_of_month: Current day of month (1-based)
        days_in_month: Length of the current month

    Returns:
        Rounded forecast, or 0 when day_of_month is not positive

    Example:
        >>> linear_forecast(10, 10, 30)
        30
    """
    if day_of_month <= 0:
        return 0
    return round_half_up(mtd_total / day_of_month * days_in_month)


def forecast_for(mtd_total: float, as_of: date) -> int:
    """Forecast using the day and month length of as_of."""
    days_in_month = calendar.monthrange(as_of.year, as_of.month)[1]
    return linear_forecast(mtd_total, as_of.day, days_in_month)
