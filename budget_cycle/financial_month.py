"""Financial month boundaries.

A financial month is a one-month window that starts on a configurable day of
the month instead of the 1st. The window for ``(year, month)`` always starts
inside that calendar month, so a start day past the month's length clamps to
its last day.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Tuple

import pandas as pd

from .models import days_in_month, month_of, validate_month_start_day

DateRange = Tuple[date, date]


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole months, clamping to the end of shorter months."""
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def financial_month_range(year: int, month: int, start_day: int) -> DateRange:
    """Return the inclusive ``(start, end)`` window of a financial month.

    Example:
        >>> financial_month_range(2024, 1, 15)
        (datetime.date(2024, 1, 15), datetime.date(2024, 2, 14))
    """
    start = date(year, month, min(start_day, days_in_month(year, month)))
    end = add_months(start, 1) - timedelta(days=1)
    return start, end


def period_range(period: pd.Period, start_day: int) -> DateRange:
    return financial_month_range(period.year, period.month, start_day)


def financial_month_of(day: date, start_day: int) -> pd.Period:
    """The financial month whose window contains ``day``."""
    calendar_month = month_of(day)
    if day.day >= min(start_day, days_in_month(day.year, day.month)):
        return calendar_month
    return calendar_month - 1


def current_financial_month_range(start_day: int, today: Optional[date] = None) -> DateRange:
    """Window that ``today`` falls in."""
    today = today or date.today()
    return period_range(financial_month_of(today, start_day), start_day)


class FinancialMonthCalculator:
    """Financial month arithmetic for a fixed start day."""

    def __init__(self, start_day: int) -> None:
        self.start_day = validate_month_start_day(start_day)

    def range(self, year: int, month: int) -> DateRange:
        return financial_month_range(year, month, self.start_day)

    def range_for(self, period: pd.Period) -> DateRange:
        return period_range(period, self.start_day)

    def month_of(self, day: date) -> pd.Period:
        return financial_month_of(day, self.start_day)

    def current_month(self, today: Optional[date] = None) -> pd.Period:
        return financial_month_of(today or date.today(), self.start_day)

    def current_range(self, today: Optional[date] = None) -> DateRange:
        return current_financial_month_range(self.start_day, today)
