from datetime import date, timedelta

import pandas as pd
import pytest

from budget_cycle.financial_month import (
    FinancialMonthCalculator,
    add_months,
    current_financial_month_range,
    financial_month_of,
    financial_month_range,
)
from budget_cycle.models import InvalidConfigurationError, days_in_month


def test_range_starts_on_configured_day():
    assert financial_month_range(2024, 1, 15) == (date(2024, 1, 15), date(2024, 2, 14))


def test_calendar_month_when_start_day_is_first():
    assert financial_month_range(2024, 2, 1) == (date(2024, 2, 1), date(2024, 2, 29))
    assert financial_month_range(2023, 12, 1) == (date(2023, 12, 1), date(2023, 12, 31))


def test_range_crosses_year_end():
    assert financial_month_range(2023, 12, 20) == (date(2023, 12, 20), date(2024, 1, 19))


def test_every_window_starts_inside_its_calendar_month():
    for year in (2023, 2024):
        for month in range(1, 13):
            last_day = days_in_month(year, month)
            for start_day in range(1, 29):
                start, end = financial_month_range(year, month, start_day)
                assert date(year, month, 1) <= start <= date(year, month, last_day)
                assert end == add_months(start, 1) - timedelta(days=1)


def test_add_months_clamps_to_short_month():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)


def test_current_range_before_start_day_uses_previous_month():
    assert current_financial_month_range(15, date(2024, 3, 10)) == (date(2024, 2, 15), date(2024, 3, 14))


def test_current_range_on_start_day_uses_current_month():
    assert current_financial_month_range(15, date(2024, 3, 15)) == (date(2024, 3, 15), date(2024, 4, 14))


def test_current_range_rolls_back_over_new_year():
    assert current_financial_month_range(10, date(2024, 1, 5)) == (date(2023, 12, 10), date(2024, 1, 9))


def test_financial_month_of():
    assert financial_month_of(date(2024, 2, 10), 15) == pd.Period('2024-01', freq='M')
    assert financial_month_of(date(2024, 2, 15), 15) == pd.Period('2024-02', freq='M')
    assert financial_month_of(date(2024, 2, 29), 1) == pd.Period('2024-02', freq='M')


def test_calculator_matches_module_functions():
    calculator = FinancialMonthCalculator(15)
    today = date(2024, 3, 10)
    assert calculator.range(2024, 1) == financial_month_range(2024, 1, 15)
    assert calculator.range_for(pd.Period('2024-01', freq='M')) == (date(2024, 1, 15), date(2024, 2, 14))
    assert calculator.current_month(today) == pd.Period('2024-02', freq='M')
    assert calculator.current_range(today) == (date(2024, 2, 15), date(2024, 3, 14))
    assert calculator.month_of(date(2024, 1, 14)) == pd.Period('2023-12', freq='M')


@pytest.mark.parametrize('start_day', [0, 29, 31, -1])
def test_calculator_rejects_invalid_start_day(start_day):
    with pytest.raises(InvalidConfigurationError):
        FinancialMonthCalculator(start_day)
