#!/usr/bin/env python3
"""Print next month's budget forecast with its category breakdown."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd

from budget_cycle import config
from budget_cycle.models import format_month
from budget_cycle.service import FinancialCycleService


def main(months: int, save: bool) -> int:
    service = FinancialCycleService.from_config()
    result = service.forecast_next_month_budget(months)
    currency = service.settings.default_currency

    print(f"Budget forecast for {format_month(result.target_month)} ({currency})")
    print(f"Months analyzed: {result.months_analyzed} of {result.window_months}")
    print(f"Average income:  {result.average_income:,.2f}")
    print(f"Average expense: {result.average_expense:,.2f}")
    print(f"Average balance: {result.average_balance:,.2f}")
    print(f"Mean budget:     {result.mean_budget:,.2f}")
    print(f"Base budget:     {result.base_budget:,.2f}")
    print(f"Special dates:   {result.special_day_total:,.2f}")
    print(f"Saving goals:    {result.saving_goal_total:,.2f}")
    print(f"Final budget:    {result.final_budget:,.2f}")

    if result.category_allocation:
        allocation = pd.Series(result.category_allocation, name='Amount').sort_values(ascending=False)
        print("\nBy category:")
        print(allocation.round(2).to_string())
    if result.special_dates:
        print("\nSpecial dates:")
        for special in result.special_dates:
            print(f"  - {special.name}: {special.affected_category} {special.amount_increase:+,.2f}")

    if save:
        if not service.save_forecast():
            print("Could not save the forecast as the monthly budget.")
            return 1
        print("\nSaved as the new monthly budget.")
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show the next month budget forecast.')
    parser.add_argument('--months', type=int, default=config.CLOSING_FORECAST_WINDOW, help='Trailing months to analyze')
    parser.add_argument('--save', action='store_true', help='Store the forecast as the monthly budget')
    args = parser.parse_args()
    config.configure_logging()
    raise SystemExit(main(args.months, args.save))
