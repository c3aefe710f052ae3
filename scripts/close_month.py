#!/usr/bin/env python3
"""Close every fully elapsed financial month and print the result."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from budget_cycle import config
from budget_cycle.models import format_month
from budget_cycle.service import FinancialCycleService


def main(db_path: Path, settings_path: Path) -> int:
    service = FinancialCycleService.from_config(db_path, settings_path)
    previous = format_month(service.settings.last_month_closed) or 'never'
    closed = service.perform_month_end_closing()
    report = service.closer.last_report

    if report is None or not report.closed_months:
        print(f"Nothing to close (last closed month: {previous}).")
        return 0

    print(f"Closed {len(report.closed_months)} month(s) after {previous}:")
    for month in report.closed_months:
        print(
            f"  - {format_month(month.month)} ({month.start} to {month.end}): "
            f"income {month.income:,.2f}, expense {month.expense:,.2f}, surplus {month.surplus:,.2f}"
        )
    if report.contributions:
        print(f"Savings contributions recorded: {len(report.contributions)}")
    print(f"Total surplus: {report.total_surplus:,.2f}")
    print(f"Overall balance: {report.new_balance:,.2f}")
    if report.forecast is not None:
        print(
            f"Budget for {format_month(report.forecast.target_month)}: "
            f"{service.settings.monthly_budget:,.2f}"
        )
    if not closed:
        print("Saving the closing results failed; run again after fixing storage.")
        return 1
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Run month-end closing.')
    parser.add_argument('--db', type=Path, default=config.DB_PATH, help='Transaction database path')
    parser.add_argument('--settings', type=Path, default=config.SETTINGS_PATH, help='Settings JSON path')
    args = parser.parse_args()
    config.configure_logging()
    raise SystemExit(main(args.db, args.settings))
