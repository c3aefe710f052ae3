"""Month-end closing.

Closing walks financial months in order, starting after the watermark
(``settings.last_month_closed``) or at the calendar month of the earliest
transaction, and stops before the financial month that contains today. Each
closed month's income minus expense is added to the overall balance, the
watermark is advanced, and the next month's budget is forecast.

Months without transactions still advance the watermark so gaps in the
history never stall later closings. A run with nothing eligible returns False
and writes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, List, Optional, Sequence

import pandas as pd

from . import config
from .aggregation import summarize
from .financial_month import FinancialMonthCalculator
from .forecast import BudgetForecaster, ForecastResult
from .ledger import TransactionLedger
from .models import Settings, Transaction, format_month, month_of
from .savings import SavingsContributionProcessor, window_contribution_date

logger = logging.getLogger(__name__)


@dataclass
class ClosedMonth:
    month: pd.Period
    start: date
    end: date
    income: float = 0.0
    expense: float = 0.0
    transaction_count: int = 0

    @property
    def surplus(self) -> float:
        return self.income - self.expense


@dataclass
class ClosingReport:
    closed_months: List[ClosedMonth] = field(default_factory=list)
    total_surplus: float = 0.0
    new_balance: float = 0.0
    contributions: List[Transaction] = field(default_factory=list)
    forecast: Optional[ForecastResult] = None
    saved: bool = False

    @property
    def last_closed(self) -> Optional[pd.Period]:
        return self.closed_months[-1].month if self.closed_months else None


class MonthEndCloser:
    """Closes every fully elapsed financial month exactly once, in order."""

    def __init__(
        self,
        ledger: TransactionLedger,
        settings_store: Any,
        forecaster: BudgetForecaster,
        savings_category: str = config.SAVINGS_CATEGORY,
        process_savings: bool = config.PROCESS_SAVINGS_ON_CLOSE,
        contribution_day: Optional[int] = config.CONTRIBUTION_DAY,
        forecast_window: int = config.CLOSING_FORECAST_WINDOW,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.ledger = ledger
        self.settings_store = settings_store
        self.forecaster = forecaster
        self.savings_category = savings_category
        self.process_savings = process_savings
        self.contribution_day = contribution_day
        self.forecast_window = forecast_window
        self.today = today or date.today
        self.last_report: Optional[ClosingReport] = None

    @property
    def settings(self) -> Settings:
        return self.settings_store.settings

    def first_month_to_close(self, transactions: Sequence[Transaction]) -> Optional[pd.Period]:
        """Month after the watermark, or the earliest transaction's calendar month."""
        if self.settings.last_month_closed is not None:
            return self.settings.last_month_closed + 1
        if not transactions:
            logger.info("No transactions available to determine the first month for closing")
            return None
        return month_of(min(txn.date for txn in transactions))

    def perform(self) -> bool:
        """Close all eligible months.

        Returns:
            True if at least one month was closed and everything was saved.
            False if nothing was eligible, or if saving failed; in-memory
            changes are kept in that case and should be saved again.
        """
        settings = self.settings
        transactions = self.ledger.all()
        cursor = self.first_month_to_close(transactions)
        if cursor is None:
            return False

        calculator = FinancialMonthCalculator(settings.month_start_day)
        boundary = calculator.current_range(self.today())[0]
        processor = (
            SavingsContributionProcessor(settings.saving_goals, transactions)
            if self.process_savings else None
        )
        contribution_day = self.contribution_day or settings.month_start_day
        report = ClosingReport()

        while calculator.range_for(cursor)[0] < boundary:
            start, end = calculator.range_for(cursor)
            on_date = window_contribution_date(start, end, contribution_day)
            if processor is not None and processor.process(
                cursor, contribution_day, self.savings_category, on_date=on_date,
            ):
                report.contributions.extend(processor.last_contributions)

            summary = summarize(transactions, start, end)
            closed = ClosedMonth(
                month=cursor,
                start=start,
                end=end,
                income=summary.total_income,
                expense=summary.total_expense,
                transaction_count=summary.transaction_count,
            )
            if closed.transaction_count == 0:
                logger.info("Financial month %s has no transactions. Marking as processed.", format_month(cursor))
            else:
                report.total_surplus += closed.surplus
                logger.info(
                    "Closing financial month %s. Income: %.2f, Expense: %.2f, Surplus: %.2f",
                    format_month(cursor), closed.income, closed.expense, closed.surplus,
                )
            settings.advance_watermark(cursor)
            report.closed_months.append(closed)
            cursor += 1

        if not report.closed_months:
            logger.info("No new financial months were eligible for closing")
            return False

        settings.overall_account_balance += report.total_surplus
        report.new_balance = settings.overall_account_balance
        logger.info(
            "Total surplus of %.2f added to overall balance. New balance: %.2f",
            report.total_surplus, report.new_balance,
        )

        report.forecast = self.forecaster.forecast(
            settings.last_month_closed + 1, self.forecast_window, transactions
        )
        self.forecaster.apply_forecast()

        transactions_saved = True
        if report.contributions:
            settings.register_expense_category(self.savings_category)
            transactions_saved = self.ledger.save_all(transactions)
        settings_saved = self.settings_store.save()
        if not (transactions_saved and settings_saved):
            logger.warning(
                "Failed to save closing results. Transactions saved: %s, Settings saved: %s",
                transactions_saved, settings_saved,
            )
        report.saved = transactions_saved and settings_saved
        self.last_report = report
        return report.saved
