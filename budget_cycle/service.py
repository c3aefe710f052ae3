"""Programmatic entry points of the financial cycle engine.

:class:`FinancialCycleService` owns one transaction store and one settings
store and is the single writer of the settings it holds. Callers must not run
its operations concurrently; run month-end closing before forecasting so the
forecast sees the latest closed history.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional

from . import config
from .closing import MonthEndCloser
from .forecast import BudgetForecaster, ForecastResult
from .ledger import TransactionLedger
from .models import MonthLike, Settings, normalize_category
from .savings import SavingsContributionProcessor
from .storage import JsonSettingsStore, SqliteTransactionStore

logger = logging.getLogger(__name__)


class FinancialCycleService:
    """Month-end closing, savings contributions and budget forecasts."""

    def __init__(
        self,
        transaction_store: Any,
        settings_store: Any,
        savings_category: str = config.SAVINGS_CATEGORY,
        today: Optional[Callable[[], date]] = None,
        **closer_options: Any,
    ) -> None:
        self.ledger = TransactionLedger(transaction_store)
        self.settings_store = settings_store
        self.savings_category = savings_category
        self.today = today or date.today
        self.forecaster = BudgetForecaster(
            settings_store,
            self.ledger.all,
            savings_category=savings_category,
            today=self.today,
        )
        self.closer = MonthEndCloser(
            self.ledger,
            settings_store,
            self.forecaster,
            savings_category=savings_category,
            today=self.today,
            **closer_options,
        )

    @classmethod
    def from_config(
        cls,
        db_path: Optional[Path] = None,
        settings_path: Optional[Path] = None,
    ) -> 'FinancialCycleService':
        """Service backed by the configured SQLite database and settings file."""
        config.ensure_data_directories()
        return cls(
            SqliteTransactionStore(db_path or config.DB_PATH),
            JsonSettingsStore(settings_path or config.SETTINGS_PATH),
        )

    @property
    def settings(self) -> Settings:
        return self.settings_store.settings

    def perform_month_end_closing(self) -> bool:
        return self.closer.perform()

    def forecast_next_month_budget(self, window_months: int = config.CLOSING_FORECAST_WINDOW) -> ForecastResult:
        return self.forecaster.forecast_next_month(window_months)

    def forecast_budget_for_month(
        self,
        target_month: MonthLike,
        window_months: int = config.DEFAULT_FORECAST_WINDOW,
    ) -> ForecastResult:
        return self.forecaster.forecast(target_month, window_months)

    def save_forecast(self) -> bool:
        return self.forecaster.save_forecast()

    def process_monthly_savings_contributions(
        self,
        target_month: MonthLike,
        day: int,
        category: Optional[str] = None,
    ) -> bool:
        """Contribute to saving goals for ``target_month`` and persist the result.

        Returns:
            True if contributions were made and both stores saved them.
        """
        category = normalize_category(category or self.savings_category)
        transactions = self.ledger.all()
        processor = SavingsContributionProcessor(self.settings.saving_goals, transactions)
        if not processor.process(target_month, day, category):
            return False
        self.settings.register_expense_category(category)

        transactions_saved = self.ledger.save_all(transactions)
        settings_saved = self.settings_store.save()
        if transactions_saved and settings_saved:
            logger.info(
                "Successfully processed and saved %d monthly savings contributions",
                len(processor.last_contributions),
            )
            return True
        logger.warning(
            "Failed to save all data after processing savings contributions. "
            "Transactions saved: %s, Settings saved: %s",
            transactions_saved, settings_saved,
        )
        return False
