"""Budget forecasting for the next financial month.

The forecast combines three parts:

* a base budget projected from the expense history of a trailing window of
  financial months (savings-goal transactions excluded), using a least-squares
  line through the monthly totals; the plain mean is reported alongside it,
* additive special-date deltas for the target month,
* the monthly contributions of saving goals that are active during the target
  month.

The base budget is also spread over categories using each category's share of
the window's expense, and special-date deltas are added on top of their
category.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from . import config
from .aggregation import expense_by_category, filter_by_date_range, monthly_totals
from .financial_month import FinancialMonthCalculator
from .models import MonthLike, SavingGoal, Settings, SpecialDate, Transaction, format_month, parse_month
from .special_dates import SpecialDateAdjuster

logger = logging.getLogger(__name__)

REGRESSION_EPSILON = 1e-8


def mean_estimate(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def linear_regression_forecast(values: Sequence[float]) -> float:
    """Fit ``y = a + b*x`` over ``x = 1..n`` and project ``x = n + 1``.

    Example:
        >>> linear_regression_forecast([100, 200, 300])
        400.0
    """
    y = np.asarray(values, dtype=float)
    n = len(y)
    if n == 0:
        return 0.0
    x = np.arange(1, n + 1, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = (x * y).sum()
    sum_xx = (x * x).sum()
    denominator = n * sum_xx - sum_x ** 2
    if abs(denominator) < REGRESSION_EPSILON:
        denominator = REGRESSION_EPSILON
    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return float(intercept + slope * (n + 1))


def category_ratios(totals: Dict[str, float]) -> Dict[str, float]:
    """Each category's share of the summed totals."""
    grand_total = sum(totals.values())
    if grand_total <= 0:
        return {}
    return {category: amount / grand_total for category, amount in totals.items()}


@dataclass
class ForecastResult:
    target_month: pd.Period
    window_months: int
    months_analyzed: int = 0
    mean_budget: float = 0.0
    base_budget: float = 0.0
    special_day_total: float = 0.0
    saving_goal_total: float = 0.0
    category_allocation: Dict[str, float] = field(default_factory=dict)
    category_ratios: Dict[str, float] = field(default_factory=dict)
    special_dates: List[SpecialDate] = field(default_factory=list)
    average_income: float = 0.0
    average_expense: float = 0.0
    average_balance: float = 0.0

    @property
    def final_budget(self) -> float:
        return self.base_budget + self.special_day_total + self.saving_goal_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            'target_month': format_month(self.target_month),
            'window_months': self.window_months,
            'months_analyzed': self.months_analyzed,
            'mean_budget': self.mean_budget,
            'base_budget': self.base_budget,
            'special_day_total': self.special_day_total,
            'saving_goal_total': self.saving_goal_total,
            'final_budget': self.final_budget,
            'category_allocation': dict(self.category_allocation),
            'category_ratios': dict(self.category_ratios),
            'special_dates': [special.name for special in self.special_dates],
            'average_income': self.average_income,
            'average_expense': self.average_expense,
            'average_balance': self.average_balance,
        }


class BudgetForecaster:
    """Forecasts monthly budgets and writes them back to the settings."""

    def __init__(
        self,
        settings_store: Any,
        load_transactions: Callable[[], List[Transaction]],
        savings_category: str = config.SAVINGS_CATEGORY,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.settings_store = settings_store
        self.load_transactions = load_transactions
        self.savings_category = savings_category
        self.today = today or date.today
        self.forecasted_budgets: Dict[pd.Period, float] = {}
        self.last_forecast: Optional[ForecastResult] = None
        self._restore_current_budget()

    @property
    def settings(self) -> Settings:
        return self.settings_store.settings

    # Public API -------------------------------------------------------------

    def forecast(
        self,
        target_month: MonthLike,
        months: int = config.DEFAULT_FORECAST_WINDOW,
        transactions: Optional[Sequence[Transaction]] = None,
    ) -> ForecastResult:
        """Forecast the budget of ``target_month`` from the preceding ``months``."""
        target = parse_month(target_month)
        if transactions is None:
            transactions = self.load_transactions()
        calculator = FinancialMonthCalculator(self.settings.month_start_day)
        result = ForecastResult(target_month=target, window_months=max(months, 0))

        if months > 0:
            self._apply_history(result, calculator, transactions)
        else:
            logger.warning("Forecast window must be positive, got %s", months)

        adjuster = SpecialDateAdjuster(self.settings.special_dates)
        adjustments = adjuster.adjustments_for_month(target)
        result.special_dates = adjuster.special_dates_for_month(target)
        result.special_day_total = float(sum(adjustments.values()))

        window_start, window_end = calculator.range_for(target)
        goals = self._goals_active_between(window_start, window_end)
        result.saving_goal_total = float(sum(goal.monthly_contribution for goal in goals))

        allocation = {
            category: result.base_budget * ratio
            for category, ratio in result.category_ratios.items()
        }
        for category, delta in adjustments.items():
            allocation[category] = allocation.get(category, 0.0) + delta
        result.category_allocation = allocation

        self.forecasted_budgets[target] = result.final_budget
        self.last_forecast = result
        logger.info(
            "Forecast for %s: %.2f (base %.2f, special dates %.2f, saving goals %.2f, %d of %d months analyzed)",
            format_month(target), result.final_budget, result.base_budget,
            result.special_day_total, result.saving_goal_total, result.months_analyzed, months,
        )
        return result

    def forecast_next_month(self, months: int = config.CLOSING_FORECAST_WINDOW) -> ForecastResult:
        calculator = FinancialMonthCalculator(self.settings.month_start_day)
        return self.forecast(calculator.current_month(self.today()) + 1, months)

    def budget_for_month(self, month: MonthLike) -> float:
        """Forecast for ``month``, else the previous month's, else the settings budget."""
        target = parse_month(month)
        if target in self.forecasted_budgets:
            return self.forecasted_budgets[target]
        if target - 1 in self.forecasted_budgets:
            return self.forecasted_budgets[target - 1]
        return self.settings.monthly_budget

    def apply_forecast(self) -> bool:
        """Copy the last final budget into ``settings.monthly_budget`` without saving."""
        if self.last_forecast is None or self.last_forecast.final_budget <= 0:
            logger.warning("No valid forecast budget to apply")
            return False
        self.settings.monthly_budget = self.last_forecast.final_budget
        return True

    def save_forecast(self) -> bool:
        if not self.apply_forecast():
            return False
        saved = self.settings_store.save()
        if saved:
            logger.info("Saved forecast budget %.2f as the new monthly budget", self.settings.monthly_budget)
        else:
            logger.warning("Failed to save forecast budget to settings")
        return saved

    # Internal ---------------------------------------------------------------

    def _restore_current_budget(self) -> None:
        """Seed the month after the watermark with the budget closing stored for it."""
        last_closed = self.settings.last_month_closed
        if last_closed is None:
            return
        self.forecasted_budgets[last_closed + 1] = self.settings.monthly_budget
        logger.info(
            "Restored forecast budget for %s from settings: %.2f",
            format_month(last_closed + 1), self.settings.monthly_budget,
        )

    def _apply_history(
        self,
        result: ForecastResult,
        calculator: FinancialMonthCalculator,
        transactions: Sequence[Transaction],
    ) -> None:
        window = [result.target_month - offset for offset in range(result.window_months, 0, -1)]
        totals = monthly_totals(
            transactions,
            calculator.start_day,
            window,
            exclude_category=self.savings_category,
        )
        analyzed = totals[totals['count'] > 0]
        result.months_analyzed = len(analyzed)
        if analyzed.empty:
            logger.warning(
                "No transactions in the %d months before %s to forecast from",
                result.window_months, format_month(result.target_month),
            )
            return

        expenses = analyzed['expense'].tolist()
        result.mean_budget = mean_estimate(expenses)
        result.base_budget = linear_regression_forecast(expenses)
        result.average_income = float(analyzed['income'].mean())
        result.average_expense = float(analyzed['expense'].mean())
        result.average_balance = result.average_income - result.average_expense

        window_start = calculator.range_for(window[0])[0]
        window_end = calculator.range_for(window[-1])[1]
        in_window = filter_by_date_range(transactions, window_start, window_end)
        result.category_ratios = category_ratios(
            expense_by_category(in_window, exclude=self.savings_category)
        )

    def _goals_active_between(self, start: date, end: date) -> List[SavingGoal]:
        return [
            goal for goal in self.settings.active_saving_goals()
            if goal.monthly_contribution > 0
            and goal.start_date <= end
            and (goal.target_date is None or goal.target_date >= start)
        ]
