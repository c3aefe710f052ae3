"""Automated savings-goal contributions.

For a target month every active, incomplete goal with a positive monthly
contribution produces one synthetic expense transaction in the savings
category, capped at the amount still missing from the goal.

The processor mutates the goals and the transaction list it is given and does
not persist anything. It also does not remember which months it processed:
calling it twice for the same month contributes twice, so callers must invoke
it once per month (month-end closing does exactly that).
"""

from __future__ import annotations

import logging
from datetime import date
from typing import List, MutableSequence, Optional, Sequence

from .models import MonthLike, SavingGoal, Transaction, days_in_month, month_of, parse_month

logger = logging.getLogger(__name__)

CONTRIBUTION_PARTICIPANT = 'Self'


def contribution_date(year_month: MonthLike, transaction_day: int) -> date:
    """``transaction_day`` of the month, clamped to the month's last day."""
    month = parse_month(year_month)
    day = max(1, min(transaction_day, days_in_month(month.year, month.month)))
    return date(month.year, month.month, day)


def window_contribution_date(start: date, end: date, transaction_day: int) -> date:
    """First ``transaction_day`` on or after ``start``, kept within ``[start, end]``.

    A financial month spans two calendar months, so a day earlier than the
    start day falls in the second one.
    """
    candidate = contribution_date(month_of(start), transaction_day)
    if candidate < start:
        candidate = contribution_date(month_of(start) + 1, transaction_day)
    return min(max(candidate, start), end)


def contribution_amount(goal: SavingGoal) -> float:
    """Monthly contribution, never more than what is left to reach the target."""
    return min(goal.monthly_contribution, goal.remaining_amount)


class SavingsContributionProcessor:
    """Emits savings transactions and advances goal progress."""

    def __init__(self, goals: Sequence[SavingGoal], transactions: MutableSequence[Transaction]) -> None:
        self.goals = goals
        self.transactions = transactions
        self.last_contributions: List[Transaction] = []

    def eligible_goals(self, on_day: date) -> List[SavingGoal]:
        return [
            goal for goal in self.goals
            if goal.is_active
            and not goal.is_completed
            and goal.monthly_contribution > 0
            and goal.accepts_contribution_on(on_day)
        ]

    def process(
        self,
        target_month: MonthLike,
        transaction_day: int,
        category: str,
        on_date: Optional[date] = None,
    ) -> bool:
        """Contribute to every eligible goal for ``target_month``.

        ``on_date`` overrides the contribution date derived from
        ``target_month`` and ``transaction_day``.

        Returns:
            True if at least one contribution was recorded, False otherwise.
        """
        self.last_contributions = []
        if not self.goals:
            logger.info("No saving goals found to process contributions")
            return False

        txn_date = on_date or contribution_date(target_month, transaction_day)
        for goal in self.eligible_goals(txn_date):
            amount = contribution_amount(goal)
            if amount <= 0:
                continue
            txn = Transaction(
                date=txn_date,
                amount=amount,
                category=category,
                is_expense=True,
                description=f"Savings contribution for: {goal.name}",
                participant=CONTRIBUTION_PARTICIPANT,
                notes=f"Automated monthly savings for goal ID: {goal.id}",
            )
            self.transactions.append(txn)
            self.last_contributions.append(txn)
            goal.add_contribution(amount)
            logger.info("Contributed %.2f to saving goal '%s' on %s", amount, goal.name, txn_date)
            if goal.is_completed:
                logger.info("Saving goal '%s' completed!", goal.name)

        return bool(self.last_contributions)
