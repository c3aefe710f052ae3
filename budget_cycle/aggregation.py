"""Income, expense and net totals over transaction collections.

Transactions arrive as unordered lists from the transaction store. Totals are
computed in a single pass; the frame helpers are used for the grouped
per-month and per-category views the forecaster needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .financial_month import financial_month_of
from .models import Transaction

FRAME_COLUMNS = [
    'id', 'date', 'amount', 'category', 'is_expense', 'description', 'participant', 'notes',
]


@dataclass
class TransactionSummary:
    total_income: float = 0.0
    total_expense: float = 0.0
    transaction_count: int = 0

    @property
    def net_amount(self) -> float:
        return self.total_income - self.total_expense

    def to_dict(self) -> Dict[str, float]:
        return {
            'total_income': self.total_income,
            'total_expense': self.total_expense,
            'net_amount': self.net_amount,
            'transaction_count': self.transaction_count,
        }


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Convert transactions into a DataFrame with a datetime ``date`` column."""
    rows = [txn.to_dict() for txn in transactions]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['date'] = pd.to_datetime(df['date'])
    df['amount'] = pd.to_numeric(df['amount'], errors='coerce').fillna(0.0)
    df['is_expense'] = df['is_expense'].astype(bool)
    return df


def _in_range(day: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def filter_by_date_range(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Transaction]:
    """Transactions dated within ``[start, end]`` (both inclusive, both optional)."""
    return [txn for txn in transactions if _in_range(txn.date, start, end)]


def filter_by_category(transactions: Iterable[Transaction], category: str) -> List[Transaction]:
    return [txn for txn in transactions if txn.category == category]


def summarize(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> TransactionSummary:
    """Total income, expense and count, optionally restricted to a date range."""
    summary = TransactionSummary()
    for txn in transactions:
        if not _in_range(txn.date, start, end):
            continue
        if txn.is_expense:
            summary.total_expense += txn.amount
        else:
            summary.total_income += txn.amount
        summary.transaction_count += 1
    return summary


def total_income(transactions: Iterable[Transaction]) -> float:
    return summarize(transactions).total_income


def total_expense(transactions: Iterable[Transaction]) -> float:
    return summarize(transactions).total_expense


def net_amount(transactions: Iterable[Transaction]) -> float:
    return summarize(transactions).net_amount


def expense_by_category(
    transactions: Iterable[Transaction],
    exclude: Optional[str] = None,
) -> Dict[str, float]:
    """Sum expense amounts per category, skipping ``exclude``."""
    df = transactions_to_frame(transactions)
    expense = df[df['is_expense']]
    if exclude is not None:
        expense = expense[expense['category'] != exclude]
    if expense.empty:
        return {}
    grouped = expense.groupby('category')['amount'].sum()
    return {str(category): float(amount) for category, amount in grouped.items()}


def monthly_totals(
    transactions: Iterable[Transaction],
    start_day: int,
    months: Sequence[pd.Period],
    exclude_category: Optional[str] = None,
) -> pd.DataFrame:
    """Per financial month income, expense and transaction count.

    Returns a DataFrame indexed by ``months`` (in the given order) with columns
    ``income``, ``expense`` and ``count``. Months without transactions have a
    zero count. Transactions in ``exclude_category`` are ignored entirely.
    """
    index = pd.PeriodIndex(list(months), freq='M', name='month')
    empty = pd.DataFrame({'income': 0.0, 'expense': 0.0, 'count': 0}, index=index)
    df = transactions_to_frame(transactions)
    if exclude_category is not None:
        df = df[df['category'] != exclude_category]
    if df.empty or index.empty:
        return empty

    df = df.assign(month=[financial_month_of(ts.date(), start_day) for ts in df['date']])
    df = df[df['month'].isin(list(index))]
    if df.empty:
        return empty

    df = df.assign(
        income=df['amount'].where(~df['is_expense'], 0.0),
        expense=df['amount'].where(df['is_expense'], 0.0),
    )
    grouped = df.groupby('month').agg(
        income=('income', 'sum'),
        expense=('expense', 'sum'),
        count=('id', 'count'),
    )
    grouped.index = pd.PeriodIndex(grouped.index, freq='M', name='month')
    result = grouped.reindex(index, fill_value=0)
    return result.astype({'income': float, 'expense': float, 'count': int})
