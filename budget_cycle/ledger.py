"""Whole-collection transaction access on top of a transaction store."""

from __future__ import annotations

from datetime import date
from typing import Any, List, Sequence

from .aggregation import filter_by_category, filter_by_date_range
from .financial_month import financial_month_range
from .models import Transaction


class TransactionLedger:
    """CRUD helpers that always re-fetch and re-save the full collection."""

    def __init__(self, store: Any) -> None:
        self.store = store

    def all(self) -> List[Transaction]:
        return self.store.load_all()

    def save_all(self, transactions: Sequence[Transaction]) -> bool:
        return self.store.save_all(list(transactions))

    def for_range(self, start: date, end: date) -> List[Transaction]:
        return filter_by_date_range(self.all(), start, end)

    def for_month(self, year: int, month: int, start_day: int) -> List[Transaction]:
        """Transactions in the financial month ``(year, month)``."""
        start, end = financial_month_range(year, month, start_day)
        return self.for_range(start, end)

    def for_category(self, category: str) -> List[Transaction]:
        return filter_by_category(self.all(), category)

    def add(self, transaction: Transaction) -> bool:
        transactions = self.all()
        transactions.append(transaction)
        return self.save_all(transactions)

    def update(self, transaction: Transaction) -> bool:
        """Replace the stored transaction with the same id; False if it is unknown."""
        transactions = self.all()
        for index, existing in enumerate(transactions):
            if existing.id == transaction.id:
                transactions[index] = transaction
                return self.save_all(transactions)
        return False

    def delete(self, transaction_id: str) -> bool:
        transactions = self.all()
        remaining = [txn for txn in transactions if txn.id != transaction_id]
        if len(remaining) == len(transactions):
            return False
        return self.save_all(remaining)
