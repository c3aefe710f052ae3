from datetime import date

import pandas as pd
import pytest

from budget_cycle.aggregation import (
    expense_by_category,
    filter_by_category,
    filter_by_date_range,
    monthly_totals,
    net_amount,
    summarize,
    total_expense,
    total_income,
    transactions_to_frame,
)
from budget_cycle.models import Transaction


def _txn(day, amount, category='Food', is_expense=True):
    return Transaction(date=day, amount=amount, category=category, is_expense=is_expense)


def _build_transactions():
    return [
        _txn('2024-01-20', 100, 'Food'),
        _txn('2024-02-10', 50, 'Food'),
        _txn('2024-02-20', 1000, 'Salary', is_expense=False),
        _txn('2024-01-25', 300, 'Savings'),
        _txn('2024-02-14', 40, 'Transport'),
    ]


def test_totals():
    transactions = _build_transactions()
    assert total_income(transactions) == 1000
    assert total_expense(transactions) == 490
    assert net_amount(transactions) == 510


def test_totals_of_empty_collection_are_zero():
    summary = summarize([])
    assert summary.total_income == 0
    assert summary.total_expense == 0
    assert summary.net_amount == 0
    assert summary.transaction_count == 0


def test_summarize_range_is_inclusive():
    summary = summarize(_build_transactions(), date(2024, 1, 20), date(2024, 2, 14))
    assert summary.total_expense == 490
    assert summary.total_income == 0
    assert summary.transaction_count == 4
    assert summary.to_dict()['net_amount'] == -490


def test_filters():
    transactions = _build_transactions()
    in_range = filter_by_date_range(transactions, date(2024, 2, 10), date(2024, 2, 14))
    assert [txn.amount for txn in in_range] == [50, 40]
    assert len(filter_by_date_range(transactions)) == len(transactions)
    assert [txn.amount for txn in filter_by_category(transactions, 'Food')] == [100, 50]
    assert filter_by_category(transactions, 'food') == []


def test_expense_by_category_excludes_income_and_reserved_category():
    totals = expense_by_category(_build_transactions(), exclude='Savings')
    assert totals == {'Food': 150.0, 'Transport': 40.0}
    assert expense_by_category([]) == {}


def test_frame_has_datetime_dates():
    df = transactions_to_frame(_build_transactions())
    assert len(df) == 5
    assert pd.api.types.is_datetime64_any_dtype(df['date'])
    empty = transactions_to_frame([])
    assert empty.empty


def test_monthly_totals_groups_by_financial_month():
    months = [pd.Period('2023-12', freq='M'), pd.Period('2024-01', freq='M'), pd.Period('2024-02', freq='M')]
    totals = monthly_totals(_build_transactions(), 15, months, exclude_category='Savings')

    assert list(totals.index) == months
    assert totals.loc[months[0], 'count'] == 0
    assert totals.loc[months[1], 'expense'] == pytest.approx(190)
    assert totals.loc[months[1], 'income'] == 0
    assert totals.loc[months[1], 'count'] == 3
    assert totals.loc[months[2], 'income'] == pytest.approx(1000)
    assert totals.loc[months[2], 'count'] == 1


def test_monthly_totals_without_transactions():
    months = [pd.Period('2024-01', freq='M')]
    totals = monthly_totals([], 1, months)
    assert totals.loc[months[0], 'count'] == 0
    assert totals.loc[months[0], 'expense'] == 0
