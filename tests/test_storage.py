import json
import sqlite3

import pytest

from budget_cycle.models import SavingGoal, Settings, SpecialDate, Transaction, format_month
from budget_cycle.storage import JsonSettingsStore, SETTINGS_VERSION, SqliteTransactionStore


def _build_transactions():
    return [
        Transaction(date='2024-01-20', amount=5000, category='Salary', is_expense=False, description='Pay'),
        Transaction(date='2024-01-22', amount=42.5, category='Food', participant='Alex', notes='lunch'),
        Transaction(date='2024-02-01', amount=500, category='Savings'),
    ]


def _by_id(transactions):
    return sorted(transactions, key=lambda txn: txn.id)


def test_sqlite_roundtrip(tmp_path):
    db_path = tmp_path / 'nested' / 'transactions.db'
    original = _build_transactions()
    assert SqliteTransactionStore(db_path).save_all(original) is True

    loaded = SqliteTransactionStore(db_path).load_all()
    assert _by_id(loaded) == _by_id(original)
    assert [txn.date.isoformat() for txn in loaded] == ['2024-01-20', '2024-01-22', '2024-02-01']


def test_sqlite_save_replaces_collection(tmp_path):
    store = SqliteTransactionStore(tmp_path / 'transactions.db')
    store.save_all(_build_transactions())
    kept = Transaction(date='2024-03-01', amount=10, category='Food')
    assert store.save_all([kept]) is True
    assert store.load_all() == [kept]


def test_sqlite_empty_database(tmp_path):
    assert SqliteTransactionStore(tmp_path / 'transactions.db').load_all() == []


def test_sqlite_skips_invalid_rows(tmp_path):
    db_path = tmp_path / 'transactions.db'
    store = SqliteTransactionStore(db_path)
    store.save_all(_build_transactions())
    conn = sqlite3.connect(str(db_path))
    with conn:
        conn.execute(
            "INSERT INTO transactions (id, transaction_date, amount, category, is_expense) "
            "VALUES ('bad', '2024-01-01', -10, 'Food', 1)"
        )
    conn.close()
    loaded = SqliteTransactionStore(db_path).load_all()
    assert len(loaded) == 3
    assert 'bad' not in {txn.id for txn in loaded}


def _build_settings():
    return Settings(
        month_start_day=15,
        monthly_budget=3100,
        last_month_closed='2024-02',
        overall_account_balance=1234.5,
        expense_categories=['Food', 'Savings'],
        saving_goals=[SavingGoal(name='Car', target_amount=8000, monthly_contribution=300,
                                 start_date='2024-01-01', current_amount=600)],
        special_dates=[SpecialDate(name='Birthday', date='2020-06-02', affected_category='Gifts',
                                   amount_increase=150, recurring=True)],
    )


def test_json_settings_roundtrip(tmp_path):
    path = tmp_path / 'settings.json'
    store = JsonSettingsStore(path)
    store.settings = _build_settings()
    assert store.save() is True

    payload = json.loads(path.read_text(encoding='utf-8'))
    assert payload['version'] == SETTINGS_VERSION
    assert 'saved_at' in payload
    assert payload['settings']['last_month_closed'] == '2024-02'

    reloaded = JsonSettingsStore(path).settings
    assert reloaded == store.settings
    assert format_month(reloaded.last_month_closed) == '2024-02'


def test_missing_settings_file_gives_defaults(tmp_path):
    settings = JsonSettingsStore(tmp_path / 'missing.json').settings
    assert settings == Settings()


@pytest.mark.parametrize('content', [
    '{not json',
    '[1, 2, 3]',
    json.dumps({'settings': {'month_start_day': 40}}),
])
def test_unreadable_settings_fall_back_to_defaults(tmp_path, content):
    path = tmp_path / 'settings.json'
    path.write_text(content, encoding='utf-8')
    assert JsonSettingsStore(path).settings == Settings()


def test_reload_discards_unsaved_changes(tmp_path):
    store = JsonSettingsStore(tmp_path / 'settings.json')
    store.settings.monthly_budget = 1
    assert store.reload().monthly_budget == Settings().monthly_budget


def test_settings_save_failure_returns_false(tmp_path):
    store = JsonSettingsStore(tmp_path)
    assert store.settings == Settings()
    assert store.save() is False


def _write_settings(path, settings):
    path.write_text(json.dumps({'settings': settings, 'version': SETTINGS_VERSION}), encoding='utf-8')


def test_invalid_goal_is_skipped_without_losing_settings(tmp_path):
    path = tmp_path / 'settings.json'
    _write_settings(path, {
        'month_start_day': 10,
        'last_month_closed': '2024-02',
        'overall_account_balance': 12345,
        'saving_goals': [
            {'name': 'Broken', 'target_amount': 0, 'monthly_contribution': 50, 'start_date': '2024-01-01'},
            {'name': 'Car', 'target_amount': 8000, 'monthly_contribution': 300, 'start_date': '2024-01-01'},
            'not a goal',
        ],
        'special_dates': [
            {'name': 'Bad rule', 'date': '2024-05-01', 'affected_category': 'Fun',
             'recurring': True, 'recurrence_type': 'WEEKLY'},
            {'name': 'Trip', 'date': '2024-07-01', 'affected_category': 'Travel', 'amount_increase': 300},
        ],
    })

    store = JsonSettingsStore(path)
    assert store.load_error is None
    assert store.settings.month_start_day == 10
    assert format_month(store.settings.last_month_closed) == '2024-02'
    assert store.settings.overall_account_balance == 12345
    assert [goal.name for goal in store.settings.saving_goals] == ['Car']
    assert [special.name for special in store.settings.special_dates] == ['Trip']


def test_unusable_document_is_not_overwritten(tmp_path):
    path = tmp_path / 'settings.json'
    _write_settings(path, {'month_start_day': 40, 'last_month_closed': '2024-02', 'overall_account_balance': 500})
    before = path.read_text(encoding='utf-8')

    store = JsonSettingsStore(path)
    assert store.settings == Settings()
    assert store.load_error is not None
    assert store.save() is False
    assert path.read_text(encoding='utf-8') == before


def test_reload_after_repair_allows_saving(tmp_path):
    path = tmp_path / 'settings.json'
    _write_settings(path, {'month_start_day': 40})
    store = JsonSettingsStore(path)
    assert store.save() is False

    _write_settings(path, {'month_start_day': 12})
    assert store.reload().month_start_day == 12
    assert store.load_error is None
    assert store.save() is True
