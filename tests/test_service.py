from datetime import date

import pandas as pd
import pytest

from budget_cycle import config
from budget_cycle.models import SavingGoal, Settings, Transaction
from budget_cycle.service import FinancialCycleService
from budget_cycle.storage import InMemorySettingsStore, InMemoryTransactionStore, JsonSettingsStore


def _build_service(transactions=None, settings=None, today=date(2024, 4, 10)):
    txn_store = InMemoryTransactionStore(transactions or [])
    settings_store = InMemorySettingsStore(settings or Settings())
    service = FinancialCycleService(txn_store, settings_store, today=lambda: today, process_savings=False)
    return service, txn_store, settings_store


def test_process_savings_contributions_persists_both_stores():
    goal = SavingGoal(name='Trip', target_amount=1200, monthly_contribution=100, start_date='2024-01-01')
    service, txn_store, settings_store = _build_service(
        settings=Settings(saving_goals=[goal], expense_categories=['Food']),
    )

    assert service.process_monthly_savings_contributions('2024-04', 25, ' Goals ') is True
    stored = txn_store.load_all()
    assert len(stored) == 1
    assert stored[0].category == 'Goals'
    assert stored[0].date == date(2024, 4, 25)
    assert goal.current_amount == 100
    assert settings_store.settings.expense_categories == ['Food', 'Goals']
    assert settings_store.save_count == 1


def test_process_savings_without_goals_saves_nothing():
    service, txn_store, settings_store = _build_service(settings=Settings(expense_categories=['Food']))
    assert service.process_monthly_savings_contributions('2024-04', 1) is False
    assert txn_store.load_all() == []
    assert settings_store.settings.expense_categories == ['Food']
    assert settings_store.save_count == 0


def test_forecast_entry_points():
    transactions = [
        Transaction(date='2024-01-10', amount=100, category='Food'),
        Transaction(date='2024-02-10', amount=200, category='Food'),
        Transaction(date='2024-03-10', amount=300, category='Food'),
    ]
    service, _, settings_store = _build_service(transactions)

    monthly = service.forecast_budget_for_month('2024-04')
    assert monthly.window_months == config.DEFAULT_FORECAST_WINDOW
    assert monthly.base_budget == pytest.approx(400)

    upcoming = service.forecast_next_month_budget(3)
    assert upcoming.target_month == pd.Period('2024-05', freq='M')
    assert upcoming.months_analyzed == 2

    assert service.save_forecast() is True
    assert settings_store.settings.monthly_budget == pytest.approx(upcoming.final_budget)


def test_from_config_uses_given_paths(tmp_path, monkeypatch):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.setattr(config, 'DB_PATH', tmp_path / 'data' / 'transactions.db')
    monkeypatch.setattr(config, 'SETTINGS_PATH', tmp_path / 'data' / 'settings.json')

    service = FinancialCycleService.from_config(tmp_path / 'db.sqlite', tmp_path / 'settings.json')
    assert isinstance(service.settings_store, JsonSettingsStore)
    assert service.settings == Settings()
    assert service.perform_month_end_closing() is False
    assert (tmp_path / 'data').is_dir()
