"""Domain records for the financial cycle engine.

Transactions, saving goals, special dates and the settings document the
engine reads and writes. Months are represented as monthly ``pandas.Period``
values throughout; :func:`parse_month` and :func:`format_month` convert them
to and from the persisted ``"YYYY-MM"`` form.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Union

import pandas as pd

logger = logging.getLogger(__name__)

MONTH_FREQ = 'M'
MIN_MONTH_START_DAY = 1
MAX_MONTH_START_DAY = 28

DEFAULT_EXPENSE_CATEGORIES = [
    'Food', 'Shopping', 'Transport', 'Housing', 'Entertainment',
    'Medical', 'Education', 'Communication', 'Other',
]
DEFAULT_INCOME_CATEGORIES = ['Salary', 'Bonus', 'Investment', 'Other Income']

MonthLike = Union[pd.Period, str, date, None]


class InvalidConfigurationError(ValueError):
    """Raised when a settings value is rejected at mutation time."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_date(value: Any) -> Optional[date]:
    """Coerce strings, timestamps and datetimes into a plain ``date``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value, errors='coerce')
    if pd.isna(ts):
        raise ValueError(f"Unparseable date: {value!r}")
    return ts.date()


def parse_month(value: MonthLike) -> Optional[pd.Period]:
    """Return a monthly Period for ``value`` or None when it is empty.

    Raises:
        ValueError: If ``value`` is a non-empty string that is not a month.
    """
    if value is None:
        return None
    if isinstance(value, pd.Period):
        return value.asfreq(MONTH_FREQ)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return pd.Period(text, freq=MONTH_FREQ)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid month {value!r}, expected YYYY-MM") from e
    if isinstance(value, date):
        return month_of(value)
    raise ValueError(f"Invalid month {value!r}, expected YYYY-MM")


def format_month(period: Optional[pd.Period]) -> Optional[str]:
    if period is None:
        return None
    return period.strftime('%Y-%m')


def month_of(day: date) -> pd.Period:
    """Calendar month containing ``day``."""
    return pd.Period(year=day.year, month=day.month, day=1, freq=MONTH_FREQ)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def validate_month_start_day(day: int) -> int:
    if isinstance(day, bool) or not isinstance(day, int):
        raise InvalidConfigurationError(f"Month start day must be an integer, got {day!r}")
    if day < MIN_MONTH_START_DAY or day > MAX_MONTH_START_DAY:
        raise InvalidConfigurationError(
            f"Month start day must be between {MIN_MONTH_START_DAY} and {MAX_MONTH_START_DAY}"
        )
    return day


def normalize_category(name: Any) -> str:
    """Strip a category name; categories are otherwise matched case-sensitively."""
    if name is None:
        return ''
    return str(name).strip()


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class CategoryRegistry:
    """Runtime-extensible set of user categories."""

    def __init__(self, names: Optional[Iterable[str]] = None) -> None:
        self._names: Set[str] = set()
        for name in names or []:
            self.add(name)

    def add(self, name: Any) -> str:
        category = normalize_category(name)
        if not category:
            raise ValueError("Category name cannot be empty")
        self._names.add(category)
        return category

    def __contains__(self, name: object) -> bool:
        return normalize_category(name) in self._names

    def __len__(self) -> int:
        return len(self._names)

    def names(self) -> List[str]:
        return sorted(self._names)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    """A single income or expense record.

    ``amount`` is always a non-negative magnitude; the direction is carried by
    ``is_expense``. Instances are immutable, use :meth:`with_changes` to build
    a replacement with the same id.
    """

    date: date
    amount: float
    category: str
    is_expense: bool = True
    description: str = ''
    participant: str = ''
    notes: str = ''
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        object.__setattr__(self, 'date', to_date(self.date))
        if self.date is None:
            raise ValueError("Transaction date is required")
        amount = float(self.amount)
        if pd.isna(amount) or amount < 0:
            raise ValueError(f"Transaction amount must be a non-negative number, got {self.amount!r}")
        object.__setattr__(self, 'amount', amount)
        object.__setattr__(self, 'category', normalize_category(self.category))
        object.__setattr__(self, 'is_expense', bool(self.is_expense))

    @property
    def signed_amount(self) -> float:
        return -self.amount if self.is_expense else self.amount

    def with_changes(self, **changes: Any) -> 'Transaction':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'date': self.date.isoformat(),
            'amount': self.amount,
            'category': self.category,
            'is_expense': self.is_expense,
            'description': self.description,
            'participant': self.participant,
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        kwargs = {
            'date': data.get('date'),
            'amount': data.get('amount', 0.0),
            'category': data.get('category', ''),
            'is_expense': data.get('is_expense', True),
            'description': data.get('description') or '',
            'participant': data.get('participant') or '',
            'notes': data.get('notes') or '',
        }
        if data.get('id'):
            kwargs['id'] = str(data['id'])
        return cls(**kwargs)


@dataclass
class SavingGoal:
    """A savings target funded by automated monthly contributions."""

    name: str
    target_amount: float
    monthly_contribution: float = 0.0
    start_date: date = field(default_factory=date.today)
    current_amount: float = 0.0
    target_date: Optional[date] = None
    is_active: bool = True
    description: str = ''
    associated_account: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        self.target_amount = float(self.target_amount)
        self.current_amount = float(self.current_amount or 0.0)
        self.monthly_contribution = float(self.monthly_contribution or 0.0)
        if self.target_amount <= 0:
            raise ValueError("Target amount must be positive")
        if self.current_amount < 0:
            raise ValueError("Current amount cannot be negative")
        if self.monthly_contribution < 0:
            raise ValueError("Monthly contribution cannot be negative")
        self.start_date = to_date(self.start_date) or date.today()
        self.target_date = to_date(self.target_date)

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def remaining_amount(self) -> float:
        return max(self.target_amount - self.current_amount, 0.0)

    @property
    def progress_percentage(self) -> float:
        return min(self.current_amount / self.target_amount * 100.0, 100.0)

    def accepts_contribution_on(self, day: date) -> bool:
        """True when ``day`` lies between the start date and optional target date."""
        if day < self.start_date:
            return False
        if self.target_date is not None and day > self.target_date:
            return False
        return True

    def add_contribution(self, amount: float) -> None:
        if amount < 0:
            raise ValueError("Contribution cannot be negative")
        self.current_amount += amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'target_amount': self.target_amount,
            'current_amount': self.current_amount,
            'monthly_contribution': self.monthly_contribution,
            'start_date': self.start_date.isoformat(),
            'target_date': self.target_date.isoformat() if self.target_date else None,
            'is_active': self.is_active,
            'associated_account': self.associated_account,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavingGoal':
        kwargs = {
            'name': data.get('name') or '',
            'target_amount': data.get('target_amount', 0.0),
            'monthly_contribution': data.get('monthly_contribution', 0.0),
            'start_date': data.get('start_date'),
            'current_amount': data.get('current_amount', 0.0),
            'target_date': data.get('target_date'),
            'is_active': bool(data.get('is_active', True)),
            'description': data.get('description') or '',
            'associated_account': data.get('associated_account'),
        }
        if data.get('id'):
            kwargs['id'] = str(data['id'])
        return cls(**kwargs)


class RecurrenceType(str, Enum):
    NONE = 'NONE'
    MONTHLY = 'MONTHLY'
    ANNUALLY = 'ANNUALLY'


@dataclass
class SpecialDate:
    """A dated event that raises the budget of one category.

    Non-recurring dates use ``date`` as-is. Recurring dates repeat on
    ``day_of_month`` every month (MONTHLY) or on ``month_of_year``/``day_of_month``
    every year (ANNUALLY); missing rule fields are taken from ``date``.
    """

    name: str
    date: Optional[date]
    affected_category: str
    amount_increase: float = 0.0
    description: str = ''
    recurring: bool = False
    recurrence_type: RecurrenceType = RecurrenceType.NONE
    day_of_month: int = 0
    month_of_year: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self) -> None:
        self.date = to_date(self.date)
        self.amount_increase = float(self.amount_increase or 0.0)
        self.affected_category = normalize_category(self.affected_category)
        self.recurrence_type = RecurrenceType(self.recurrence_type or RecurrenceType.NONE)
        if not self.recurring:
            self.recurrence_type = RecurrenceType.NONE
            return
        if self.recurrence_type is RecurrenceType.NONE:
            self.recurrence_type = RecurrenceType.ANNUALLY
        if self.date is not None:
            if not self.day_of_month:
                self.day_of_month = self.date.day
            if self.recurrence_type is RecurrenceType.ANNUALLY and not self.month_of_year:
                self.month_of_year = self.date.month

    @property
    def is_recurring(self) -> bool:
        return self.recurring and self.recurrence_type is not RecurrenceType.NONE

    def next_occurrence(self, from_date: date) -> Optional[date]:
        """First occurrence on or after ``from_date``, or None when there is none."""
        if not self.is_recurring:
            if self.date is not None and self.date >= from_date:
                return self.date
            return None

        if not self.day_of_month:
            logger.warning("Special date '%s' has no recurrence day", self.name)
            return None

        if self.recurrence_type is RecurrenceType.MONTHLY:
            year, month = from_date.year, from_date.month
            # 24 months is enough to find any day 1-31.
            for _ in range(24):
                if self.day_of_month <= days_in_month(year, month):
                    candidate = date(year, month, self.day_of_month)
                    if candidate >= from_date:
                        return candidate
                month += 1
                if month > 12:
                    month = 1
                    year += 1
            logger.warning("Could not determine next occurrence for special date '%s' from %s", self.name, from_date)
            return None

        if not self.month_of_year:
            logger.warning("Special date '%s' has no recurrence month", self.name)
            return None
        # Feb 29 needs up to four years to hit a leap year.
        for year in range(from_date.year, from_date.year + 5):
            if self.day_of_month > days_in_month(year, self.month_of_year):
                continue
            candidate = date(year, self.month_of_year, self.day_of_month)
            if candidate >= from_date:
                return candidate
        logger.warning("Could not determine next occurrence for special date '%s' from %s", self.name, from_date)
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'date': self.date.isoformat() if self.date else None,
            'affected_category': self.affected_category,
            'amount_increase': self.amount_increase,
            'recurring': self.recurring,
            'recurrence_type': self.recurrence_type.value,
            'day_of_month': self.day_of_month,
            'month_of_year': self.month_of_year,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpecialDate':
        kwargs = {
            'name': data.get('name') or '',
            'date': data.get('date'),
            'affected_category': data.get('affected_category') or '',
            'amount_increase': data.get('amount_increase', 0.0),
            'description': data.get('description') or '',
            'recurring': bool(data.get('recurring', False)),
            'recurrence_type': data.get('recurrence_type') or RecurrenceType.NONE,
            'day_of_month': int(data.get('day_of_month') or 0),
            'month_of_year': int(data.get('month_of_year') or 0),
        }
        if data.get('id'):
            kwargs['id'] = str(data['id'])
        return cls(**kwargs)


def _load_items(item_type: Any, items: Any) -> List[Any]:
    """Build each stored item, logging and skipping the ones that are invalid."""
    loaded = []
    for item in items or []:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed %s entry %r", item_type.__name__, item)
            continue
        try:
            loaded.append(item_type.from_dict(item))
        except (ValueError, TypeError) as e:
            logger.warning("Skipping invalid %s %r: %s", item_type.__name__, item.get('name'), e)
    return loaded


@dataclass
class Settings:
    """Mutable settings document owned by a single settings store.

    ``last_month_closed`` is the closing watermark and only moves forward;
    ``overall_account_balance`` only changes through closing.
    """

    month_start_day: int = 1
    monthly_budget: float = 5000.0
    last_month_closed: Optional[pd.Period] = None
    overall_account_balance: float = 0.0
    default_currency: str = 'USD'
    expense_categories: List[str] = field(default_factory=lambda: list(DEFAULT_EXPENSE_CATEGORIES))
    income_categories: List[str] = field(default_factory=lambda: list(DEFAULT_INCOME_CATEGORIES))
    saving_goals: List[SavingGoal] = field(default_factory=list)
    special_dates: List[SpecialDate] = field(default_factory=list)

    def __post_init__(self) -> None:
        validate_month_start_day(self.month_start_day)
        self.last_month_closed = parse_month(self.last_month_closed)
        self.monthly_budget = float(self.monthly_budget)
        self.overall_account_balance = float(self.overall_account_balance)

    def set_month_start_day(self, day: int) -> None:
        self.month_start_day = validate_month_start_day(day)

    def advance_watermark(self, month: pd.Period) -> None:
        """Move ``last_month_closed`` to ``month``.

        Raises:
            ValueError: If ``month`` is not after the current watermark.
        """
        month = parse_month(month)
        if self.last_month_closed is not None and month <= self.last_month_closed:
            raise ValueError(
                f"Closing watermark cannot move from {format_month(self.last_month_closed)} "
                f"to {format_month(month)}"
            )
        self.last_month_closed = month

    def active_saving_goals(self) -> List[SavingGoal]:
        return [goal for goal in self.saving_goals if goal.is_active and not goal.is_completed]

    def category_registry(self) -> CategoryRegistry:
        return CategoryRegistry(list(self.expense_categories) + list(self.income_categories))

    def register_expense_category(self, name: str) -> str:
        category = CategoryRegistry().add(name)
        if category not in self.category_registry():
            self.expense_categories.append(category)
        return category

    def to_dict(self) -> Dict[str, Any]:
        return {
            'month_start_day': self.month_start_day,
            'monthly_budget': self.monthly_budget,
            'last_month_closed': format_month(self.last_month_closed),
            'overall_account_balance': self.overall_account_balance,
            'default_currency': self.default_currency,
            'expense_categories': list(self.expense_categories),
            'income_categories': list(self.income_categories),
            'saving_goals': [goal.to_dict() for goal in self.saving_goals],
            'special_dates': [special.to_dict() for special in self.special_dates],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        defaults = cls()
        expense = data.get('expense_categories')
        income = data.get('income_categories')
        try:
            watermark = parse_month(data.get('last_month_closed'))
        except ValueError:
            logger.warning("Could not parse last closed month %r, ignoring it", data.get('last_month_closed'))
            watermark = None
        return cls(
            month_start_day=int(data.get('month_start_day', defaults.month_start_day)),
            monthly_budget=data.get('monthly_budget', defaults.monthly_budget),
            last_month_closed=watermark,
            overall_account_balance=data.get('overall_account_balance', 0.0),
            default_currency=data.get('default_currency') or defaults.default_currency,
            expense_categories=list(expense) if isinstance(expense, list) else defaults.expense_categories,
            income_categories=list(income) if isinstance(income, list) else defaults.income_categories,
            saving_goals=_load_items(SavingGoal, data.get('saving_goals')),
            special_dates=_load_items(SpecialDate, data.get('special_dates')),
        )
