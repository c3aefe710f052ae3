"""Top-level package for the financial cycle engine.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``financial_month`` – financial month windows from a configurable start day
* ``aggregation`` – income/expense totals over transaction lists
* ``special_dates`` – per-category budget deltas from special dates
* ``savings`` – automated savings-goal contributions
* ``forecast`` – next-month budget forecasting
* ``closing`` – month-end closing and the running balance
* ``service`` – the programmatic entry points tying everything together

To close elapsed months from the command line you can execute:

```bash
python scripts/close_month.py
```
"""

from .models import (  # noqa: F401  # re-exported for convenience
    CategoryRegistry,
    InvalidConfigurationError,
    RecurrenceType,
    SavingGoal,
    Settings,
    SpecialDate,
    Transaction,
)
from .service import FinancialCycleService  # noqa: F401


__all__ = [
    "CategoryRegistry",
    "FinancialCycleService",
    "InvalidConfigurationError",
    "RecurrenceType",
    "SavingGoal",
    "Settings",
    "SpecialDate",
    "Transaction",
]
