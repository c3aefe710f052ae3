"""Configuration management for the financial cycle engine.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in budget_cycle/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGET_CYCLE_DATA_DIR", _PROJECT_ROOT / "data"))

# Database holding the transaction collection
DB_PATH = Path(
    os.getenv("BUDGET_CYCLE_DB_PATH", DATA_DIR / "transactions.db")
).resolve()

# Settings document (month start day, watermark, balance, goals, special dates)
SETTINGS_PATH = Path(
    os.getenv("BUDGET_CYCLE_SETTINGS_PATH", DATA_DIR / "settings.json")
).resolve()

# Reserved category for synthetic savings-goal transactions
SAVINGS_CATEGORY = os.getenv("BUDGET_CYCLE_SAVINGS_CATEGORY", "Savings")

# Trailing windows (in financial months) used by the forecaster
DEFAULT_FORECAST_WINDOW = int(os.getenv("BUDGET_CYCLE_FORECAST_WINDOW", "3"))
CLOSING_FORECAST_WINDOW = int(os.getenv("BUDGET_CYCLE_CLOSING_FORECAST_WINDOW", "6"))

PROCESS_SAVINGS_ON_CLOSE = os.getenv(
    "BUDGET_CYCLE_PROCESS_SAVINGS_ON_CLOSE", "true"
).strip().lower() in {"1", "true", "yes", "on"}

LOG_LEVEL = os.getenv("BUDGET_CYCLE_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return int(raw)


# Day of month for savings contributions; unset means "use the month start day"
CONTRIBUTION_DAY = _optional_int("BUDGET_CYCLE_CONTRIBUTION_DAY")


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, DB_PATH.parent, SETTINGS_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic root handler for scripts and interactive use."""
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
