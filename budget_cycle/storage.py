"""Persistence for transactions and settings.

Transactions live in a SQLite table that is always read and rewritten as a
whole collection. Settings are a single JSON document. Both stores report
failures as a ``False`` return instead of raising, so the engine can surface
them as unsuccessful operations.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import pandas as pd

from .config import DB_PATH, SETTINGS_PATH
from .models import Settings, Transaction

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    transaction_date TEXT NOT NULL,
    amount REAL NOT NULL,
    category TEXT,
    is_expense INTEGER NOT NULL,
    description TEXT,
    participant TEXT,
    notes TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (transaction_date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category);
"""

SELECT_SQL = (
    "SELECT id, transaction_date AS date, amount, category, is_expense, description, "
    "participant, notes FROM transactions ORDER BY transaction_date ASC, id ASC"
)

INSERT_SQL = (
    "INSERT INTO transactions (id, transaction_date, amount, category, is_expense, "
    "description, participant, notes) VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
)

SETTINGS_VERSION = 1


def _clean_text(value: object) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return str(value)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class InMemoryTransactionStore:
    """List-backed transaction store."""

    def __init__(self, transactions: Optional[Sequence[Transaction]] = None) -> None:
        self._transactions: List[Transaction] = list(transactions or [])

    def load_all(self) -> List[Transaction]:
        return list(self._transactions)

    def save_all(self, transactions: Sequence[Transaction]) -> bool:
        self._transactions = list(transactions)
        return True


class SqliteTransactionStore:
    """Transaction collection stored in a SQLite database."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = Path(db_path or DB_PATH)
        self._initialized = False

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        try:
            if not self._initialized:
                conn.executescript(SCHEMA_SQL)
                conn.commit()
                self._initialized = True
            yield conn
        finally:
            conn.close()

    def load_all(self) -> List[Transaction]:
        with self.connect() as conn:
            df = pd.read_sql_query(SELECT_SQL, conn)
        transactions: List[Transaction] = []
        for row in df.to_dict('records'):
            try:
                transactions.append(Transaction(
                    id=str(row['id']),
                    date=row['date'],
                    amount=row['amount'],
                    category=_clean_text(row['category']),
                    is_expense=bool(row['is_expense']),
                    description=_clean_text(row['description']),
                    participant=_clean_text(row['participant']),
                    notes=_clean_text(row['notes']),
                ))
            except ValueError as e:
                logger.warning("Skipping invalid transaction %s: %s", row.get('id'), e)
        return transactions

    def save_all(self, transactions: Sequence[Transaction]) -> bool:
        """Replace the stored collection with ``transactions`` atomically."""
        records = [
            (
                txn.id,
                txn.date.isoformat(),
                txn.amount,
                txn.category,
                int(txn.is_expense),
                txn.description,
                txn.participant,
                txn.notes,
            )
            for txn in transactions
        ]
        try:
            with self.connect() as conn:
                with conn:
                    conn.execute("DELETE FROM transactions")
                    conn.executemany(INSERT_SQL, records)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Failed to save transactions to %s: %s", self.db_path, e)
            return False
        return True


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class InMemorySettingsStore:
    """Holds a Settings object; ``save`` always succeeds."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.save_count = 0

    def save(self) -> bool:
        self.save_count += 1
        return True


class JsonSettingsStore:
    """Settings persisted as a JSON document."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path or SETTINGS_PATH)
        self.load_error: Optional[str] = None
        self.settings = self.load()

    def load(self) -> Settings:
        """Read settings from disk, falling back to defaults.

        Note:
            Missing or unreadable files yield default settings; a corrupt file
            is logged and left on disk until the next save. A readable
            document that cannot be turned into settings sets ``load_error``
            and blocks ``save`` so the stored values are not overwritten.
        """
        if not self.path.exists():
            return Settings()
        try:
            with self.path.open('r', encoding='utf-8') as handle:
                data = json.load(handle)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load settings from %s: %s", self.path, e)
            return Settings()
        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold an object, using defaults", self.path)
            return Settings()
        try:
            return Settings.from_dict(data.get('settings') or {})
        except (ValueError, TypeError) as e:
            logger.warning("Invalid settings in %s: %s", self.path, e)
            self.load_error = str(e)
            return Settings()

    def reload(self) -> Settings:
        self.load_error = None
        self.settings = self.load()
        return self.settings

    def save(self) -> bool:
        if self.load_error is not None:
            logger.warning(
                "Not saving settings to %s: the stored document could not be loaded (%s)",
                self.path, self.load_error,
            )
            return False
        payload = {
            'settings': self.settings.to_dict(),
            'saved_at': datetime.now(timezone.utc).isoformat(),
            'version': SETTINGS_VERSION,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('w', encoding='utf-8') as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
        except OSError as e:
            logger.warning("Failed to save settings to %s: %s", self.path, e)
            return False
        return True
