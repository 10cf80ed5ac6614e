"""SQLite implementation of the transaction, account and budget goal stores.

Every ``sqlite3.Error`` is re-raised as :class:`StoreError`.  Input is
validated before a statement is issued, so a rejected call never leaves a
partial write behind.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .config import DB_PATH, DEFAULT_ACCOUNTS, ensure_data_directories
from .errors import StoreError, ValidationError
from .models import (
    ACCOUNT_KINDS,
    TRANSACTION_KINDS,
    Account,
    BudgetGoal,
    Transaction,
    new_account,
    new_id,
    parse_amount,
    parse_date,
    parse_positive_amount,
    require_text,
    utc_now,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA synchronous=NORMAL;

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    transaction_date TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount > 0),
    type TEXT NOT NULL CHECK (type IN ('income', 'expense')),
    category TEXT NOT NULL,
    account TEXT NOT NULL,
    account_id TEXT,
    description TEXT,
    transfer_id TEXT,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_user ON transactions (user_id);
CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (transaction_date);
CREATE INDEX IF NOT EXISTS ix_txn_transfer ON transactions (transfer_id);

CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    balance REAL NOT NULL DEFAULT 0,
    UNIQUE (user_id, name)
);

CREATE TABLE IF NOT EXISTS budget_goals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    category TEXT NOT NULL,
    amount_limit REAL NOT NULL CHECK (amount_limit > 0),
    UNIQUE (user_id, category)
);
"""

TRANSACTION_FIELDS = {
    'date': 'transaction_date',
    'amount': 'amount',
    'kind': 'type',
    'category': 'category',
    'account': 'account',
    'account_id': 'account_id',
    'description': 'description',
}
ACCOUNT_FIELDS = {
    'name': 'name',
    'kind': 'type',
    'seed_balance': 'balance',
}


def _to_iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    created = row['created_at']
    return Transaction(
        id=row['id'],
        date=date.fromisoformat(row['transaction_date']),
        amount=float(row['amount']),
        kind=row['type'],
        category=row['category'],
        account=row['account'],
        description=row['description'] or '',
        created_at=datetime.fromisoformat(created) if created else None,
        account_id=row['account_id'],
        transfer_id=row['transfer_id'],
        user_id=row['user_id'],
    )


def _row_to_account(row: sqlite3.Row) -> Account:
    return Account(
        id=row['id'],
        name=row['name'],
        kind=row['type'],
        seed_balance=float(row['balance']),
        user_id=row['user_id'],
    )


def _row_to_goal(row: sqlite3.Row) -> BudgetGoal:
    return BudgetGoal(
        id=row['id'],
        category=row['category'],
        limit=float(row['amount_limit']),
        user_id=row['user_id'],
    )


def _clean_transaction_change(field: str, value: Any) -> Any:
    if field == 'date':
        return parse_date(value).isoformat()
    if field == 'amount':
        return parse_positive_amount(value)
    if field == 'kind':
        if value not in TRANSACTION_KINDS:
            raise ValidationError(f"Transaction kind must be one of {TRANSACTION_KINDS}, got {value!r}")
        return value
    if field in ('category', 'account'):
        return require_text(value, field.capitalize())
    if field == 'description':
        return (value or '').strip()
    return value


class SQLiteStore:
    """Transaction, account and budget goal store backed by one SQLite file."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """Open (and create if needed) the database.

        Args:
            db_path: Optional custom database file.
                     Defaults to DB_PATH from config.
        """
        if db_path is None:
            ensure_data_directories()
        self.db_path = Path(db_path or DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_db()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(f"Database operation failed: {exc}") from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        with self.connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(self, transaction: Transaction) -> Transaction:
        if not transaction.user_id:
            raise ValidationError("Transaction has no owning user")
        if transaction.kind not in TRANSACTION_KINDS:
            raise ValidationError(f"Transaction kind must be one of {TRANSACTION_KINDS}, got {transaction.kind!r}")
        parse_positive_amount(transaction.amount)
        require_text(transaction.category, "Category")
        require_text(transaction.account, "Account")

        created_at = transaction.created_at or utc_now()
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO transactions (id, user_id, transaction_date, amount, type, category, account, "
                "account_id, description, transfer_id, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    transaction.id,
                    transaction.user_id,
                    transaction.date.isoformat(),
                    float(transaction.amount),
                    transaction.kind,
                    transaction.category,
                    transaction.account,
                    transaction.account_id,
                    transaction.description,
                    transaction.transfer_id,
                    _to_iso(created_at),
                ),
            )
            conn.commit()
        logger.debug("Stored %s %s of %.2f on '%s'", transaction.kind, transaction.id,
                     transaction.amount, transaction.account)
        return self.get_transaction(transaction.id)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        return _row_to_transaction(row) if row else None

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        """Update selected fields of a transaction.

        Accepted fields: date, amount, kind, category, account, account_id,
        description.
        """
        unknown = set(changes) - set(TRANSACTION_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update transaction fields: {sorted(unknown)}")

        updates = []
        params: List[Any] = []
        for field, value in changes.items():
            updates.append(f"{TRANSACTION_FIELDS[field]} = ?")
            params.append(_clean_transaction_change(field, value))

        if updates:
            params.append(transaction_id)
            with self.connect() as conn:
                cursor = conn.execute(f"UPDATE transactions SET {', '.join(updates)} WHERE id = ?", params)
                conn.commit()
                if cursor.rowcount == 0:
                    raise StoreError(f"Transaction {transaction_id} not found")

        updated = self.get_transaction(transaction_id)
        if updated is None:
            raise StoreError(f"Transaction {transaction_id} not found")
        return updated

    def delete_transaction(self, transaction_id: str) -> bool:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            conn.commit()
            return cursor.rowcount > 0

    def delete_all_transactions(self, user_id: str) -> int:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM transactions WHERE user_id = ?", (user_id,))
            conn.commit()
            deleted = cursor.rowcount
        logger.info("Deleted %d transactions of user %s", deleted, user_id)
        return deleted

    def list_transactions(self, user_id: str) -> List[Transaction]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM transactions WHERE user_id = ?", (user_id,)).fetchall()
        return [_row_to_transaction(row) for row in rows]

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        if not account.user_id:
            raise ValidationError("Account has no owning user")
        if account.kind not in ACCOUNT_KINDS:
            raise ValidationError(f"Account kind must be one of {ACCOUNT_KINDS}, got {account.kind!r}")
        name = require_text(account.name, "Account name")
        with self.connect() as conn:
            try:
                conn.execute(
                    "INSERT INTO accounts (id, user_id, name, type, balance) VALUES (?, ?, ?, ?, ?)",
                    (account.id, account.user_id, name, account.kind, float(account.seed_balance)),
                )
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"Account '{name}' already exists") from exc
            conn.commit()
        return self.get_account(account.id)

    def get_account(self, account_id: str) -> Optional[Account]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
        return _row_to_account(row) if row else None

    def list_accounts(self, user_id: str) -> List[Account]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM accounts WHERE user_id = ? ORDER BY name ASC", (user_id,)
            ).fetchall()
        return [_row_to_account(row) for row in rows]

    def update_account(self, account_id: str, **changes: Any) -> Account:
        """Update name, kind or seed_balance of an account.

        Renaming detaches transactions that reference the account by name
        only; they keep the old name.
        """
        unknown = set(changes) - set(ACCOUNT_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update account fields: {sorted(unknown)}")
        current = self.get_account(account_id)
        if current is None:
            raise StoreError(f"Account {account_id} not found")

        cleaned: Dict[str, Any] = {}
        if 'name' in changes:
            cleaned['name'] = require_text(changes['name'], "Account name")
        if 'kind' in changes:
            if changes['kind'] not in ACCOUNT_KINDS:
                raise ValidationError(f"Account kind must be one of {ACCOUNT_KINDS}, got {changes['kind']!r}")
            cleaned['kind'] = changes['kind']
        if 'seed_balance' in changes:
            cleaned['seed_balance'] = parse_amount(changes['seed_balance'])
        if not cleaned:
            return current

        assignments = ', '.join(f"{ACCOUNT_FIELDS[field]} = ?" for field in cleaned)
        with self.connect() as conn:
            try:
                conn.execute(f"UPDATE accounts SET {assignments} WHERE id = ?", [*cleaned.values(), account_id])
            except sqlite3.IntegrityError as exc:
                raise ValidationError(f"Account '{cleaned.get('name')}' already exists") from exc
            conn.commit()

        if cleaned.get('name', current.name) != current.name:
            logger.warning("Account %s renamed from '%s' to '%s'; name-linked transactions stay on '%s'",
                           account_id, current.name, cleaned['name'], current.name)
        return self.get_account(account_id)

    def delete_account(self, account_id: str) -> bool:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
            conn.commit()
            return cursor.rowcount > 0

    def seed_defaults(self, user_id: str) -> List[Account]:
        """Create the default accounts for a user who has none.

        Returns the accounts created, which is empty when the user already
        owns at least one account.
        """
        with self.connect() as conn:
            owned = conn.execute("SELECT COUNT(*) FROM accounts WHERE user_id = ?", (user_id,)).fetchone()[0]
        if owned:
            return []
        created = [self.add_account(new_account(name, kind, 0.0, user_id=user_id)) for name, kind in DEFAULT_ACCOUNTS]
        logger.info("Seeded %d default accounts for user %s", len(created), user_id)
        return created

    # ------------------------------------------------------------------
    # Budget goals
    # ------------------------------------------------------------------

    def set_limit(self, user_id: str, category: str, limit: Any) -> BudgetGoal:
        category = require_text(category, "Category")
        amount = parse_positive_amount(limit, field="Budget limit")
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO budget_goals (id, user_id, category, amount_limit) VALUES (?, ?, ?, ?) "
                "ON CONFLICT (user_id, category) DO UPDATE SET amount_limit = excluded.amount_limit",
                (new_id(), user_id, category, amount),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM budget_goals WHERE user_id = ? AND category = ?", (user_id, category)
            ).fetchone()
        return _row_to_goal(row)

    def list_goals(self, user_id: str) -> List[BudgetGoal]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM budget_goals WHERE user_id = ? ORDER BY category ASC", (user_id,)
            ).fetchall()
        return [_row_to_goal(row) for row in rows]

    def delete_goal(self, goal_id: str) -> bool:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM budget_goals WHERE id = ?", (goal_id,))
            conn.commit()
            return cursor.rowcount > 0
