"""Interfaces of the stores the engine reads from and writes to.

Stores own persistence.  Every failure they hit must surface as
:class:`~finance_ledger.errors.StoreError`.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol

from .models import Account, BudgetGoal, Transaction


class TransactionStore(Protocol):

    def add_transaction(self, transaction: Transaction) -> Transaction:  # pragma: no cover - interface
        ...

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:  # pragma: no cover - interface
        ...

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:  # pragma: no cover - interface
        ...

    def delete_transaction(self, transaction_id: str) -> bool:  # pragma: no cover - interface
        ...

    def delete_all_transactions(self, user_id: str) -> int:  # pragma: no cover - interface
        ...

    def list_transactions(self, user_id: str) -> List[Transaction]:  # pragma: no cover - interface
        """Return every transaction of ``user_id`` in no particular order."""
        ...


class AccountStore(Protocol):

    def add_account(self, account: Account) -> Account:  # pragma: no cover - interface
        ...

    def get_account(self, account_id: str) -> Optional[Account]:  # pragma: no cover - interface
        ...

    def list_accounts(self, user_id: str) -> List[Account]:  # pragma: no cover - interface
        ...

    def update_account(self, account_id: str, **changes: Any) -> Account:  # pragma: no cover - interface
        ...

    def delete_account(self, account_id: str) -> bool:  # pragma: no cover - interface
        ...

    def seed_defaults(self, user_id: str) -> List[Account]:  # pragma: no cover - interface
        """Create the baseline accounts when ``user_id`` owns none."""
        ...


class BudgetGoalStore(Protocol):

    def set_limit(self, user_id: str, category: str, limit: Any) -> BudgetGoal:  # pragma: no cover - interface
        """Insert or update the goal keyed on ``(user_id, category)``."""
        ...

    def list_goals(self, user_id: str) -> List[BudgetGoal]:  # pragma: no cover - interface
        ...

    def delete_goal(self, goal_id: str) -> bool:  # pragma: no cover - interface
        ...


class LedgerStore(TransactionStore, AccountStore, BudgetGoalStore, Protocol):
    """A single backend serving all three record types."""
