"""Top‑level package for the finance ledger engine.

The engine turns a flat, unordered set of dated transactions into
cycle-scoped views.  The primary modules are:

* ``cycles`` – billing cycle windows anchored to a configurable start day
* ``ledger`` – opening balance, running balance and category sums of a cycle
* ``budgets`` – budget goal status and alert notifications
* ``transfers`` – recording a transfer as two linked transactions
* ``accounts`` – account balances replayed from their seed balance
* ``db`` – the SQLite reference store

A cycle overview for one user can be printed with:

```bash
python scripts/cycle_summary.py --user alice --start-day 25
```
"""

from .accounts import account_balances_frame, project_balances
from .budgets import BudgetEvaluation, BudgetStatus, Notification, budget_notifications, evaluate_budgets
from .cycles import CycleWindow, cycle_window, cycle_windows
from .errors import ConfigurationError, LedgerError, PartialTransferError, StoreError, ValidationError
from .ledger import CycleLedger, aggregate_cycle
from .models import Account, BudgetGoal, Transaction, new_transaction
from .snapshot import LedgerSnapshot, load_snapshot
from .transfers import TransferResult, pair_transfers, record_transfer
from .views import CycleOverview, cycle_overview

__all__ = [
    # Records
    'Account',
    'BudgetGoal',
    'Transaction',
    'new_transaction',
    # Errors
    'LedgerError',
    'ValidationError',
    'ConfigurationError',
    'StoreError',
    'PartialTransferError',
    # Engine
    'CycleWindow',
    'cycle_window',
    'cycle_windows',
    'CycleLedger',
    'aggregate_cycle',
    'BudgetStatus',
    'BudgetEvaluation',
    'Notification',
    'evaluate_budgets',
    'budget_notifications',
    'TransferResult',
    'record_transfer',
    'pair_transfers',
    'project_balances',
    'account_balances_frame',
    # Snapshots and views
    'LedgerSnapshot',
    'load_snapshot',
    'CycleOverview',
    'cycle_overview',
]
