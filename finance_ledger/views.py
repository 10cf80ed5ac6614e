"""Cycle overview: the engine's components wired along the data flow.

snapshot → cycle window → ledger aggregation → budget evaluation and
account balances → plain structured data for presentation and export.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .accounts import project_balances
from .budgets import BudgetEvaluation, Notification, budget_notifications, evaluate_budgets
from .config import DEFAULT_START_DAY
from .cycles import CycleWindow, current_cycle, cycle_window
from .ledger import CategoryFilter, CycleLedger, aggregate_cycle
from .snapshot import LedgerSnapshot


@dataclass(frozen=True)
class CycleOverview:
    snapshot_version: str
    ledger: CycleLedger = field(repr=False)
    budgets: List[BudgetEvaluation]
    notifications: List[Notification]
    account_balances: Dict[str, float]

    @property
    def window(self) -> CycleWindow:
        return self.ledger.window

    def to_dict(self) -> Dict[str, Any]:
        return {
            'snapshot_version': self.snapshot_version,
            'cycle': self.ledger.summary(),
            'transactions': self.ledger.to_records(),
            'budgets': [evaluation.to_dict() for evaluation in self.budgets],
            'notifications': [asdict(notification) for notification in self.notifications],
            'account_balances': dict(self.account_balances),
        }


def cycle_overview(
    snapshot: LedgerSnapshot,
    reference_date: Any = None,
    start_day: Optional[int] = None,
    *,
    window: Optional[CycleWindow] = None,
    description: Optional[str] = None,
    category: CategoryFilter = None,
    exclude_transfers: bool = False,
    newest_first: bool = True,
) -> CycleOverview:
    """Build the full view of one cycle from ``snapshot``.

    The cycle is ``window`` when given, otherwise the cycle containing
    ``reference_date`` (today when omitted) for ``start_day``.  With
    ``exclude_transfers`` the category breakdowns leave out transfer legs;
    totals, balances and budget spending still include them.
    """
    if window is None:
        if reference_date is None:
            window = current_cycle(start_day)
        else:
            window = cycle_window(reference_date, DEFAULT_START_DAY if start_day is None else start_day)

    ledger = aggregate_cycle(
        snapshot.transactions,
        window,
        description=description,
        category=category,
        exclude_transfers=exclude_transfers,
        newest_first=newest_first,
    )
    evaluations = evaluate_budgets(ledger.budget_spending, snapshot.goals)
    return CycleOverview(
        snapshot_version=snapshot.version,
        ledger=ledger,
        budgets=evaluations,
        notifications=budget_notifications(evaluations),
        account_balances=project_balances(snapshot.accounts, snapshot.transactions),
    )
