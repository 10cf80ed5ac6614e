"""Report content for export consumers.

Everything here returns numbers and labels only.  Currency formatting,
HTML, CSV and PDF layout belong to the consumer.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd

from .budgets import budget_performance_frame
from .cycles import cycle_windows
from .ledger import aggregate_cycle
from .models import Transaction
from .views import CycleOverview


def _breakdown(totals: Dict[str, float]) -> List[Dict[str, Any]]:
    grand_total = sum(totals.values())
    ordered = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        {
            'Category': category,
            'Amount': amount,
            'Share': (amount / grand_total * 100.0) if grand_total else 0.0,
        }
        for category, amount in ordered
    ]


def summary_report(overview: CycleOverview) -> Dict[str, Any]:
    """Content of the cycle summary report.

    Expense and income breakdowns are sorted by amount, largest first.
    """
    ledger = overview.ledger
    return {
        'range': ledger.window.label,
        'opening_balance': ledger.opening_balance,
        'income': ledger.income,
        'expense': ledger.expense,
        'balance': ledger.net,
        'closing_balance': ledger.closing_balance,
        'expense_breakdown': _breakdown(ledger.expense_by_category),
        'income_breakdown': _breakdown(ledger.income_by_category),
        'budgets': budget_performance_frame(overview.budgets).to_dict('records'),
    }


def cycle_history(transactions: Iterable[Transaction], first: Any, last: Any, start_day: int) -> pd.DataFrame:
    """Cycle-over-cycle totals for every cycle between ``first`` and ``last``.

    Columns: Cycle, Start, End, Opening Balance, Income, Expense, Net,
    Closing Balance
    """
    history = list(transactions)
    rows = []
    for window in cycle_windows(first, last, start_day):
        ledger = aggregate_cycle(history, window)
        rows.append({
            'Cycle': window.label,
            'Start': window.start.date(),
            'End': window.end.date(),
            'Opening Balance': ledger.opening_balance,
            'Income': ledger.income,
            'Expense': ledger.expense,
            'Net': ledger.net,
            'Closing Balance': ledger.closing_balance,
        })
    return pd.DataFrame(rows, columns=[
        'Cycle', 'Start', 'End', 'Opening Balance', 'Income', 'Expense', 'Net', 'Closing Balance',
    ])
