"""Cycle-scoped ledger aggregation.

Turns the flat, unordered transaction set of one user into the view of a
single cycle: the opening balance carried over from everything before the
cycle, in-cycle totals, a running balance for every displayed row and
income/expense sums per category.

All functions are pure.  They take the complete transaction set and
recompute everything on each call; nothing derived is ever stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .cycles import CycleWindow, validate_window
from .models import EXPENSE, INCOME, Transaction
from .transfers import transfer_mask

FRAME_COLUMNS = [
    'id',
    'Transaction Date',
    'Type',
    'Category',
    'Account',
    'Description',
    'Amount',
    'Created At',
    'account_id',
    'transfer_id',
]
ROW_COLUMNS = [
    'id',
    'Transaction Date',
    'Type',
    'Category',
    'Account',
    'Description',
    'Amount',
    'Running Balance',
    'transfer_id',
]
CHRONOLOGICAL_KEYS = ['Transaction Date', 'Created At', 'id']

CategoryFilter = Union[str, Iterable[str], None]


@dataclass(frozen=True)
class CycleLedger:
    """Aggregated view of one cycle.

    ``income``, ``expense`` and ``net`` cover the whole cycle regardless of
    filters.  ``rows``, ``income_by_category`` and ``expense_by_category``
    reflect the filters.  ``budget_spending`` is the unfiltered expense
    map the budget evaluator expects.
    """

    window: CycleWindow
    opening_balance: float
    income: float
    expense: float
    net: float
    closing_balance: float
    rows: pd.DataFrame = field(repr=False)
    income_by_category: Dict[str, float]
    expense_by_category: Dict[str, float]
    budget_spending: Dict[str, float]

    def summary(self) -> Dict[str, Any]:
        return {
            'window_start': self.window.start.date().isoformat(),
            'window_end': self.window.end.date().isoformat(),
            'opening_balance': self.opening_balance,
            'income': self.income,
            'expense': self.expense,
            'net': self.net,
            'closing_balance': self.closing_balance,
            'income_by_category': dict(self.income_by_category),
            'expense_by_category': dict(self.expense_by_category),
        }

    def to_records(self) -> List[Dict[str, Any]]:
        """Displayed rows as plain dicts with ISO dates."""
        if self.rows.empty:
            return []
        out = self.rows.copy()
        out['Transaction Date'] = out['Transaction Date'].dt.date.map(lambda d: d.isoformat())
        out = out.astype(object).where(out.notna(), None)
        return out.to_dict('records')


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Frame the transactions, one row per record, in the order given.

    The index is the position in the input, which is the display position.
    ``Net Amount`` carries the sign implied by the transaction kind.
    """
    rows = [
        {
            'id': tx.id,
            'Transaction Date': tx.date,
            'Type': tx.kind,
            'Category': tx.category,
            'Account': tx.account,
            'Description': tx.description,
            'Amount': tx.amount,
            'Created At': tx.created_at,
            'account_id': tx.account_id,
            'transfer_id': tx.transfer_id,
        }
        for tx in transactions
    ]
    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    df['Transaction Date'] = pd.to_datetime(df['Transaction Date'])
    df['Created At'] = pd.to_datetime(df['Created At'], utc=True)
    df['Amount'] = pd.to_numeric(df['Amount']).astype(float)
    df['Net Amount'] = np.where(df['Type'] == INCOME, df['Amount'], -df['Amount'])
    return df


def running_balances(frame: pd.DataFrame, opening_balance: float = 0.0) -> pd.Series:
    """Balance after each row, accumulated oldest first.

    The result is aligned to ``frame.index`` so it can be attached to the
    frame in whatever order the rows are displayed.
    """
    if frame.empty:
        return pd.Series(dtype=float, index=frame.index)
    ordered = frame.sort_values(CHRONOLOGICAL_KEYS, na_position='first')
    balances = opening_balance + ordered['Net Amount'].cumsum()
    return balances.reindex(frame.index)


def category_totals(frame: pd.DataFrame, kind: str) -> Dict[str, float]:
    subset = frame[frame['Type'] == kind]
    if subset.empty:
        return {}
    grouped = subset.groupby('Category', sort=True)['Amount'].sum()
    return {str(category): float(total) for category, total in grouped.items()}


def _filter_mask(frame: pd.DataFrame, description: Optional[str], category: CategoryFilter) -> pd.Series:
    mask = pd.Series(True, index=frame.index, dtype=bool)
    if frame.empty:
        return mask
    if description:
        mask &= frame['Description'].fillna('').astype(str).str.contains(
            description, case=False, regex=False
        )
    if category:
        wanted = {category} if isinstance(category, str) else set(category)
        wanted = {str(c).strip().lower() for c in wanted}
        mask &= frame['Category'].astype(str).str.strip().str.lower().isin(wanted)
    return mask


def aggregate_cycle(
    transactions: Iterable[Transaction],
    window: CycleWindow,
    *,
    description: Optional[str] = None,
    category: CategoryFilter = None,
    exclude_transfers: bool = False,
    newest_first: bool = False,
) -> CycleLedger:
    """Aggregate ``transactions`` for ``window``.

    Args:
        transactions: the complete, unordered transaction set of one user.
        window: the cycle to report on.
        description: case-insensitive substring the displayed rows must contain.
        category: category name or names the displayed rows must belong to.
        exclude_transfers: drop transfer legs from the category sums.
        newest_first: display rows newest first instead of in input order.

    Raises:
        ConfigurationError: if ``window`` ends before it starts.
    """
    validate_window(window)
    frame = transactions_frame(transactions)

    dates = frame['Transaction Date']
    prior_mask = dates < window.start
    in_window_mask = (dates >= window.start) & (dates <= window.end)

    opening_balance = float(frame.loc[prior_mask, 'Net Amount'].sum())

    in_window = frame[in_window_mask].copy()
    in_window['Running Balance'] = running_balances(in_window, opening_balance)
    income = float(in_window.loc[in_window['Type'] == INCOME, 'Amount'].sum())
    expense = float(in_window.loc[in_window['Type'] == EXPENSE, 'Amount'].sum())
    net = income - expense

    displayed = in_window[_filter_mask(in_window, description, category)]
    analysed = displayed[~transfer_mask(displayed)] if exclude_transfers else displayed
    if newest_first and not displayed.empty:
        displayed = displayed.sort_values(CHRONOLOGICAL_KEYS, ascending=False, na_position='last')

    return CycleLedger(
        window=window,
        opening_balance=opening_balance,
        income=income,
        expense=expense,
        net=net,
        closing_balance=opening_balance + net,
        rows=displayed[ROW_COLUMNS].reset_index(drop=True),
        income_by_category=category_totals(analysed, INCOME),
        expense_by_category=category_totals(analysed, EXPENSE),
        budget_spending=category_totals(in_window, EXPENSE),
    )


def net_through(transactions: Iterable[Transaction], end: Any) -> float:
    """Net of every transaction dated on or before ``end``."""
    frame = transactions_frame(transactions)
    cutoff = pd.Timestamp(end)
    return float(frame.loc[frame['Transaction Date'] <= cutoff, 'Net Amount'].sum())


def summarize(transactions: Iterable[Transaction]) -> Dict[str, float]:
    """Total income, total expense and resulting balance of a transaction set."""
    frame = transactions_frame(transactions)
    total_income = float(frame.loc[frame['Type'] == INCOME, 'Amount'].sum())
    total_expense = float(frame.loc[frame['Type'] == EXPENSE, 'Amount'].sum())
    return {
        'total_income': total_income,
        'total_expense': total_expense,
        'current_balance': total_income - total_expense,
    }


def daily_activity(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Income and expense per calendar day, oldest day first."""
    frame = transactions_frame(transactions)
    if frame.empty:
        return pd.DataFrame(columns=['Date', 'Income', 'Expense'])
    frame['Date'] = frame['Transaction Date'].dt.normalize()
    pivot = frame.pivot_table(index='Date', columns='Type', values='Amount', aggfunc='sum', fill_value=0.0)
    pivot = pivot.reindex(columns=[INCOME, EXPENSE], fill_value=0.0)
    pivot = pivot.rename(columns={INCOME: 'Income', EXPENSE: 'Expense'}).sort_index().reset_index()
    pivot.columns.name = None
    return pivot
