"""Account balance projection.

An account's balance is its seed balance plus every income and minus every
expense recorded against it.  Transactions carrying an ``account_id`` are
matched on that id; older transactions that only carry the account name
are matched on the name, so they detach from an account that is renamed.
An ``account_id`` that no current account carries falls back to the name.
"""

from __future__ import annotations

import logging
from typing import AbstractSet, Dict, Iterable, List, Optional

import pandas as pd

from .models import INCOME, Account, Transaction

logger = logging.getLogger(__name__)


def _matches(account: Account, transaction: Transaction, known_ids: AbstractSet[str]) -> bool:
    # An id no known account carries is stale, e.g. the account was deleted
    # and recreated under the same name; fall back to the name then.
    if transaction.account_id and transaction.account_id in known_ids:
        return transaction.account_id == account.id
    return transaction.account == account.name


def account_balance(
    account: Account,
    transactions: Iterable[Transaction],
    known_ids: Optional[AbstractSet[str]] = None,
) -> float:
    """Seed balance of ``account`` replayed with its transactions.

    ``known_ids`` are the ids of every account of the user; transactions
    whose ``account_id`` is not among them are matched by name.
    """
    known_ids = {account.id} if known_ids is None else known_ids
    income = 0.0
    expense = 0.0
    for tx in transactions:
        if not _matches(account, tx, known_ids):
            continue
        if tx.kind == INCOME:
            income += tx.amount
        else:
            expense += tx.amount
    return float(account.seed_balance) + income - expense


def project_balances(accounts: Iterable[Account], transactions: Iterable[Transaction]) -> Dict[str, float]:
    """Balance of every account keyed by account id."""
    known = list(accounts)
    known_ids = {account.id for account in known}
    history = list(transactions)
    stale = sum(1 for tx in history if tx.account_id and tx.account_id not in known_ids)
    if stale:
        logger.warning("%d transactions reference unknown account ids; matching them by name", stale)
    return {account.id: account_balance(account, history, known_ids) for account in known}


def unmatched_transactions(accounts: Iterable[Account], transactions: Iterable[Transaction]) -> List[Transaction]:
    """Transactions that no account claims, e.g. after an account rename."""
    known = list(accounts)
    known_ids = {account.id for account in known}
    return [tx for tx in transactions if not any(_matches(account, tx, known_ids) for account in known)]


def account_balances_frame(accounts: Iterable[Account], transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Columns: id, Account, Kind, Seed Balance, Balance"""
    known = list(accounts)
    balances = project_balances(known, transactions)
    rows = [
        {
            'id': account.id,
            'Account': account.name,
            'Kind': account.kind,
            'Seed Balance': float(account.seed_balance),
            'Balance': balances[account.id],
        }
        for account in known
    ]
    return pd.DataFrame(rows, columns=['id', 'Account', 'Kind', 'Seed Balance', 'Balance'])
