"""Immutable per-user snapshots of the stored records.

Aggregations take a snapshot as an explicit argument instead of reading
"whatever was last fetched".  ``version`` is a content hash, so two
snapshots of unchanged data compare equal and a stale view can be spotted
by comparing versions.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple

from .models import Account, BudgetGoal, Transaction, utc_now
from .stores import LedgerStore

logger = logging.getLogger(__name__)


def _fingerprint(
    transactions: Iterable[Transaction],
    accounts: Iterable[Account],
    goals: Iterable[BudgetGoal],
) -> str:
    digest = hashlib.sha256()
    parts = (
        sorted(repr(tx) for tx in transactions),
        sorted(repr(account) for account in accounts),
        sorted(repr(goal) for goal in goals),
    )
    for group in parts:
        for item in group:
            digest.update(item.encode('utf-8'))
            digest.update(b'\0')
        digest.update(b'\1')
    return digest.hexdigest()


@dataclass(frozen=True)
class LedgerSnapshot:
    user_id: str
    transactions: Tuple[Transaction, ...]
    accounts: Tuple[Account, ...]
    goals: Tuple[BudgetGoal, ...]
    taken_at: datetime
    version: str

    @classmethod
    def of(
        cls,
        user_id: str,
        transactions: Iterable[Transaction] = (),
        accounts: Iterable[Account] = (),
        goals: Iterable[BudgetGoal] = (),
        taken_at: Optional[datetime] = None,
    ) -> "LedgerSnapshot":
        transactions = tuple(transactions)
        accounts = tuple(accounts)
        goals = tuple(goals)
        return cls(
            user_id=user_id,
            transactions=transactions,
            accounts=accounts,
            goals=goals,
            taken_at=taken_at or utc_now(),
            version=_fingerprint(transactions, accounts, goals),
        )


def load_snapshot(store: LedgerStore, user_id: str, *, seed_accounts: bool = True) -> LedgerSnapshot:
    """Read everything the engine needs for ``user_id`` in one pass.

    Default accounts are seeded first when ``seed_accounts`` is set.  Any
    store failure propagates as ``StoreError`` before a snapshot exists.
    """
    if seed_accounts:
        store.seed_defaults(user_id)
    snapshot = LedgerSnapshot.of(
        user_id,
        transactions=store.list_transactions(user_id),
        accounts=store.list_accounts(user_id),
        goals=store.list_goals(user_id),
    )
    logger.debug("Loaded snapshot %s for user %s (%d transactions)",
                 snapshot.version[:12], user_id, len(snapshot.transactions))
    return snapshot
