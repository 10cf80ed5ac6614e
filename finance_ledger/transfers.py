"""Recording and identifying transfers between accounts.

A transfer is stored as two ordinary transactions: an expense on the
source account and an income of the same amount on the destination
account.  Both legs share the ``Transfer`` category and a ``transfer_id``
so consumers can drop them from category analytics and pair them again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .config import TRANSFER_CATEGORY
from .errors import PartialTransferError, StoreError, ValidationError
from .models import EXPENSE, INCOME, Transaction, new_id, new_transaction, parse_positive_amount, require_text
from .stores import TransactionStore

logger = logging.getLogger(__name__)

TRANSFER_CATEGORY_LABELS = {'transfer', 'transfers', 'internal transfer'}


@dataclass(frozen=True)
class TransferResult:
    transfer_id: str
    outgoing: Transaction
    incoming: Transaction

    @property
    def net_effect(self) -> float:
        return self.outgoing.signed_amount + self.incoming.signed_amount


@dataclass(frozen=True)
class TransferPairs:
    """Transfer legs grouped by correlation id.

    ``pairs`` maps a transfer id to its ``(outgoing, incoming)`` legs.
    ``orphans`` holds legs whose partner is missing, typically left behind
    by a failed second write.  ``unlinked`` holds transfer-category rows
    that carry no correlation id at all.
    """

    pairs: Dict[str, tuple]
    orphans: List[Transaction]
    unlinked: List[Transaction]


def _leg_description(direction: str, counterpart: str, description: str) -> str:
    prefix = f"Transfer {direction} {counterpart}"
    return f"{prefix}: {description}" if description else prefix


def build_transfer(
    from_account: Any,
    to_account: Any,
    amount: Any,
    date: Any,
    description: str = "",
    *,
    user_id: Optional[str] = None,
    from_account_id: Optional[str] = None,
    to_account_id: Optional[str] = None,
) -> TransferResult:
    """Validate a transfer intent and build both legs without writing them.

    Raises:
        ValidationError: if the accounts match or the amount is not a
            positive number.
    """
    source = require_text(from_account, "From account")
    target = require_text(to_account, "To account")
    if source == target:
        raise ValidationError(f"Cannot transfer from '{source}' to itself")
    value = parse_positive_amount(amount, field="Transfer amount")
    note = (description or "").strip()
    transfer_id = new_id()

    outgoing = new_transaction(
        date, value, EXPENSE, TRANSFER_CATEGORY, source,
        _leg_description("to", target, note),
        account_id=from_account_id, transfer_id=transfer_id, user_id=user_id,
    )
    incoming = new_transaction(
        date, value, INCOME, TRANSFER_CATEGORY, target,
        _leg_description("from", source, note),
        account_id=to_account_id, transfer_id=transfer_id, user_id=user_id,
    )
    return TransferResult(transfer_id=transfer_id, outgoing=outgoing, incoming=incoming)


def record_transfer(
    store: TransactionStore,
    from_account: Any,
    to_account: Any,
    amount: Any,
    date: Any,
    description: str = "",
    *,
    user_id: Optional[str] = None,
    from_account_id: Optional[str] = None,
    to_account_id: Optional[str] = None,
) -> TransferResult:
    """Write both legs of a transfer, outgoing leg first.

    The two writes are not atomic.  A failure on the first write raises
    :class:`StoreError` and nothing is recorded.  A failure on the second
    write raises :class:`PartialTransferError` holding the recorded leg.
    """
    planned = build_transfer(
        from_account, to_account, amount, date, description,
        user_id=user_id, from_account_id=from_account_id, to_account_id=to_account_id,
    )

    outgoing = store.add_transaction(planned.outgoing)
    logger.info("Recorded outgoing leg of transfer %s (%s -> %s, %.2f)",
                planned.transfer_id, outgoing.account, planned.incoming.account, outgoing.amount)
    try:
        incoming = store.add_transaction(planned.incoming)
    except StoreError as exc:
        logger.error("Transfer %s left half-recorded: %s", planned.transfer_id, exc)
        raise PartialTransferError(
            f"Transfer {planned.transfer_id} recorded the expense on '{outgoing.account}' "
            f"but not the income on '{planned.incoming.account}'",
            transfer_id=planned.transfer_id,
            recorded=outgoing,
            cause=exc,
        ) from exc
    logger.info("Recorded incoming leg of transfer %s", planned.transfer_id)
    return TransferResult(transfer_id=planned.transfer_id, outgoing=outgoing, incoming=incoming)


def is_transfer(transaction: Transaction) -> bool:
    if transaction.transfer_id:
        return True
    return transaction.category.strip().lower() in TRANSFER_CATEGORY_LABELS


def transfer_mask(df: pd.DataFrame) -> pd.Series:
    """Boolean mask of transfer legs in a transactions frame."""
    if df.empty:
        return pd.Series(False, index=df.index, dtype=bool)
    category_series = df['Category'].astype(str).str.strip().str.lower()
    linked = df['transfer_id'].notna() if 'transfer_id' in df.columns else False
    return category_series.isin(TRANSFER_CATEGORY_LABELS) | linked


def exclude_transfers(transactions: Iterable[Transaction]) -> List[Transaction]:
    return [tx for tx in transactions if not is_transfer(tx)]


def pair_transfers(transactions: Iterable[Transaction]) -> TransferPairs:
    """Group transfer legs by ``transfer_id`` and report broken pairs."""
    grouped: Dict[str, List[Transaction]] = {}
    unlinked: List[Transaction] = []
    for tx in transactions:
        if not is_transfer(tx):
            continue
        if tx.transfer_id:
            grouped.setdefault(tx.transfer_id, []).append(tx)
        else:
            unlinked.append(tx)

    pairs: Dict[str, tuple] = {}
    orphans: List[Transaction] = []
    for transfer_id, legs in grouped.items():
        outgoing = [leg for leg in legs if leg.kind == EXPENSE]
        incoming = [leg for leg in legs if leg.kind == INCOME]
        if len(outgoing) == 1 and len(incoming) == 1 and outgoing[0].amount == incoming[0].amount:
            pairs[transfer_id] = (outgoing[0], incoming[0])
        else:
            orphans.extend(legs)

    if orphans:
        logger.warning("Found %d transfer legs without a matching partner", len(orphans))
    return TransferPairs(pairs=pairs, orphans=orphans, unlinked=unlinked)
