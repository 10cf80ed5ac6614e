"""Record types owned by the external stores.

Records are immutable.  The stores create, update and delete them; the
engine only reads snapshots of them.  Amounts are always positive, the
``kind`` of a transaction supplies the sign.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

import pandas as pd

from .errors import ValidationError

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_KINDS = (INCOME, EXPENSE)

ACCOUNT_KINDS = ("Bank", "Cash", "Mobile Wallet", "Investment", "Savings", "Other")


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    amount: float
    kind: str
    category: str
    account: str  # account name, see account_id
    description: str = ""
    created_at: Optional[datetime] = None
    account_id: Optional[str] = None
    transfer_id: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.kind == INCOME else -self.amount


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    kind: str
    seed_balance: float = 0.0
    user_id: Optional[str] = None


@dataclass(frozen=True)
class BudgetGoal:
    id: str
    category: str
    limit: float
    user_id: Optional[str] = None


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_amount(value: Any) -> float:
    """Convert different textual amount representations into floats.

    Raises:
        ValidationError: if ``value`` is empty, not numeric or not finite.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Amount must be numeric, got {value!r}")
    if value is None or (isinstance(value, str) and value.strip() == ""):
        raise ValidationError("Amount is required")
    if isinstance(value, (int, float)):
        if pd.isna(value):
            raise ValidationError("Amount must be numeric, got NaN")
        try:
            number = float(value)
        except OverflowError:
            raise ValidationError(f"Amount must be a finite number, got {value!r}") from None
        if not math.isfinite(number):
            raise ValidationError(f"Amount must be a finite number, got {value!r}")
        return number
    if isinstance(value, str):
        cleaned = value.strip()
        # Handle accounting negatives e.g. (123.45)
        if cleaned.startswith("(") and cleaned.endswith(")"):
            cleaned = f"-{cleaned[1:-1]}"
        cleaned = cleaned.replace("$", "").replace(",", "").strip()
        value = cleaned
    number = pd.to_numeric(pd.Series([value]), errors="coerce").iloc[0]
    if pd.isna(number):
        raise ValidationError(f"Amount must be numeric, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"Amount must be a finite number, got {value!r}")
    return float(number)


def parse_positive_amount(value: Any, field: str = "Amount") -> float:
    amount = parse_amount(value)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero, got {amount}")
    return amount


def parse_date(value: Any) -> date:
    """Accept a ``date``, ``datetime``, pandas Timestamp or date string."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Date is required")
    if hasattr(value, "to_pydatetime"):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        raise ValidationError(f"Unrecognised date {value!r}")
    return ts.date()


def require_text(value: Any, field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def new_transaction(
    date: Any,
    amount: Any,
    kind: str,
    category: Any,
    account: Any,
    description: str = "",
    *,
    id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    account_id: Optional[str] = None,
    transfer_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Transaction:
    """Validate raw input and build a :class:`Transaction`."""
    if kind not in TRANSACTION_KINDS:
        raise ValidationError(f"Transaction kind must be one of {TRANSACTION_KINDS}, got {kind!r}")
    return Transaction(
        id=id or new_id(),
        date=parse_date(date),
        amount=parse_positive_amount(amount),
        kind=kind,
        category=require_text(category, "Category"),
        account=require_text(account, "Account"),
        description=(description or "").strip(),
        created_at=created_at or utc_now(),
        account_id=account_id,
        transfer_id=transfer_id,
        user_id=user_id,
    )


def new_account(name: Any, kind: str, seed_balance: Any = 0.0, *, id: Optional[str] = None, user_id: Optional[str] = None) -> Account:
    if kind not in ACCOUNT_KINDS:
        raise ValidationError(f"Account kind must be one of {ACCOUNT_KINDS}, got {kind!r}")
    return Account(
        id=id or new_id(),
        name=require_text(name, "Account name"),
        kind=kind,
        seed_balance=parse_amount(seed_balance),
        user_id=user_id,
    )
