"""Exception types raised by the ledger engine and its stores."""

from __future__ import annotations

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for every error raised by ``finance_ledger``."""


class ValidationError(LedgerError):
    """Caller input was rejected before anything was written."""


class ConfigurationError(LedgerError):
    """A cycle window or cycle start day is unusable."""


class StoreError(LedgerError):
    """A store call failed. Derived state must not be updated."""


class PartialTransferError(LedgerError):
    """The first leg of a transfer was written but the second was not.

    The store is left holding a single orphaned leg which has to be
    reconciled by hand.  ``recorded`` is the leg that made it into the
    store and ``transfer_id`` the correlation id shared by both legs.
    """

    def __init__(self, message: str, *, transfer_id: str, recorded: Any, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.transfer_id = transfer_id
        self.recorded = recorded
        self.cause = cause
