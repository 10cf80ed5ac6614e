"""Configuration management for the finance ledger.

This module centralizes all configuration values including paths,
defaults, and environment variable overrides.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

# Base project root - assumes this file is in finance_ledger/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FINLEDGER_DATA_DIR", _PROJECT_ROOT / "data"))

# Database
DB_PATH = Path(
    os.getenv("FINLEDGER_DB_PATH", DATA_DIR / "ledger.db")
).resolve()

# Billing cycle start day used when a user has not chosen one
DEFAULT_START_DAY = int(os.getenv("FINLEDGER_START_DAY", "1"))
MIN_START_DAY = 1
MAX_START_DAY = 28

# Budgets above this share of their limit raise a "near" alert
NEAR_THRESHOLD = float(os.getenv("FINLEDGER_NEAR_THRESHOLD", "0.85"))

LOG_LEVEL = os.getenv("FINLEDGER_LOG_LEVEL", "WARNING")

TRANSFER_CATEGORY = "Transfer"

# (name, kind) pairs created for a user who owns no accounts yet
DEFAULT_ACCOUNTS: Tuple[Tuple[str, str], ...] = (
    ("Cash", "Cash"),
    ("Bank Account", "Bank"),
)


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, DB_PATH.parent]:
        directory.mkdir(parents=True, exist_ok=True)


def get_db_path() -> str:
    """Get the database path as a string."""
    return str(DB_PATH)


def configure_logging(level: Optional[str] = None) -> None:
    """Install a basic console handler for scripts.

    The library never calls this on import; entry points do.
    """
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
