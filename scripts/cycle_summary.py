#!/usr/bin/env python3
"""Print the cycle overview of one user from the SQLite store as JSON."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_ledger import config
from finance_ledger.db import SQLiteStore
from finance_ledger.errors import LedgerError
from finance_ledger.reports import summary_report
from finance_ledger.snapshot import load_snapshot
from finance_ledger.views import cycle_overview


def main(user: str, start_day: int, date: Optional[str] = None, db_path: Optional[str] = None,
         report: bool = False, exclude_transfers: bool = False) -> int:
    try:
        store = SQLiteStore(db_path)
        snapshot = load_snapshot(store, user)
        overview = cycle_overview(snapshot, date, start_day, exclude_transfers=exclude_transfers)
    except LedgerError as exc:
        print(f"Could not build cycle overview: {exc}", file=sys.stderr)
        return 1

    payload = summary_report(overview) if report else overview.to_dict()
    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show the cycle overview of a user.')
    parser.add_argument('--user', required=True, help='Owner of the records')
    parser.add_argument('--start-day', type=int, default=config.DEFAULT_START_DAY,
                        help='Day of month on which cycles start (1-28)')
    parser.add_argument('--date', default=None, help='Reference date inside the cycle (default: today)')
    parser.add_argument('--db', default=None, help='SQLite database file (default: FINLEDGER_DB_PATH)')
    parser.add_argument('--report', action='store_true', help='Print the summary report instead')
    parser.add_argument('--exclude-transfers', action='store_true',
                        help='Leave transfer legs out of the category breakdowns')
    parser.add_argument('--log-level', default=None, help='Logging level (default: FINLEDGER_LOG_LEVEL)')
    args = parser.parse_args()
    config.configure_logging(args.log_level)
    raise SystemExit(main(args.user, args.start_day, date=args.date, db_path=args.db, report=args.report,
                          exclude_transfers=args.exclude_transfers))
