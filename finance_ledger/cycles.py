"""Billing cycle windows anchored to a configurable start day.

A cycle runs from day ``S`` of one month up to and including day ``S - 1``
of the next month.  Windows are derived on demand and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_START_DAY, MAX_START_DAY, MIN_START_DAY
from .errors import ConfigurationError

_ONE_NANOSECOND = pd.Timedelta(1, unit="ns")


def _as_timestamp(value: Any) -> pd.Timestamp:
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts


@dataclass(frozen=True)
class CycleWindow:
    """Inclusive ``[start, end]`` window.

    ``start`` sits at the beginning of its day and ``end`` at the very end
    of its day, so plain dates compare the way a user expects.
    """

    start: pd.Timestamp
    end: pd.Timestamp
    start_day: Optional[int] = None

    @classmethod
    def from_dates(cls, start: Any, end: Any) -> "CycleWindow":
        """Build an arbitrary window covering whole days from ``start`` to ``end``.

        Such a window has no ``start_day``, so ``previous()`` and ``next()``
        raise ConfigurationError on it.
        """
        first = _as_timestamp(start).normalize()
        last = _as_timestamp(end).normalize() + pd.Timedelta(days=1) - _ONE_NANOSECOND
        return cls(start=first, end=last)

    @property
    def label(self) -> str:
        return f"{self.start.date().isoformat()}/{self.end.date().isoformat()}"

    @property
    def is_inverted(self) -> bool:
        return self.end < self.start

    def contains(self, value: Any) -> bool:
        ts = _as_timestamp(value)
        return self.start <= ts <= self.end

    def previous(self) -> "CycleWindow":
        return cycle_window(self.start - pd.Timedelta(days=1), self._anchor_day())

    def next(self) -> "CycleWindow":
        return cycle_window(self.end.normalize() + pd.Timedelta(days=1), self._anchor_day())

    def _anchor_day(self) -> int:
        # Windows from from_dates() have no start day to step by.
        if self.start_day is None:
            raise ConfigurationError(
                f"Window {self.label} has no cycle start day; only cycle windows can be chained"
            )
        return self.start_day


def validate_start_day(start_day: Any) -> int:
    if isinstance(start_day, bool) or not isinstance(start_day, (int, np.integer)):
        raise ConfigurationError(f"Cycle start day must be an integer, got {start_day!r}")
    if not MIN_START_DAY <= start_day <= MAX_START_DAY:
        raise ConfigurationError(
            f"Cycle start day must be between {MIN_START_DAY} and {MAX_START_DAY}, got {start_day}"
        )
    return int(start_day)


def validate_window(window: CycleWindow) -> CycleWindow:
    if window.is_inverted:
        raise ConfigurationError(
            f"Cycle window ends before it starts: {window.start} > {window.end}"
        )
    return window


def cycle_window(reference: Any, start_day: int) -> CycleWindow:
    """Return the cycle that contains ``reference``.

    A reference date falling exactly on ``start_day`` opens a new cycle.

    Example:
        >>> w = cycle_window('2024-02-01', 25)
        >>> w.label
        '2024-01-25/2024-02-24'
    """
    start_day = validate_start_day(start_day)
    ref = _as_timestamp(reference).normalize()

    if ref.day >= start_day:
        year, month = ref.year, ref.month
    elif ref.month == 1:
        year, month = ref.year - 1, 12
    else:
        year, month = ref.year, ref.month - 1

    start = pd.Timestamp(year=year, month=month, day=start_day)
    end = start + pd.DateOffset(months=1) - _ONE_NANOSECOND
    return CycleWindow(start=start, end=end, start_day=start_day)


def current_cycle(start_day: Optional[int] = None, today: Any = None) -> CycleWindow:
    reference = today if today is not None else pd.Timestamp.now()
    return cycle_window(reference, DEFAULT_START_DAY if start_day is None else start_day)


def cycle_windows(first: Any, last: Any, start_day: int) -> Iterator[CycleWindow]:
    """Yield consecutive cycles from the one containing ``first`` through ``last``."""
    window = cycle_window(first, start_day)
    stop = _as_timestamp(last)
    while window.start <= stop:
        yield window
        window = window.next()
