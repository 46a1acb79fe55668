from __future__ import annotations

"""Time-related helper functions and the injectable clock."""

import math
import time
from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of wall-clock time as epoch seconds."""

    def now(self) -> float: ...


class SystemClock:
    """Clock backed by :func:`time.time`."""

    def now(self) -> float:
        return time.time()


def format_ts(ts: float, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Return formatted string for the given timestamp."""
    return datetime.fromtimestamp(ts).strftime(fmt)


def day_bounds(ts: float) -> tuple[float, float]:
    """Return start and end timestamps of the local day containing ``ts``."""
    today = datetime.fromtimestamp(ts).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return today.timestamp(), (today + timedelta(days=1)).timestamp()


def ceil_minutes(seconds: float) -> int:
    """Return ``seconds`` rounded up to whole minutes, never below zero."""
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)
