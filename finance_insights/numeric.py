"""Small numeric helpers shared by the aggregation modules."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

_ONE_MICROSECOND = timedelta(microseconds=1)


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def round_half_up(n: float) -> int:
    """Round to the nearest integer, halves toward positive infinity.

    Dashboard clients round the same way, so ``2.5 -> 3`` and ``-2.5 -> -2``
    (``round()`` would give 2 and -2).
    """

    return math.floor(n + 0.5)


def pct(ratio: float) -> int:
    """Whole-number percentage of a ratio (``0.204 -> 20``)."""

    return round_half_up(ratio * 100)


def micros(delta: timedelta) -> int:
    return delta // _ONE_MICROSECOND


def iso_millis(moment: datetime) -> str:
    """``2026-01-05T00:00:00.000Z`` style UTC timestamp."""

    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
