"""Time-series statistics primitives."""

import math
import statistics
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.fmean(values)


def std_dev(values: Sequence[float], mu: float | None = None) -> float:
    """Population standard deviation, 0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.pstdev(values, mu)


def quantile(values: Sequence[float], q: float) -> float:
    """
    Quantile with linear interpolation between closest ranks.

    Position is q * (n - 1) over the sorted values, matching the
    "inclusive" method of statistics.quantiles for all q in [0, 1].
    """
    if not values:
        return 0.0

    ordered = sorted(values)
    index = q * (len(ordered) - 1)
    lower = math.floor(index)
    upper = math.ceil(index)

    if lower == upper:
        return ordered[lower]

    return ordered[lower] * (upper - index) + ordered[upper] * (index - lower)


def percentage_change(current: float, previous: float) -> float:
    """
    Percent change from previous to current.

    A zero previous value reports 100 when current is positive, else 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def period_trend(values: Sequence[float], period: int = 7) -> float:
    """
    Percent change of the last `period` values versus the `period` before.

    Values are ordered oldest to newest. Returns 0 when fewer than two full
    periods are available.
    """
    if len(values) < period * 2:
        return 0.0

    recent_total = sum(values[-period:])
    previous_total = sum(values[-period * 2 : -period])
    return percentage_change(recent_total, previous_total)
