"""
Statistics kernel shared by the outlier detector and the decision engine.

Two percentile conventions live here on purpose:

- ``percentile`` interpolates over ranks ``0..n-1`` and drives the
  per-source outlier detector.
- ``percentile_exclusive`` uses the ``(n+1)`` position convention and
  drives the adaptive decision stage. It produces wider quartiles on
  small samples, which the adaptive cutoff relies on.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

import numpy as np


def _sorted_values(values: Iterable[float]) -> np.ndarray:
    return np.sort(np.asarray(list(values), dtype=np.float64))


def percentile(values: Iterable[float], p: float) -> float:
    """
    Linear-interpolation percentile over a sorted copy of ``values``.

    Args:
        values: Finite numbers in any order
        p: Percentile in [0, 100]; values outside are clamped

    Returns:
        Interpolated percentile, or 0.0 for empty input
    """
    s = _sorted_values(values)
    n = len(s)
    if n == 0:
        return 0.0

    p = min(100.0, max(0.0, float(p)))
    rank = (p / 100.0) * (n - 1)
    lo = math.floor(rank)
    hi = math.ceil(rank)
    if lo == hi:
        return float(s[lo])
    frac = rank - lo
    return float(s[lo] + frac * (s[hi] - s[lo]))


def median(values: Iterable[float]) -> float:
    """Median as the 50th percentile."""
    return percentile(values, 50.0)


def mad(values: Iterable[float]) -> float:
    """Median absolute deviation around the median."""
    arr = np.asarray(list(values), dtype=np.float64)
    if arr.size == 0:
        return 0.0
    center = median(arr)
    return median(np.abs(arr - center))


def percentile_exclusive(values: Iterable[float], p: float) -> float:
    """
    Percentile with the ``(n+1)`` position convention.

    ``pos = p * (n + 1) / 100`` is clamped to the 1..n domain and the
    result interpolates between the neighbouring sorted values.
    """
    s = _sorted_values(values)
    n = len(s)
    if n == 0:
        return 0.0

    pos = float(p) * (n + 1) / 100.0
    if pos <= 1:
        return float(s[0])
    if pos >= n:
        return float(s[-1])
    idx = int(pos)
    delta = pos - idx
    return float(s[idx - 1] + delta * (s[idx] - s[idx - 1]))


def ceil_fraction(fraction: float, n: int) -> int:
    """
    ``ceil(fraction * n)`` without floating-point overshoot.

    ``0.1 * 30`` evaluates to ``3.0000000000000004`` in binary floating
    point; rounding the product first keeps the count at 3.
    """
    return int(math.ceil(round(float(fraction) * n, 9)))
