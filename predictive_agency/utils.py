"""Numeric helpers and random-source construction for Predictive Agency."""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Union

import numpy as np

RandomSource = Union[None, int, np.random.Generator]


def clamp(value: float, lo: float, hi: float) -> float:
    """Bound ``value`` to ``[lo, hi]``."""
    return max(lo, min(hi, value))


def safe_mean(data: Any) -> float:
    """Compute the mean, returning NaN for empty collections."""
    arr = np.asarray(data, dtype=float)
    if arr.size == 0:
        return np.nan
    with np.errstate(invalid="ignore"):
        return float(arr.mean())


def fast_mean(values: Iterable[float]) -> float:
    """Lightweight mean for Python iterables; raises on an empty input.

    Used on the tick path where an empty population is a programming error
    rather than a missing observation.
    """
    total = 0.0
    count = 0
    for value in values:
        total += float(value)
        count += 1
    if count == 0:
        raise ValueError("mean of an empty sequence is undefined")
    return total / count


def make_rng(seed: RandomSource = None) -> np.random.Generator:
    """Return a ``numpy`` Generator, reusing one that is passed in unchanged."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def sanitize_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Replace NaN/inf floats with 0.0 so a record serializes as plain JSON."""
    cleaned: Dict[str, Any] = {}
    for key, value in record.items():
        if isinstance(value, float) and not math.isfinite(value):
            cleaned[key] = 0.0
        else:
            cleaned[key] = value
    return cleaned
