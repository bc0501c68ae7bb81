"""Analysis utilities for Predictive Agency run histories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .models import BoundaryLevel, HistoryEntry
from .utils import safe_mean


@dataclass(frozen=True)
class BoundaryRewardSummary:
    """
    Reward statistics of one boundary scope over a run.

    Attributes
    ----------
    level : str
        Boundary level name (B0, B1, B2).
    n_ticks : int
        Number of ticks after the burn-in.
    mean_reward : float
        Mean instantaneous reward under this scope.
    ci : Tuple[float, float]
        Student-t confidence interval for the mean; collapses to the mean
        when fewer than two ticks are available or the series is constant.
    final_average : float
        The level's exponential moving average at the last tick.
    """

    level: str
    n_ticks: int
    mean_reward: float
    ci: Tuple[float, float]
    final_average: float


def history_to_frame(history: Iterable[HistoryEntry]) -> pd.DataFrame:
    """One row per tick; state fields are flattened with a ``state_`` prefix."""
    records = [entry.as_record() for entry in history]
    if not records:
        return pd.DataFrame()
    return pd.DataFrame.from_records(records)


def _mean_ci(values: np.ndarray, confidence: float) -> Tuple[float, Tuple[float, float]]:
    mean = safe_mean(values)
    if values.size < 2:
        return mean, (mean, mean)
    sem = float(stats.sem(values))
    if not np.isfinite(sem) or sem == 0.0:
        return mean, (mean, mean)
    half_width = float(stats.t.ppf((1.0 + confidence) / 2.0, df=values.size - 1)) * sem
    return mean, (mean - half_width, mean + half_width)


def summarize_boundary_rewards(
    history: Iterable[HistoryEntry], burn_in: int = 0, confidence: float = 0.95
) -> Dict[str, BoundaryRewardSummary]:
    """Summarize instantaneous rewards of every boundary scope after ``burn_in`` ticks."""
    frame = history_to_frame(history)
    if frame.empty:
        raise ValueError("Cannot summarize an empty history")
    window = frame[frame["t"] >= burn_in]
    if window.empty:
        raise ValueError(f"burn_in={burn_in} leaves no ticks to summarize")

    summaries: Dict[str, BoundaryRewardSummary] = {}
    for level in BoundaryLevel:
        suffix = level.value.lower()
        values = window[f"r_inst_{suffix}"].to_numpy(dtype=float)
        mean, ci = _mean_ci(values, confidence)
        summaries[level.value] = BoundaryRewardSummary(
            level=level.value,
            n_ticks=int(values.size),
            mean_reward=mean,
            ci=ci,
            final_average=float(window[f"r_bar_{suffix}"].iloc[-1]),
        )
    return summaries


def externality_gap(history: Iterable[HistoryEntry], burn_in: int = 0) -> Dict[str, float]:
    """
    Paired gap between the narrow (B0) and widest (B2) reward of each tick.

    Returns the mean gap, its standard deviation, and the standardized gap
    (mean / sd, a paired Cohen's d); the standardized gap is 0 for a constant
    series.
    """
    frame = history_to_frame(history)
    if frame.empty:
        raise ValueError("Cannot compute a gap on an empty history")
    window = frame[frame["t"] >= burn_in]
    gaps = (window["r_inst_b0"] - window["r_inst_b2"]).to_numpy(dtype=float)
    if gaps.size == 0:
        raise ValueError(f"burn_in={burn_in} leaves no ticks to compare")
    mean_gap = safe_mean(gaps)
    sd_gap = float(np.std(gaps, ddof=1)) if gaps.size > 1 else 0.0
    standardized = mean_gap / sd_gap if sd_gap > 0 else 0.0
    return {"mean_gap": mean_gap, "sd_gap": sd_gap, "standardized_gap": standardized, "n_ticks": float(gaps.size)}
