"""
Epidemic-curve analysis over recorded history.

Takes the HistoryPoint sequence a run produced and derives summary numbers:
- time to reach a fraction of the population
- whether the curve has plateaued
- a logistic fit N(t) = K / (1 + exp(-r (t - t0)))

The engine never sees any of this. One-way derivation only.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np
from scipy.optimize import curve_fit

if TYPE_CHECKING:
    from badapple.core.statistics import HistoryPoint


@dataclass
class LogisticFit:
    """Least-squares logistic fit of an infection curve."""

    capacity: float     # K: plateau the curve tends to
    growth_rate: float  # r: per-second growth rate
    midpoint: float     # t0: seconds at which N = K/2
    r_squared: float

    def predict(self, t: np.ndarray | float) -> np.ndarray:
        """Evaluate the fitted curve at time(s) t (seconds)."""
        return logistic(np.asarray(t, dtype=np.float64), self.capacity, self.growth_rate, self.midpoint)


def logistic(t: np.ndarray, capacity: float, growth_rate: float, midpoint: float) -> np.ndarray:
    """K / (1 + exp(-r (t - t0)))."""
    return capacity / (1.0 + np.exp(-growth_rate * (t - midpoint)))


def history_to_arrays(history: Sequence["HistoryPoint"]) -> tuple[np.ndarray, np.ndarray]:
    """Return history as (elapsed_seconds, infected_count) arrays."""
    times = np.array([p.elapsed_seconds for p in history], dtype=np.float64)
    counts = np.array([p.infected_count for p in history], dtype=np.float64)
    return times, counts


def time_to_fraction(
    history: Sequence["HistoryPoint"],
    total: int,
    fraction: float,
) -> float | None:
    """
    First elapsed time at which infected_count >= fraction * total.

    Returns:
        Seconds, or None if the curve never gets there
    """
    if not 0.0 < fraction <= 1.0:
        raise ValueError(f"fraction must be in (0, 1], got {fraction}")
    times, counts = history_to_arrays(history)
    reached = np.flatnonzero(counts >= fraction * total)
    if reached.size == 0:
        return None
    return float(times[reached[0]])


def plateau_reached(history: Sequence["HistoryPoint"], window: int = 60) -> bool:
    """Whether the last `window` points all share the same count."""
    if window < 2:
        raise ValueError(f"window must be >= 2, got {window}")
    if len(history) < window:
        return False
    _, counts = history_to_arrays(history[-window:])
    return bool(np.all(counts == counts[0]))


def fit_logistic(history: Sequence["HistoryPoint"], total: int) -> LogisticFit:
    """
    Fit a logistic curve to the infection history.

    Args:
        history: Recorded HistoryPoints (at least 4)
        total: Population size; bounds the fitted capacity

    Returns:
        LogisticFit

    Raises:
        ValueError: Too few points to fit
        RuntimeError: The optimiser did not converge (from scipy)
    """
    if len(history) < 4:
        raise ValueError(f"Need at least 4 history points to fit, got {len(history)}")

    times, counts = history_to_arrays(history)
    span = max(float(times[-1] - times[0]), 1e-9)

    # Quartile crossings give the starting midpoint and slope: t75 - t25 = 2 ln 3 / r
    peak = float(counts.max())
    t25, t50, t75 = (float(times[np.argmax(counts >= q * peak)]) for q in (0.25, 0.5, 0.75))
    growth = 2.0 * np.log(3.0) / (t75 - t25) if t75 > t25 else 4.0 / span

    lower = [1.0, 0.0, float(times[0]) - span]
    # lower and upper must differ even for a single-agent run
    upper = [max(float(total), 1.0 + 1e-6), np.inf, float(times[-1]) + span]
    p0 = [min(max(peak, 1.0), upper[0]), growth, t50]

    popt, _ = curve_fit(logistic, times, counts, p0=p0, bounds=(lower, upper), maxfev=5000)

    fitted = logistic(times, *popt)
    ss_res = np.sum((counts - fitted) ** 2)
    ss_tot = np.sum((counts - counts.mean()) ** 2)
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0

    return LogisticFit(
        capacity=float(popt[0]),
        growth_rate=float(popt[1]),
        midpoint=float(popt[2]),
        r_squared=float(r_squared),
    )
