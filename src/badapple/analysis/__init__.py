"""
Analysis layer: derived quantities over a recorded history.

IMPORTANT: This is NOT seen by the engine. One-way derivation only.

- history_to_arrays: HistoryPoints → numpy arrays for plotting
- time_to_fraction: when the outbreak reached X% of the population
- plateau_reached: whether the curve has stopped growing
- fit_logistic: logistic growth fit of the infection curve
"""

from badapple.analysis.curves import (
    LogisticFit,
    fit_logistic,
    history_to_arrays,
    logistic,
    plateau_reached,
    time_to_fraction,
)

__all__ = [
    "LogisticFit",
    "fit_logistic",
    "history_to_arrays",
    "logistic",
    "plateau_reached",
    "time_to_fraction",
]
