"""
StatisticsAggregator: headline numbers and the infection time series.

Reported statistics are running MAXIMA, not instantaneous values:

    infected = max(infected, current_infected)
    rate     = max(rate, current_infected / total * 100)

Infection is irreversible, so the instantaneous count never decreases and the
two framings agree. The maximum guards the headline against read-order
glitches. NOTE: a variant with recovery would need the instantaneous count;
the max would silently hide a real decrease. `current_infected` is kept
alongside for that reason.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

from badapple.core.errors import ConfigurationError

if TYPE_CHECKING:
    from badapple.core.agents import AgentPool


@dataclass(frozen=True)
class SimulationStats:
    """Monotonic headline statistics."""

    total: int
    infected: int
    rate: float  # percent


@dataclass(frozen=True)
class HistoryPoint:
    """One sample of the infection curve."""

    elapsed_seconds: float
    infected_count: int


class StatisticsAggregator:
    """Tracks running maxima and the per-tick history."""

    def __init__(self, total: int):
        if total <= 0:
            raise ConfigurationError(f"population_size must be > 0, got {total}")
        self.total = total
        self.max_infected = 1
        self.max_rate = 100.0 / total
        self.current_infected = 1
        self._history: list[HistoryPoint] = [HistoryPoint(0.0, 1)]

    @property
    def stats(self) -> SimulationStats:
        return SimulationStats(total=self.total, infected=self.max_infected, rate=self.max_rate)

    @property
    def history(self) -> tuple[HistoryPoint, ...]:
        return tuple(self._history)

    @property
    def latest(self) -> HistoryPoint:
        return self._history[-1]

    def update(self, pool: "AgentPool", elapsed_seconds: float) -> SimulationStats:
        """
        Fold the pool's current infected count into the maxima.

        Appends one history point per call.
        """
        current = pool.infected_count
        self.current_infected = current
        self.max_infected = max(self.max_infected, current)
        self.max_rate = max(self.max_rate, current / self.total * 100.0)

        self._history.append(HistoryPoint(elapsed_seconds, self.max_infected))
        return self.stats

