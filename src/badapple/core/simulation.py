"""
SimulationClock: owns one run and advances it on demand.

The clock has no timer. A host (render loop, test, script) calls tick(now)
at whatever cadence it likes; each call runs the five sub-steps strictly in
order and returns an immutable Snapshot:

    1. MovementModel.advance        (positions)
    2. ProximityDetector.detect     (frozen view of who is infected)
    3. InfectionStateMachine        (apply transitions, recolor)
    4. ConnectionLedger             (record new edges, evict old ones)
    5. StatisticsAggregator         (running maxima + history point)

All mutable run state (pool, ledger, history, maxima, last tick time) lives
on the clock instance. Ticks must not overlap; the engine is single-threaded.

Timestamps are milliseconds on whatever clock the host uses, as long as it is
the same clock for every call.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import time
from typing import Callable

import numpy as np
from loguru import logger

from badapple.core.agents import Agent, AgentPool, generate_pool
from badapple.core.bounds import RegionBounds, SAN_FRANCISCO
from badapple.core.connections import ConnectionEdge, ConnectionLedger
from badapple.core.errors import ConfigurationError
from badapple.core.infection import InfectionStateMachine
from badapple.core.movement import MovementModel
from badapple.core.proximity import ProximityDetector, ProximityIndex
from badapple.core.statistics import HistoryPoint, SimulationStats, StatisticsAggregator


def wall_clock_ms() -> float:
    """Default time source: monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


def _check_radius(radius: float) -> float:
    if not np.isfinite(radius) or radius <= 0:
        raise ConfigurationError(f"infection_radius must be > 0, got {radius}")
    return float(radius)


@dataclass
class SimulationConfig:
    """Configuration for one run."""

    population_size: int = 200
    bounds: RegionBounds = SAN_FRANCISCO
    infection_radius: float = 0.003  # Same units as bounds

    # Motion
    speed_range: tuple[float, float] = (0.002, 0.004)
    step_cap: float = 0.01

    # Observation
    connection_ttl_ms: float = 2000.0
    color_phase_ms: float = 10000.0

    # Proximity search: "brute" is O(n²), "kdtree" scales to large populations
    proximity_index: ProximityIndex = "auto"
    kdtree_threshold: int = 1000

    seed: int | None = None

    def __post_init__(self):
        if isinstance(self.population_size, bool) or not isinstance(self.population_size, (int, np.integer)):
            raise ConfigurationError(f"population_size must be an integer, got {self.population_size!r}")
        if self.population_size <= 0:
            raise ConfigurationError(f"population_size must be > 0, got {self.population_size}")
        if not isinstance(self.bounds, RegionBounds):
            raise ConfigurationError(f"bounds must be a RegionBounds, got {type(self.bounds).__name__}")
        _check_radius(self.infection_radius)

        low, high = self.speed_range
        if not (0 < low <= high):
            raise ConfigurationError(f"speed_range must satisfy 0 < low <= high, got {self.speed_range}")
        if not (0 < self.step_cap <= 1):
            raise ConfigurationError(f"step_cap must be in (0, 1], got {self.step_cap}")
        if self.connection_ttl_ms <= 0:
            raise ConfigurationError(f"connection_ttl_ms must be > 0, got {self.connection_ttl_ms}")
        if self.color_phase_ms <= 0:
            raise ConfigurationError(f"color_phase_ms must be > 0, got {self.color_phase_ms}")
        if self.proximity_index not in ("auto", "brute", "kdtree"):
            raise ConfigurationError(f"Unknown proximity index: {self.proximity_index!r}")
        if self.kdtree_threshold < 1:
            raise ConfigurationError(f"kdtree_threshold must be >= 1, got {self.kdtree_threshold}")


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of a run after one tick."""

    now: float
    elapsed_seconds: float
    running: bool
    agents: tuple[Agent, ...]
    connections: tuple[ConnectionEdge, ...]
    stats: SimulationStats
    latest_history: HistoryPoint
    new_infections: tuple[int, ...] = field(default=())

    @property
    def infected_ids(self) -> tuple[int, ...]:
        return tuple(a.id for a in self.agents if a.is_infected)


class SimulationClock:
    """
    Drives a single contagion run.

    Starts paused. Call start() (or toggle()) and then tick(now) from the
    host loop. reset() begins a fresh run without changing running/paused.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        rng: np.random.Generator | None = None,
        time_source: Callable[[], float] = wall_clock_ms,
        now: float | None = None,
    ):
        """
        Create the clock and its first run.

        Args:
            config: Run configuration (defaults to SimulationConfig())
            rng: Random source; defaults to default_rng(config.seed)
            time_source: Used whenever a control call omits `now`
            now: Start timestamp of the first run (ms)
        """
        # Private copy: radius changes on this clock never leak into another
        self.config = replace(config) if config is not None else SimulationConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.time_source = time_source

        self.movement = MovementModel(step_cap=self.config.step_cap)
        self.detector = ProximityDetector(
            index=self.config.proximity_index,
            kdtree_threshold=self.config.kdtree_threshold,
        )
        self.infection = InfectionStateMachine(phase_ms=self.config.color_phase_ms)
        self.ledger = ConnectionLedger(ttl=self.config.connection_ttl_ms)

        self.running = False
        self.started_at = 0.0
        self.last_tick_at = 0.0
        self.tick_count = 0
        self._last_new_infections: tuple[int, ...] = ()
        self._saturated = False

        self.pool: AgentPool
        self.statistics: StatisticsAggregator
        self.reset(now)

    # ------------------------------------------------------------------ #
    #  Control surface                                                    #
    # ------------------------------------------------------------------ #

    @property
    def infection_radius(self) -> float:
        return self.config.infection_radius

    def set_infection_radius(self, radius: float) -> None:
        """Change the radius for subsequent ticks. Non-positive values are rejected."""
        radius = _check_radius(radius)
        self.config = replace(self.config, infection_radius=radius)
        logger.debug(f"Infection radius set to {radius}")

    def start(self, now: float | None = None) -> None:
        """Resume ticking. The next tick measures dt from `now`, not from the pause."""
        if self.running:
            return
        self.last_tick_at = self._now(now)
        self.running = True
        logger.debug(f"Simulation started at t={self.elapsed_seconds(self.last_tick_at):.1f}s")

    def pause(self) -> None:
        """Suppress ticks until start() is called."""
        if not self.running:
            return
        self.running = False
        logger.debug(f"Simulation paused after {self.tick_count} ticks")

    def toggle(self, now: float | None = None) -> bool:
        """Flip between running and paused. Returns the new running state."""
        if self.running:
            self.pause()
        else:
            self.start(now)
        return self.running

    def reset(
        self,
        now: float | None = None,
        population_size: int | None = None,
        bounds: RegionBounds | None = None,
    ) -> Snapshot:
        """
        Begin a fresh run.

        Regenerates the pool (agent 0 infected), clears connections and
        history, reseeds statistics to (1, 100/N). Running state is kept.

        Args:
            now: Start timestamp (ms); defaults to time_source()
            population_size: Optional new population size
            bounds: Optional new region

        Returns:
            Snapshot of the fresh run
        """
        overrides = {}
        if population_size is not None:
            overrides["population_size"] = population_size
        if bounds is not None:
            overrides["bounds"] = bounds
        if overrides:
            # replace() re-runs validation
            self.config = replace(self.config, **overrides)

        now = self._now(now)
        self.pool = generate_pool(
            self.config.population_size,
            self.config.bounds,
            self.rng,
            now,
            speed_range=self.config.speed_range,
        )
        self.ledger.clear()
        self.statistics = StatisticsAggregator(self.config.population_size)

        self.started_at = now
        self.last_tick_at = now
        self.tick_count = 0
        self._last_new_infections = (0,)
        self._saturated = self.config.population_size == 1

        logger.debug(
            f"Reset: {self.config.population_size} agents, radius={self.config.infection_radius}"
        )
        return self.snapshot()

    # ------------------------------------------------------------------ #
    #  Stepping                                                           #
    # ------------------------------------------------------------------ #

    def tick(self, now: float) -> Snapshot:
        """
        Advance the run to `now` (ms).

        While paused this is a no-op and returns the current snapshot with no
        fresh infections. A `now` earlier than the previous tick is treated as
        the previous tick's time, so edges and history stay in time order.
        """
        if not self.running:
            return replace(self.snapshot(), new_infections=())

        now = max(float(now), self.last_tick_at)
        dt = now - self.last_tick_at
        self.last_tick_at = now
        self.tick_count += 1

        # 1. Motion
        self.movement.advance(self.pool, dt, self.rng)

        # 2. Detection against the tick-start infected set
        transitions = self.detector.detect(
            self.pool.positions, self.pool.infected, self.config.infection_radius
        )

        # 3. Apply atomically, then recolor everyone infected
        fired = self.infection.apply(self.pool, transitions, now)
        self.infection.recolor(self.pool, now)

        # 4. Edges: one per transition, endpoints frozen now
        for transition in fired:
            sx, sy = self.pool.positions[transition.source_id]
            tx, ty = self.pool.positions[transition.target_id]
            self.ledger.record(ConnectionEdge(
                source_id=transition.source_id,
                target_id=transition.target_id,
                source_pos=(float(sx), float(sy)),
                target_pos=(float(tx), float(ty)),
                created_at=now,
            ))
        self.ledger.evict(now)

        # 5. Statistics
        self.statistics.update(self.pool, self.elapsed_seconds(now))
        self._last_new_infections = tuple(t.target_id for t in fired)

        if not self._saturated and self.pool.susceptible_count == 0:
            self._saturated = True
            logger.info(
                f"All {len(self.pool)} agents infected after {self.elapsed_seconds(now):.1f}s"
            )

        return self.snapshot()

    def run(self, n_ticks: int, dt_ms: float = 1000.0 / 60.0) -> dict:
        """
        Drive n ticks with a synthetic clock advancing dt_ms per tick.

        Starts the clock if paused.

        Returns:
            Summary dictionary
        """
        if not self.running:
            self.start(self.last_tick_at)

        now = self.last_tick_at
        for _ in range(n_ticks):
            now += dt_ms
            self.tick(now)

        stats = self.statistics.stats
        return {
            "n_ticks": n_ticks,
            "elapsed_seconds": self.elapsed_seconds(now),
            "infected": stats.infected,
            "rate": stats.rate,
            "current_infected": self.statistics.current_infected,
            "live_connections": len(self.ledger),
        }

    # ------------------------------------------------------------------ #
    #  Read side                                                          #
    # ------------------------------------------------------------------ #

    @property
    def stats(self) -> SimulationStats:
        return self.statistics.stats

    @property
    def history(self) -> tuple[HistoryPoint, ...]:
        return self.statistics.history

    def elapsed_seconds(self, now: float) -> float:
        """Seconds since the current run started."""
        return (now - self.started_at) / 1000.0

    def snapshot(self) -> Snapshot:
        """Immutable view of the current state (no mutation)."""
        return Snapshot(
            now=self.last_tick_at,
            elapsed_seconds=self.elapsed_seconds(self.last_tick_at),
            running=self.running,
            agents=self.pool.snapshot(),
            connections=self.ledger.edges,
            stats=self.statistics.stats,
            latest_history=self.statistics.latest,
            new_infections=self._last_new_infections,
        )

    def _now(self, now: float | None) -> float:
        return float(now) if now is not None else self.time_source()
