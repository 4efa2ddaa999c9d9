"""
AgentPool: every agent of a run, stored as parallel numpy arrays.

The pool stores ONLY per-agent primitives:
- position / destination / progress / speed (motion)
- infected flag + infection time (contagion state)
- display color (derived, recomputed by the infection layer)

Agent ids are row indices, stable for the lifetime of a run. The `Agent`
dataclass is the read-only per-agent view handed to hosts in snapshots.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import numpy as np

from badapple.core.bounds import RegionBounds
from badapple.core.errors import ConfigurationError


class AgentState(str, Enum):
    """Contagion state. SUSCEPTIBLE → INFECTED is one-way."""

    SUSCEPTIBLE = "susceptible"
    INFECTED = "infected"


Color = tuple[int, int, int]

# Patient-zero / newly infected marker (bright red)
FRESH_INFECTION_COLOR: Color = (255, 50, 50)


def format_rgb(color: Color) -> str:
    """Format an RGB triple as a CSS `rgb(r, g, b)` string."""
    r, g, b = color
    return f"rgb({r}, {g}, {b})"


@dataclass(frozen=True)
class Agent:
    """Immutable snapshot of a single agent at one tick."""

    id: int
    position: tuple[float, float]
    destination: tuple[float, float]
    progress: float
    speed: float
    state: AgentState
    infected_at: float | None
    color: Color

    @property
    def is_infected(self) -> bool:
        return self.state is AgentState.INFECTED


class AgentPool:
    """
    Parallel arrays for n agents.

    Invariant: infected_at[i] is finite iff infected[i] is True.
    """

    def __init__(self, bounds: RegionBounds, size: int):
        if size <= 0:
            raise ConfigurationError(f"population_size must be > 0, got {size}")

        self.bounds = bounds
        n = size

        # Motion
        self.positions = np.zeros((n, 2), dtype=np.float64)
        self.destinations = np.zeros((n, 2), dtype=np.float64)
        self.progress = np.zeros(n, dtype=np.float64)
        self.speeds = np.zeros(n, dtype=np.float64)

        # Contagion (NaN = never infected)
        self.infected = np.zeros(n, dtype=bool)
        self.infected_at = np.full(n, np.nan, dtype=np.float64)

        # Display
        self.colors = np.zeros((n, 3), dtype=np.int64)

    def __len__(self) -> int:
        return len(self.progress)

    @property
    def size(self) -> int:
        return len(self)

    @property
    def infected_count(self) -> int:
        return int(np.count_nonzero(self.infected))

    @property
    def susceptible_count(self) -> int:
        return len(self) - self.infected_count

    def infected_ids(self) -> np.ndarray:
        """Ids of infected agents, ascending."""
        return np.flatnonzero(self.infected)

    def susceptible_ids(self) -> np.ndarray:
        """Ids of susceptible agents, ascending."""
        return np.flatnonzero(~self.infected)

    def agent(self, agent_id: int) -> Agent:
        """Build the immutable view of one agent."""
        infected = bool(self.infected[agent_id])
        x, y = self.positions[agent_id]
        dx, dy = self.destinations[agent_id]
        r, g, b = self.colors[agent_id]
        return Agent(
            id=int(agent_id),
            position=(float(x), float(y)),
            destination=(float(dx), float(dy)),
            progress=float(self.progress[agent_id]),
            speed=float(self.speeds[agent_id]),
            state=AgentState.INFECTED if infected else AgentState.SUSCEPTIBLE,
            infected_at=float(self.infected_at[agent_id]) if infected else None,
            color=(int(r), int(g), int(b)),
        )

    def iter_agents(self) -> Iterator[Agent]:
        """Iterate over agent views in id order."""
        for agent_id in range(len(self)):
            yield self.agent(agent_id)

    def snapshot(self) -> tuple[Agent, ...]:
        """All agents as an immutable, id-ordered tuple."""
        return tuple(self.iter_agents())


def generate_pool(
    size: int,
    bounds: RegionBounds,
    rng: np.random.Generator,
    now: float,
    speed_range: tuple[float, float] = (0.002, 0.004),
) -> AgentPool:
    """
    Create a fresh pool with agent 0 seeded as patient zero.

    Positions and destinations are uniform in bounds, speeds uniform in
    speed_range. Susceptible agents get a random green tint.

    Args:
        size: Number of agents (must be > 0)
        bounds: Region to sample positions in
        rng: Random source (seed it for reproducible runs)
        now: Timestamp (ms) recorded as patient zero's infection time
        speed_range: (low, high) for the uniform speed draw

    Returns:
        Populated AgentPool
    """
    pool = AgentPool(bounds, size)

    pool.positions[:] = bounds.sample(rng, size)
    pool.destinations[:] = bounds.sample(rng, size)
    low, high = speed_range
    pool.speeds[:] = rng.uniform(low, high, size)

    # Green tints: r, b in [0, 100), g in [100, 255)
    pool.colors[:, 0] = np.floor(rng.random(size) * 100)
    pool.colors[:, 1] = np.floor(rng.random(size) * 155 + 100)
    pool.colors[:, 2] = np.floor(rng.random(size) * 100)

    pool.infected[0] = True
    pool.infected_at[0] = now
    pool.colors[0] = FRESH_INFECTION_COLOR

    return pool
