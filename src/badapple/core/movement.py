"""
MovementModel: moves agents toward their destinations.

Each tick an agent accumulates progress = speed * dt / 30. Until progress
reaches 1 the agent moves a FRACTION of the remaining distance toward its
destination:

    position += (destination - position) * min(speed * dt / 30, step_cap)

This is exponential decay toward the target, not constant-velocity motion.
Agents slow down as they approach and settle smoothly. The step cap bounds
the fraction covered in one tick, so a long host frame cannot make an agent
jump across the map.

When progress reaches 1 the agent "arrives": it draws a new destination and
progress restarts at 0. The position is NOT snapped to the old destination;
the agent simply turns around from wherever it settled.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from badapple.core.agents import AgentPool


@dataclass
class MovementModel:
    """Exponential-approach movement with random re-targeting."""

    step_cap: float = 0.01  # Max fraction of remaining distance per tick
    time_scale: float = 30.0  # ms of elapsed time per unit of speed

    def step_increment(self, pool: "AgentPool", dt: float) -> np.ndarray:
        """Per-agent progress increment for an elapsed dt (ms)."""
        return pool.speeds * (max(dt, 0.0) / self.time_scale)

    def advance(self, pool: "AgentPool", dt: float, rng: np.random.Generator) -> np.ndarray:
        """
        Advance every agent by dt milliseconds.

        Mutates position, progress and destination only.

        Args:
            pool: Agents to move
            dt: Elapsed time in ms (negative values are treated as 0)
            rng: Random source for new destinations

        Returns:
            Ids of agents that arrived and were re-targeted this tick
        """
        increment = self.step_increment(pool, dt)
        progress = pool.progress + increment
        arrived = progress >= 1.0

        moving = ~arrived
        fraction = np.minimum(increment[moving], self.step_cap)
        pool.positions[moving] += (
            pool.destinations[moving] - pool.positions[moving]
        ) * fraction[:, None]
        pool.progress[moving] = progress[moving]

        arrived_ids = np.flatnonzero(arrived)
        if arrived_ids.size:
            pool.destinations[arrived_ids] = pool.bounds.sample(rng, arrived_ids.size)
            pool.progress[arrived_ids] = 0.0

        return arrived_ids
