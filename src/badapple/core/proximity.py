"""
ProximityDetector: finds who infects whom this tick.

Detection runs against a FROZEN view of the pool: the infected mask is copied
at the start of the pass and nothing is mutated here. An agent that becomes
infected this tick therefore cannot infect anyone else until the next tick,
which limits spread to one hop per tick and keeps runs deterministic.

Rules:
- distance(source, target) < radius (strict)
- each susceptible target is infected at most once per tick
- when several infected agents are in range, the lowest-id one is the source
- transitions are returned ordered by target id

Two interchangeable strategies:
- "brute": vectorised O(n²) distance matrix. Fine for hundreds of agents.
- "kdtree": scipy cKDTree over infected positions. The scaling path when the
  population grows by an order of magnitude.
Both produce identical transitions.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Literal, Sequence

import numpy as np
from scipy.spatial import cKDTree

from badapple.core.errors import ConfigurationError

ProximityIndex = Literal["auto", "brute", "kdtree"]


@dataclass(frozen=True)
class Transition:
    """A susceptible agent infected by an infected one."""

    source_id: int
    target_id: int


class ProximityDetector:
    """Radius search between infected and susceptible agents."""

    def __init__(self, index: ProximityIndex = "auto", kdtree_threshold: int = 1000):
        if index not in ("auto", "brute", "kdtree"):
            raise ConfigurationError(f"Unknown proximity index: {index!r}")
        self.index = index
        self.kdtree_threshold = kdtree_threshold

    def strategy_for(self, n_agents: int) -> str:
        """Concrete strategy used for a population of n_agents."""
        if self.index != "auto":
            return self.index
        return "kdtree" if n_agents >= self.kdtree_threshold else "brute"

    def detect(
        self,
        positions: np.ndarray,
        infected: np.ndarray,
        radius: float,
    ) -> list[Transition]:
        """
        Compute this tick's transitions.

        Args:
            positions: [n, 2] post-movement positions
            infected: [n] infected mask at tick start (not modified)
            radius: Infection radius

        Returns:
            Transitions ordered by target id
        """
        infected = np.array(infected, dtype=bool)  # frozen copy
        source_ids = np.flatnonzero(infected)
        target_ids = np.flatnonzero(~infected)
        if source_ids.size == 0 or target_ids.size == 0:
            return []

        if self.strategy_for(len(positions)) == "kdtree":
            return self._detect_kdtree(positions, source_ids, target_ids, radius)
        return self._detect_brute(positions, source_ids, target_ids, radius)

    def _detect_brute(
        self,
        positions: np.ndarray,
        source_ids: np.ndarray,
        target_ids: np.ndarray,
        radius: float,
    ) -> list[Transition]:
        """Full distance matrix [sources, targets]."""
        delta = positions[source_ids, None, :] - positions[None, target_ids, :]
        distance = np.hypot(delta[..., 0], delta[..., 1])
        within = distance < radius

        hit = within.any(axis=0)
        # argmax picks the first True row, i.e. the lowest source id
        first_source = within.argmax(axis=0)

        return [
            Transition(source_id=int(source_ids[first_source[col]]), target_id=int(target_ids[col]))
            for col in np.flatnonzero(hit)
        ]

    def _detect_kdtree(
        self,
        positions: np.ndarray,
        source_ids: np.ndarray,
        target_ids: np.ndarray,
        radius: float,
    ) -> list[Transition]:
        """Ball queries against a tree of infected positions."""
        tree = cKDTree(positions[source_ids])
        # Slightly widened query; the exact strict test below decides
        candidates = tree.query_ball_point(positions[target_ids], r=radius * (1.0 + 1e-9))

        transitions = []
        for col, rows in enumerate(candidates):
            if not rows:
                continue
            target = target_ids[col]
            for row in sorted(rows):
                source = source_ids[row]
                if pairwise_distance(positions[source], positions[target]) < radius:
                    transitions.append(Transition(source_id=int(source), target_id=int(target)))
                    break
        return transitions


def pairwise_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two points."""
    return float(np.hypot(a[0] - b[0], a[1] - b[1]))
