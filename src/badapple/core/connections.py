"""
ConnectionLedger: short-lived records of who infected whom.

Edges are purely observational. They never feed back into the simulation;
hosts draw them as lines between the two agents' positions AT INFECTION TIME
(endpoints do not follow the agents afterwards).

Edges are appended in creation order, so eviction only ever pops from the
front. The ledger size is bounded by the number of infections in the last
TTL window, independent of run length.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import Iterator

from badapple.core.errors import ConfigurationError


@dataclass(frozen=True)
class ConnectionEdge:
    """A transmission event, frozen at creation."""

    source_id: int
    target_id: int
    source_pos: tuple[float, float]
    target_pos: tuple[float, float]
    created_at: float  # ms

    @property
    def id(self) -> str:
        return f"{self.source_id}-{self.target_id}"

    def age(self, now: float) -> float:
        """Milliseconds since creation."""
        return now - self.created_at

    def expired(self, now: float, ttl: float) -> bool:
        return self.age(now) >= ttl


class ConnectionLedger:
    """Time-ordered buffer of live transmission edges."""

    def __init__(self, ttl: float = 2000.0):
        if ttl <= 0:
            raise ConfigurationError(f"connection_ttl_ms must be > 0, got {ttl}")
        self.ttl = ttl
        self._edges: deque[ConnectionEdge] = deque()

    def __len__(self) -> int:
        return len(self._edges)

    def __iter__(self) -> Iterator[ConnectionEdge]:
        return iter(self._edges)

    @property
    def edges(self) -> tuple[ConnectionEdge, ...]:
        """Live edges, oldest first."""
        return tuple(self._edges)

    def record(self, edge: ConnectionEdge) -> None:
        """Append an edge. Edges must arrive in non-decreasing created_at order."""
        self._edges.append(edge)

    def evict(self, now: float) -> int:
        """
        Drop every edge with now - created_at >= ttl.

        Returns:
            Number of edges evicted
        """
        evicted = 0
        while self._edges and self._edges[0].expired(now, self.ttl):
            self._edges.popleft()
            evicted += 1
        return evicted

    def clear(self) -> None:
        self._edges.clear()
