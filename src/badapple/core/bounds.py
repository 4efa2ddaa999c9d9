"""
RegionBounds: the rectangle agents live in.

Bounds are fixed for a run. Every generated position and destination is
sampled inside them, and movement only ever takes convex combinations of
in-bounds points, so agents never leave.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np

from badapple.core.errors import ConfigurationError


@dataclass(frozen=True)
class RegionBounds:
    """Axis-aligned rectangle of valid coordinates."""

    x_min: float
    x_max: float
    y_min: float
    y_max: float

    def __post_init__(self):
        for name in ("x_min", "x_max", "y_min", "y_max"):
            value = getattr(self, name)
            if not np.isfinite(value):
                raise ConfigurationError(f"bounds.{name} must be finite, got {value!r}")
        if self.x_max <= self.x_min or self.y_max <= self.y_min:
            raise ConfigurationError(
                f"bounds must have positive area, got x=[{self.x_min}, {self.x_max}] "
                f"y=[{self.y_min}, {self.y_max}]"
            )

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min

    @property
    def center(self) -> tuple[float, float]:
        """Center point (x, y)."""
        return (self.x_min + self.x_max) / 2.0, (self.y_min + self.y_max) / 2.0

    def contains(self, x: float, y: float) -> bool:
        """Whether (x, y) lies inside the closed rectangle."""
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max

    def contains_all(self, points: np.ndarray) -> bool:
        """Whether every row of an [n, 2] array lies inside the rectangle."""
        if len(points) == 0:
            return True
        xs, ys = points[:, 0], points[:, 1]
        return bool(
            np.all((xs >= self.x_min) & (xs <= self.x_max))
            and np.all((ys >= self.y_min) & (ys <= self.y_max))
        )

    def sample(self, rng: np.random.Generator, n: int) -> np.ndarray:
        """
        Sample n points uniformly inside the rectangle.

        Returns:
            [n, 2] array of (x, y) rows
        """
        points = np.empty((n, 2), dtype=np.float64)
        points[:, 0] = rng.uniform(self.x_min, self.x_max, n)
        points[:, 1] = rng.uniform(self.y_min, self.y_max, n)
        return points


# Central San Francisco, Golden Gate Park to the Bay Bridge (lng, lat)
SAN_FRANCISCO = RegionBounds(x_min=-122.51, x_max=-122.39, y_min=37.70, y_max=37.80)

UNIT_SQUARE = RegionBounds(x_min=0.0, x_max=1.0, y_min=0.0, y_max=1.0)
