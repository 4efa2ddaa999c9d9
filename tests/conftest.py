"""
Pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def unit_config():
    """200 agents in the unit square, reproducible."""
    from badapple.core import SimulationConfig, UNIT_SQUARE
    return SimulationConfig(
        population_size=200,
        bounds=UNIT_SQUARE,
        infection_radius=0.003,
        seed=7,
    )


@pytest.fixture
def small_config():
    """A handful of agents for hand-placed scenarios."""
    from badapple.core import SimulationConfig, UNIT_SQUARE
    return SimulationConfig(
        population_size=5,
        bounds=UNIT_SQUARE,
        infection_radius=0.1,
        seed=1,
    )


@pytest.fixture
def rng():
    """Reproducible random number generator."""
    return np.random.default_rng(seed=42)
