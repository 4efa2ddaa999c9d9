"""
InfectionStateMachine: applies transitions and colors infected agents.

Two states only: SUSCEPTIBLE (initial) and INFECTED (terminal). Transitions
come from the ProximityDetector or from seeding patient zero at reset.

The color phase is NOT a state. Every tick, every infected agent is recolored
from how long ago it was infected:

    elapsed > phase_ms  →  terminal hue rgb(180, 0, 120) (deep magenta)
    otherwise           →  ratio = elapsed / phase_ms
                           rgb(floor(255 - 75·ratio), 0, floor(50 + 70·ratio))
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Sequence

import numpy as np

from badapple.core.agents import FRESH_INFECTION_COLOR, Color

if TYPE_CHECKING:
    from badapple.core.agents import AgentPool
    from badapple.core.proximity import Transition


TERMINAL_INFECTION_COLOR: Color = (180, 0, 120)

# Phase ramp endpoints (ratio 0 → ratio 1)
_RAMP_START = np.array([255.0, 0.0, 50.0])
_RAMP_DELTA = np.array([-75.0, 0.0, 70.0])


def phase_color(elapsed: float, phase_ms: float = 10000.0) -> Color:
    """Display color of an agent infected `elapsed` ms ago."""
    if elapsed > phase_ms:
        return TERMINAL_INFECTION_COLOR
    ratio = min(max(elapsed, 0.0) / phase_ms, 1.0)
    r, g, b = np.floor(_RAMP_START + _RAMP_DELTA * ratio).astype(int)
    return int(r), int(g), int(b)


class InfectionStateMachine:
    """One-way SUSCEPTIBLE → INFECTED transitions plus color phase."""

    def __init__(self, phase_ms: float = 10000.0):
        self.phase_ms = phase_ms

    def apply(
        self,
        pool: "AgentPool",
        transitions: Sequence["Transition"],
        now: float,
    ) -> list["Transition"]:
        """
        Infect every target in transitions.

        Targets already infected are skipped, so a transition can never fire
        twice and infected_at is never overwritten.

        Returns:
            The transitions that actually fired
        """
        fired = []
        for transition in transitions:
            target = transition.target_id
            if pool.infected[target]:
                continue
            pool.infected[target] = True
            pool.infected_at[target] = now
            pool.colors[target] = FRESH_INFECTION_COLOR
            fired.append(transition)
        return fired

    def recolor(self, pool: "AgentPool", now: float) -> None:
        """Recompute the phase color of every infected agent."""
        ids = pool.infected_ids()
        if ids.size == 0:
            return

        elapsed = now - pool.infected_at[ids]
        ratio = np.clip(elapsed / self.phase_ms, 0.0, 1.0)
        colors = np.floor(_RAMP_START + _RAMP_DELTA * ratio[:, None]).astype(np.int64)

        settled = elapsed > self.phase_ms
        colors[settled] = TERMINAL_INFECTION_COLOR

        pool.colors[ids] = colors
