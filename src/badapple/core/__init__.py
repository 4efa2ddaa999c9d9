"""
Core engine primitives.

The engine knows about agents, distances and time. Nothing here renders,
schedules, or persists anything:
- RegionBounds: the rectangle agents live in
- AgentPool: per-agent arrays (motion, contagion state, color)
- MovementModel: exponential approach toward random destinations
- ProximityDetector: who infects whom this tick (frozen view, one hop)
- InfectionStateMachine: one-way transitions + color phase
- ConnectionLedger: short-lived transmission edges
- StatisticsAggregator: monotonic headline stats + history
- SimulationClock: runs the steps above, in order, on each tick(now)
"""

from badapple.core.errors import ConfigurationError
from badapple.core.bounds import RegionBounds, SAN_FRANCISCO, UNIT_SQUARE
from badapple.core.agents import Agent, AgentPool, AgentState, format_rgb, generate_pool
from badapple.core.movement import MovementModel
from badapple.core.proximity import ProximityDetector, Transition
from badapple.core.infection import InfectionStateMachine, phase_color
from badapple.core.connections import ConnectionEdge, ConnectionLedger
from badapple.core.statistics import HistoryPoint, SimulationStats, StatisticsAggregator
from badapple.core.simulation import SimulationClock, SimulationConfig, Snapshot

__all__ = [
    "ConfigurationError",
    "RegionBounds",
    "SAN_FRANCISCO",
    "UNIT_SQUARE",
    "Agent",
    "AgentPool",
    "AgentState",
    "format_rgb",
    "generate_pool",
    "MovementModel",
    "ProximityDetector",
    "Transition",
    "InfectionStateMachine",
    "phase_color",
    "ConnectionEdge",
    "ConnectionLedger",
    "HistoryPoint",
    "SimulationStats",
    "StatisticsAggregator",
    "SimulationClock",
    "SimulationConfig",
    "Snapshot",
]
