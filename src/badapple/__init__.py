"""
badapple: spatial contagion among mobile agents

One agent starts corrupted. Agents wander a bounded 2-D region, and any clean
agent that comes within the infection radius of a corrupted one is corrupted
too, permanently.

Core concepts:
- Agents drift toward random destinations (exponential approach)
- Infection spreads one hop per tick, against a frozen view of the tick start
- Transmission edges are kept briefly for display, then evicted
- Headline statistics never decrease within a run

The host owns the loop: call SimulationClock.tick(now) and draw the
returned Snapshot.
"""

from loguru import logger

# Library logging is opt-in: logger.enable("badapple")
logger.disable("badapple")

__version__ = "0.1.0"
