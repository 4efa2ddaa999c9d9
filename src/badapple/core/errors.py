"""
Errors raised by the engine.

Only configuration is ever rejected. Once a run is configured, ticking is
pure in-memory computation and does not raise.
"""


class ConfigurationError(ValueError):
    """Invalid run configuration (population, radius, bounds, ...)."""
