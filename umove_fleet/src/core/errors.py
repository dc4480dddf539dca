# src/core/errors.py
"""
Exception hierarchy for the fleet simulation.

ConfigurationError is fatal and always propagates out of a tick.
Everything else raised while processing a single bus is logged and skipped.
"""


class FleetSimulationError(Exception):
    """Base class for all simulation errors."""


class ConfigurationError(FleetSimulationError, ValueError):
    """Invalid static configuration: non-positive capacity, unknown model, bad tick size."""


class InvalidTransitionError(FleetSimulationError):
    """A manual status change was requested from a state that does not allow it."""


class NegotiationError(FleetSimulationError):
    """A replacement negotiation was driven in a way its current state forbids."""
