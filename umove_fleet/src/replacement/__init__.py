# src/replacement/__init__.py
from .coordinator import Negotiation, ReplacementCoordinator, highest_battery_policy

__all__ = ["Negotiation", "ReplacementCoordinator", "highest_battery_policy"]
