# src/fleet/__init__.py
from .bus import Bus, BusModel, BusModelSpec, BusStatus, BUS_MODEL_SPECS, model_spec
from .registry import FleetRegistry, create_demo_fleet
from .status_machine import BusStatusMachine

__all__ = [
    "Bus",
    "BusModel",
    "BusModelSpec",
    "BusStatus",
    "BUS_MODEL_SPECS",
    "model_spec",
    "FleetRegistry",
    "create_demo_fleet",
    "BusStatusMachine"
]
