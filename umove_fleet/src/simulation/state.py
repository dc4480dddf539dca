# src/simulation/state.py
"""
Central state container for the entire simulation.
Holds the fleet, the static reference data and the simulated clock.
"""

import time
from dataclasses import dataclass, field

from umove_fleet.src.core.route import RouteStore
from umove_fleet.src.core.weather import Weather
from umove_fleet.src.fleet.registry import FleetRegistry
from umove_fleet.src.simulation.events import EventBus


@dataclass
class SimulationState:
    registry: FleetRegistry
    routes: RouteStore = field(default_factory=RouteStore)
    weather: Weather = field(default_factory=Weather)
    sim_time: float = field(default_factory=time.time)   # epoch seconds, simulated
    events: EventBus = field(default_factory=EventBus)

    @property
    def buses(self):
        return self.registry.snapshot()

    @property
    def consumption_multiplier(self) -> float:
        return self.weather.consumption_multiplier if self.weather else 1.0
