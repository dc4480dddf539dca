import pytest

from umove_fleet.src.core.route import RouteName
from umove_fleet.src.core.weather import Month, Weather
from umove_fleet.src.fleet.bus import Bus, BusModelSpec, BusStatus
from umove_fleet.src.fleet.registry import FleetRegistry
from umove_fleet.src.simulation.engine import SimulationEngine
from umove_fleet.src.simulation.events import (
    BatteryLevelChanged,
    EventRecorder,
    LowBatteryCrossed,
    NegotiationOpened,
    ReplacementDecided,
    StatusChanged,
)
from umove_fleet.src.simulation.state import SimulationState

START = 1_700_000_000.0

# 100 kWh battery, 1 kWh/km: one percent per kilometre
SIMPLE_SPEC = BusModelSpec(battery_capacity_kwh=100.0, consumption_kwh_per_km=1.0)


def make_bus(bus_id, status=BusStatus.GARAGE, level=100.0, route=RouteName.NONE, minutes=0.0, spec=SIMPLE_SPEC):
    bus = Bus(
        bus_id=bus_id,
        battery_percent=level,
        status=status,
        route=route,
        last_update=START,
        status_changed_at=START,
        spec_override=spec,
    )
    bus.time_in_current_status = minutes
    return bus


@pytest.fixture
def neutral_weather():
    # April without rain: multiplier 1.0
    return Weather(month=Month.APRIL, is_raining=False)


@pytest.fixture
def build_engine(neutral_weather):
    def _build(*buses, seconds_per_tick=60.0, policy=None, weather=None):
        state = SimulationState(
            registry=FleetRegistry(list(buses)),
            weather=weather or neutral_weather,
            sim_time=START,
        )
        recorder = EventRecorder(
            state.events,
            StatusChanged,
            BatteryLevelChanged,
            LowBatteryCrossed,
            NegotiationOpened,
            ReplacementDecided,
        )
        engine = SimulationEngine(state, policy=policy)
        engine.set_tick_rate(seconds_per_tick)
        return engine, recorder

    return _build
