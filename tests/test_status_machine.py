import pytest

from umove_fleet.src.core.errors import InvalidTransitionError
from umove_fleet.src.core.route import RouteName
from umove_fleet.src.fleet.bus import BusStatus
from umove_fleet.src.fleet.registry import FleetRegistry
from umove_fleet.src.fleet.status_machine import BusStatusMachine
from umove_fleet.src.simulation.events import EventBus, EventRecorder, StatusChanged

from conftest import START, make_bus


def _machine(*buses):
    events = EventBus()
    recorder = EventRecorder(events, StatusChanged)
    return BusStatusMachine(FleetRegistry(list(buses)), events), recorder


def test_intercept_becomes_inroute_after_30_minutes_keeping_route():
    bus = make_bus("B", BusStatus.INTERCEPT, route=RouteName.R10, minutes=29.9)
    machine, _ = _machine(bus)
    assert machine.next_status(bus) is None

    bus.time_in_current_status = 30.0
    assert machine.apply_transition(bus, START) is BusStatus.INROUTE
    assert bus.route is RouteName.R10
    assert bus.time_in_current_status == 0.0
    assert bus.status_changed_at == START


def test_returning_becomes_charging_after_30_minutes():
    bus = make_bus("B", BusStatus.RETURNING, level=20.0, minutes=30.0)
    machine, recorder = _machine(bus)
    machine.apply_transitions([bus], START)
    assert bus.status is BusStatus.CHARGING
    assert recorder.events == [StatusChanged("B", BusStatus.RETURNING, BusStatus.CHARGING, START)]


def test_full_charging_bus_goes_to_garage():
    bus = make_bus("B", BusStatus.CHARGING, level=100.0)
    machine, _ = _machine(bus)
    assert machine.next_status(bus) is BusStatus.GARAGE


def test_inroute_returns_when_low_and_route_mate_intercepts():
    low = make_bus("A", BusStatus.INROUTE, level=25.0, route=RouteName.R1A, minutes=30.0)
    mate = make_bus("B", BusStatus.INTERCEPT, level=80.0, route=RouteName.R1A, minutes=10.0)
    machine, _ = _machine(low, mate)
    machine.apply_transitions([low, mate], START)
    assert low.status is BusStatus.RETURNING
    assert mate.status is BusStatus.INTERCEPT


@pytest.mark.parametrize("level,minutes,mate_route", [
    (30.0, 30.0, RouteName.R1A),   # not below threshold
    (25.0, 29.0, RouteName.R1A),   # handoff window not elapsed
    (25.0, 30.0, RouteName.R10),   # interceptor is on another route
])
def test_inroute_stays_without_all_conditions(level, minutes, mate_route):
    low = make_bus("A", BusStatus.INROUTE, level=level, route=RouteName.R1A, minutes=minutes)
    mate = make_bus("B", BusStatus.INTERCEPT, route=mate_route, minutes=10.0)
    machine, _ = _machine(low, mate)
    assert machine.next_status(low) is None


def test_intercept_completion_is_committed_before_inroute_check():
    # Both windows expire together; the interceptor arrives first, so the
    # low bus no longer sees a route-mate in Intercept.
    low = make_bus("A", BusStatus.INROUTE, level=25.0, route=RouteName.R1A, minutes=30.0)
    mate = make_bus("B", BusStatus.INTERCEPT, route=RouteName.R1A, minutes=30.0)
    machine, _ = _machine(low, mate)
    machine.apply_transitions([low, mate], START)
    assert mate.status is BusStatus.INROUTE
    assert low.status is BusStatus.INROUTE


@pytest.mark.parametrize("status", [BusStatus.GARAGE, BusStatus.FREE, BusStatus.REPAIR])
def test_idle_states_accrue_nothing(status):
    bus = make_bus("B", status, level=60.0)
    machine, recorder = _machine(bus)
    machine.apply_battery(bus, 3600.0, 1.0, START + 3600)
    assert bus.battery_level == 60.0
    assert bus.time_in_current_status == 0.0
    assert bus.last_update == START + 3600
    assert machine.next_status(bus) is None
    assert recorder.events == []


def test_in_service_bus_drains_and_accrues_time():
    bus = make_bus("B", BusStatus.RETURNING, level=50.0)
    machine, _ = _machine(bus)
    machine.apply_battery(bus, 1800.0, 1.0, START + 1800)
    # 10 km at 1 kWh/km on 100 kWh
    assert bus.battery_level == pytest.approx(40.0)
    assert bus.time_in_current_status == pytest.approx(30.0)


def test_charging_clamps_to_exactly_100_and_goes_to_garage():
    bus = make_bus("B", BusStatus.CHARGING, level=90.0)
    machine, recorder = _machine(bus)
    # 150 kW for 6 minutes = 15 kWh = 15%
    machine.apply_battery(bus, 360.0, 1.0, START + 360)
    assert bus.battery_level == 100.0
    assert bus.status is BusStatus.GARAGE
    assert bus.time_in_current_status == 0.0
    assert recorder.events[-1].new_status is BusStatus.GARAGE


def test_drain_never_goes_below_zero():
    bus = make_bus("B", BusStatus.INROUTE, level=1.0)
    machine, _ = _machine(bus)
    machine.apply_battery(bus, 3600.0, 1.5, START + 3600)
    assert bus.battery_level == 0.0


def test_manual_dispatch_only_from_garage_or_free():
    garage = make_bus("G", BusStatus.GARAGE)
    free = make_bus("F", BusStatus.FREE)
    charging = make_bus("C", BusStatus.CHARGING)
    machine, _ = _machine(garage, free, charging)

    machine.dispatch(garage, RouteName.R13, START)
    machine.dispatch(free, RouteName.R11, START)
    assert (garage.status, garage.route) == (BusStatus.INTERCEPT, RouteName.R13)
    assert (free.status, free.route) == (BusStatus.INTERCEPT, RouteName.R11)

    with pytest.raises(InvalidTransitionError):
        machine.dispatch(charging, RouteName.R13, START)
    with pytest.raises(InvalidTransitionError):
        machine.dispatch(make_bus("X"), RouteName.NONE, START)


def test_override_battery_level_validates_range():
    bus = make_bus("B", BusStatus.INROUTE, level=70.0)
    machine, _ = _machine(bus)
    machine.override_battery_level(bus, 25.0, START)
    assert bus.battery_level == 25.0
    with pytest.raises(ValueError):
        machine.override_battery_level(bus, 101.0, START)
    with pytest.raises(ValueError):
        machine.override_battery_level(bus, -1.0, START)
