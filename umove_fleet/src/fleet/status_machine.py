# src/fleet/status_machine.py
"""
Operational state machine for buses.

Clock-driven transitions are decided before the tick's battery update:
    Intercept  --(30 min)-->                                   Inroute
    Inroute    --(< 30%, route-mate in Intercept, 30 min)-->   Returning
    Returning  --(30 min)-->                                   Charging
    Charging   --(battery at 100%)-->                          Garage

Transitions are committed in a fixed status order (Intercept, Returning,
Charging, Inroute) so that route-mate conditions read already-committed
statuses independently of fleet ordering. Garage, Free and Repair never
change on the clock and accrue no time.
"""

from typing import Iterable, List, Optional, Tuple

from umove_fleet.src.config.settings import SimulationSettings
from umove_fleet.src.core.battery import charge_for_duration, consume_for_distance
from umove_fleet.src.core.errors import InvalidTransitionError
from umove_fleet.src.core.route import RouteName
from umove_fleet.src.fleet.bus import Bus, BusStatus, IN_SERVICE_STATUSES
from umove_fleet.src.simulation.events import BatteryLevelChanged, EventBus, StatusChanged

# Float slack for minute thresholds built from fractional tick sizes
_EPSILON_MINUTES = 1e-9

_EVALUATION_ORDER = {
    BusStatus.INTERCEPT: 0,
    BusStatus.RETURNING: 1,
    BusStatus.CHARGING: 2,
    BusStatus.INROUTE: 3,
}

MANUAL_DISPATCH_FROM = frozenset({BusStatus.GARAGE, BusStatus.FREE})


def _elapsed(bus: Bus, minutes: float) -> bool:
    return bus.time_in_current_status >= minutes - _EPSILON_MINUTES


class BusStatusMachine:
    def __init__(self, registry, events: Optional[EventBus] = None, settings=SimulationSettings):
        self.registry = registry
        self.events = events or EventBus()
        self.settings = settings

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(self, bus: Bus, new_status: BusStatus, now: float) -> bool:
        old_status = bus.status
        if not bus.change_status(new_status, now):
            return False
        if new_status not in IN_SERVICE_STATUSES:
            bus.replacing_bus = None
        self.events.publish(StatusChanged(bus.bus_id, old_status, new_status, now))
        return True

    def has_intercepting_route_mate(self, bus: Bus) -> bool:
        if bus.route == RouteName.NONE:
            return False
        return any(
            other.bus_id != bus.bus_id
            for other in self.registry.on_route(bus.route, BusStatus.INTERCEPT)
        )

    def next_status(self, bus: Bus) -> Optional[BusStatus]:
        """Automatic transition due for this bus, or None."""
        s = self.settings
        if bus.status == BusStatus.INTERCEPT:
            if _elapsed(bus, s.INTERCEPT_MINUTES):
                return BusStatus.INROUTE
        elif bus.status == BusStatus.INROUTE:
            if (
                bus.battery_level < s.LOW_BATTERY_PERCENT
                and _elapsed(bus, s.HANDOFF_MINUTES)
                and self.has_intercepting_route_mate(bus)
            ):
                return BusStatus.RETURNING
        elif bus.status == BusStatus.RETURNING:
            if _elapsed(bus, s.RETURN_MINUTES):
                return BusStatus.CHARGING
        elif bus.status == BusStatus.CHARGING:
            if bus.battery_level >= 100.0:
                return BusStatus.GARAGE
        return None

    def evaluation_order(self, buses: Iterable[Bus]) -> List[Bus]:
        return sorted(buses, key=lambda b: _EVALUATION_ORDER.get(b.status, len(_EVALUATION_ORDER)))

    def apply_transition(self, bus: Bus, now: float) -> Optional[BusStatus]:
        """Commit the automatic transition due for this bus, if any."""
        target = self.next_status(bus)
        if target is None:
            return None
        if target == BusStatus.GARAGE:
            bus.battery_level = 100.0
        self.transition(bus, target, now)
        return target

    def apply_transitions(self, buses: Iterable[Bus], now: float) -> List[Tuple[Bus, BusStatus]]:
        """Pass 1 over a whole snapshot, without per-bus isolation."""
        committed = []
        for bus in self.evaluation_order(buses):
            target = self.apply_transition(bus, now)
            if target is not None:
                committed.append((bus, target))
        return committed

    def dispatch(self, bus: Bus, route: RouteName, now: float) -> None:
        """Manual Garage/Free -> Intercept with a route assignment."""
        if bus.status not in MANUAL_DISPATCH_FROM:
            raise InvalidTransitionError(
                f"{bus.bus_id} cannot be dispatched from {bus.status.value}"
            )
        if route == RouteName.NONE:
            raise InvalidTransitionError(f"{bus.bus_id} needs a route to intercept")
        bus.route = route
        self.transition(bus, BusStatus.INTERCEPT, now)

    # ------------------------------------------------------------------
    # Battery
    # ------------------------------------------------------------------

    def _set_level(self, bus: Bus, level: float, now: float) -> None:
        old_level = bus.battery_level
        bus.battery_level = level
        if bus.battery_level != old_level:
            self.events.publish(BatteryLevelChanged(bus.bus_id, old_level, bus.battery_level, now))

    def apply_battery(self, bus: Bus, elapsed_seconds: float, weather_multiplier: float, now: float) -> None:
        """
        Pass 2: battery and timer update for one tick of elapsed_seconds ending at now.
        In-service buses drain, charging buses gain and go to Garage the moment
        they reach 100%.
        """
        hours = elapsed_seconds / 3600
        if bus.status in IN_SERVICE_STATUSES:
            distance_km = self.settings.AVERAGE_SPEED_KMH * hours
            used = consume_for_distance(
                distance_km,
                bus.consumption_kwh_per_km,
                weather_multiplier,
                bus.battery_capacity_kwh
            )
            self._set_level(bus, bus.battery_level - used, now)
            bus.status_seconds += elapsed_seconds
        elif bus.status == BusStatus.CHARGING:
            gained = charge_for_duration(hours, bus.battery_capacity_kwh, self.settings.CHARGE_POWER_KW)
            new_level = bus.battery_level + gained
            if new_level >= 100.0:
                self._set_level(bus, 100.0, now)
                self.transition(bus, BusStatus.GARAGE, now)
            else:
                self._set_level(bus, new_level, now)
                bus.status_seconds += elapsed_seconds
        bus.last_update = now

    def override_battery_level(self, bus: Bus, level: float, now: float) -> None:
        """Admin correction of a bus's battery level."""
        if level is None or not 0.0 <= level <= 100.0:
            raise ValueError(f"Battery level must be between 0 and 100, got {level!r}")
        self._set_level(bus, level, now)
        bus.last_update = now
