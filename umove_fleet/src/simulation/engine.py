# src/simulation/engine.py
"""
Main simulation engine.
Orchestrates, per tick: status transitions -> battery update -> low-battery
detection -> postponed replacement reopen -> logging.

The clock is simulated: every tick advances it by seconds_per_tick no matter
how much wall time has passed, so runs are reproducible. tick() has no host
dependency and can be driven by a test, a wall-clock loop or a batch run.
"""

import math
import time
from datetime import datetime
from typing import Callable, List, Optional, Set

from loguru import logger

from umove_fleet.src.config.settings import SimulationSettings, TickConfig
from umove_fleet.src.core.errors import ConfigurationError
from umove_fleet.src.core.route import RouteName
from umove_fleet.src.fleet.bus import Bus, BusStatus
from umove_fleet.src.fleet.status_machine import BusStatusMachine
from umove_fleet.src.replacement.coordinator import Policy, ReplacementCoordinator
from umove_fleet.src.simulation.events import LowBatteryCrossed
from umove_fleet.src.simulation.logger import SimulationLogger
from umove_fleet.src.simulation.state import SimulationState


def _check_tick_size(seconds_per_tick: float) -> float:
    if seconds_per_tick is None or seconds_per_tick <= 0:
        raise ConfigurationError(f"Seconds per tick must be positive, got {seconds_per_tick!r}")
    return float(seconds_per_tick)


class SimulationEngine:
    def __init__(
        self,
        state: SimulationState,
        logger: Optional[SimulationLogger] = None,
        policy: Optional[Policy] = None,
        settings=SimulationSettings
    ):
        self.state = state
        self.logger = logger
        self.settings = settings
        self.machine = BusStatusMachine(state.registry, state.events, settings=settings)
        self.coordinator = ReplacementCoordinator(
            state.registry,
            self.machine,
            state.events,
            clock=lambda: self.state.sim_time,
            policy=policy,
            low_battery_percent=settings.LOW_BATTERY_PERCENT
        )

        self.seconds_per_tick = _check_tick_size(settings.DEFAULT_SECONDS_PER_TICK)
        self.running = False
        self.tick_count = 0
        self.turbo = False
        self._warned: Set[str] = set()
        self._tick_listeners: List[Callable[[SimulationState], None]] = []

    # ------------------------------------------------------------------
    # Control surface
    # ------------------------------------------------------------------

    def start(self, tick_config: Optional[TickConfig] = None):
        tick_config = tick_config or TickConfig(seconds_per_tick=self.seconds_per_tick)
        self.set_tick_rate(tick_config.seconds_per_tick)
        if tick_config.start_time is not None:
            self.state.sim_time = tick_config.start_time
        self.running = True
        logger.info(
            f"Simulation started at {datetime.fromtimestamp(self.state.sim_time):%Y-%m-%d %H:%M:%S} "
            f"({self.seconds_per_tick:g}s per tick, {len(self.state.registry)} buses)"
        )

    def stop(self):
        self.running = False
        logger.info(f"Simulation stopped after {self.tick_count} ticks")

    def set_tick_rate(self, seconds_per_tick: float):
        self.seconds_per_tick = _check_tick_size(seconds_per_tick)

    def toggle_turbo(self) -> bool:
        self.turbo = not self.turbo
        self.set_tick_rate(
            self.settings.TURBO_SECONDS_PER_TICK if self.turbo else self.settings.DEFAULT_SECONDS_PER_TICK
        )
        return self.turbo

    def add_tick_listener(self, listener: Callable[[SimulationState], None]):
        """Called after every completed tick, e.g. to hand the fleet to persistence."""
        self._tick_listeners.append(listener)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _isolated(self, bus: Bus, stage: str, fn, *args):
        try:
            fn(*args)
        except ConfigurationError:
            raise
        except Exception:
            logger.exception(f"Skipping {bus.bus_id} during {stage}")

    def _check_low_battery(self, bus: Bus, now: float):
        below = bus.battery_level < self.settings.LOW_BATTERY_PERCENT
        if bus.status == BusStatus.INROUTE and below:
            if bus.bus_id not in self._warned:
                self._warned.add(bus.bus_id)
                logger.warning(f"{bus.bus_id} on {bus.route.value} dropped below "
                               f"{self.settings.LOW_BATTERY_PERCENT:g}% ({bus.battery_level:.1f}%)")
                self.state.events.publish(LowBatteryCrossed(bus.bus_id, bus.battery_level, now))
        else:
            self._warned.discard(bus.bus_id)

    def tick(self) -> float:
        """Advance the simulation by exactly one step. Returns the new simulated time."""
        step = self.seconds_per_tick
        tick_start = self.state.sim_time
        tick_end = tick_start + step
        multiplier = self.state.consumption_multiplier
        snapshot = self.state.registry.snapshot()
        self._warned &= {b.bus_id for b in snapshot}

        # 1. Automatic transitions against pre-tick battery state
        for bus in self.machine.evaluation_order(snapshot):
            self._isolated(bus, "status transition", self.machine.apply_transition, bus, tick_start)

        # 2. Battery and timers
        for bus in snapshot:
            self._isolated(bus, "battery update", self.machine.apply_battery, bus, step, multiplier, tick_end)

        self.state.sim_time = tick_end

        # 3. Edge-triggered low-battery detection
        for bus in snapshot:
            self._isolated(bus, "low-battery check", self._check_low_battery, bus, tick_end)

        # 4. Postponed negotiations that are due
        self.coordinator.poll(tick_end)

        self.tick_count += 1
        if self.logger is not None:
            current = self.coordinator.current
            self.logger.log_step(tick_end, self.state, current.bus_id if current else None)
        for listener in self._tick_listeners:
            listener(self.state)
        return tick_end

    def advance(self, seconds: float) -> int:
        """Run as many whole ticks as needed to cover the given simulated span."""
        if seconds <= 0:
            return 0
        ticks = max(1, math.ceil(seconds / self.seconds_per_tick - 1e-9))
        for _ in range(ticks):
            self.tick()
        return ticks

    def run(self, duration_seconds: Optional[float] = None, max_ticks: Optional[int] = None):
        """
        Batch loop: tick back-to-back until stopped, duration elapsed or
        max_ticks reached.
        """
        if not self.running:
            self.start()
        sim_end = None if duration_seconds is None else self.state.sim_time + duration_seconds
        ticks = 0
        while self.running:
            if sim_end is not None and self.state.sim_time >= sim_end - 1e-9:
                break
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.tick()
            ticks += 1
        return ticks

    def run_realtime(self, interval_seconds: float = 1.0, max_ticks: Optional[int] = None, sleep=time.sleep):
        """Wall-clock loop: one tick per interval until stopped."""
        if not self.running:
            self.start()
        ticks = 0
        while self.running and (max_ticks is None or ticks < max_ticks):
            started = time.monotonic()
            self.tick()
            ticks += 1
            sleep(max(0.0, interval_seconds - (time.monotonic() - started)))
        return ticks

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    def _bus(self, bus_id: str) -> Bus:
        bus = self.state.registry.get(bus_id)
        if bus is None:
            raise KeyError(f"Unknown bus {bus_id}")
        return bus

    def set_battery_level(self, bus_id: str, level: float):
        """
        Admin override of one bus's battery level.
        A level below the low-battery threshold does not open a replacement
        here; the edge check at the end of the next tick picks it up.
        """
        self.machine.override_battery_level(self._bus(bus_id), level, self.state.sim_time)

    def dispatch(self, bus_id: str, route: RouteName):
        self.machine.dispatch(self._bus(bus_id), route, self.state.sim_time)
