# src/replacement/coordinator.py
"""
Low-battery replacement negotiation.

    Idle -> Open(candidates) -> Selected | Postponed -(30 min)-> Open | Cancelled -> Idle

At most one negotiation is open at a time. A LowBatteryCrossed event that
arrives while another negotiation is open is dropped, not queued. The
simulation keeps running while a negotiation is open; decisions come from
the host (select / postpone / cancel) or from an optional policy callable.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from loguru import logger

from umove_fleet.src.config.settings import ReplacementSettings, SimulationSettings
from umove_fleet.src.core.errors import ConfigurationError, FleetSimulationError, NegotiationError
from umove_fleet.src.core.route import RouteName
from umove_fleet.src.fleet.bus import Bus, BusStatus
from umove_fleet.src.fleet.status_machine import BusStatusMachine
from umove_fleet.src.simulation.events import (
    EventBus,
    LowBatteryCrossed,
    NegotiationOpened,
    ReplacementDecided,
    ReplacementOutcome,
)


@dataclass
class Negotiation:
    bus_id: str
    candidate_ids: List[str]
    opened_at: float
    postpone_count: int = 0
    max_postponements: int = ReplacementSettings.MAX_POSTPONEMENTS
    reopened: bool = False
    outcome: Optional[ReplacementOutcome] = None
    selected_id: Optional[str] = None

    @property
    def can_postpone(self) -> bool:
        return self.postpone_count < self.max_postponements

    @property
    def is_open(self) -> bool:
        return self.outcome is None


@dataclass
class _PendingReopen:
    due_at: float
    postpone_count: int


Policy = Callable[[Negotiation, "ReplacementCoordinator"], None]


def highest_battery_policy(negotiation: Negotiation, coordinator: "ReplacementCoordinator") -> None:
    """Select the fullest candidate, or cancel when nobody is available."""
    candidates = coordinator.candidate_buses(negotiation)
    if not candidates:
        coordinator.cancel()
        return
    best = max(candidates, key=lambda b: (b.battery_level, b.bus_id))
    coordinator.select(best.bus_id)


class ReplacementCoordinator:
    def __init__(
        self,
        registry,
        machine: BusStatusMachine,
        events: EventBus,
        clock: Callable[[], float],
        policy: Optional[Policy] = None,
        settings=ReplacementSettings,
        low_battery_percent: float = SimulationSettings.LOW_BATTERY_PERCENT
    ):
        self.registry = registry
        self.machine = machine
        self.events = events
        self.clock = clock
        self.policy = policy
        self.settings = settings
        self.low_battery_percent = low_battery_percent

        self.current: Optional[Negotiation] = None
        self.history: List[Negotiation] = []
        self._pending: Dict[str, _PendingReopen] = {}

        self.events.subscribe(LowBatteryCrossed, self.on_low_battery)

    # ------------------------------------------------------------------
    # Opening
    # ------------------------------------------------------------------

    def is_candidate(self, bus: Optional[Bus]) -> bool:
        return (
            bus is not None
            and bus.status == BusStatus.GARAGE
            and bus.battery_level >= self.settings.CANDIDATE_MIN_BATTERY_PERCENT
        )

    def find_candidates(self) -> List[Bus]:
        return [b for b in self.registry.snapshot() if self.is_candidate(b)]

    def candidate_buses(self, negotiation: Optional[Negotiation] = None) -> List[Bus]:
        """Candidates of the negotiation that are still eligible right now."""
        negotiation = negotiation or self.current
        if negotiation is None:
            return []
        buses = [self.registry.get(bus_id) for bus_id in negotiation.candidate_ids]
        return [b for b in buses if self.is_candidate(b)]

    def on_low_battery(self, event: LowBatteryCrossed) -> None:
        self.open(event.bus_id, now=event.at)

    def open(self, bus_id: str, now: Optional[float] = None, *, postpone_count: int = 0,
             reopened: bool = False) -> Optional[Negotiation]:
        now = self.clock() if now is None else now
        if self.current is not None:
            logger.warning(
                f"Replacement for {bus_id} dropped: negotiation for {self.current.bus_id} is still open"
            )
            return None
        low_bus = self.registry.get(bus_id)
        if low_bus is None:
            logger.warning(f"Replacement requested for unknown bus {bus_id}")
            return None

        self._pending.pop(bus_id, None)
        if low_bus.route == RouteName.NONE:
            logger.warning(f"Replacement for {bus_id} cancelled: no route to hand over")
            self.events.publish(ReplacementDecided(bus_id, ReplacementOutcome.CANCELLED, None, now))
            return None

        negotiation = Negotiation(
            bus_id=bus_id,
            candidate_ids=[b.bus_id for b in self.find_candidates()],
            opened_at=now,
            postpone_count=postpone_count,
            max_postponements=self.settings.MAX_POSTPONEMENTS,
            reopened=reopened
        )
        self.current = negotiation
        logger.info(
            f"Replacement negotiation opened for {bus_id} "
            f"({len(negotiation.candidate_ids)} candidates, postponed {negotiation.postpone_count}x)"
        )
        self.events.publish(NegotiationOpened(negotiation, now))
        if self.policy is not None and self.current is negotiation:
            try:
                self.policy(negotiation, self)
            except ConfigurationError:
                raise
            except FleetSimulationError:
                logger.exception(f"Replacement policy failed for {bus_id}")
                if self.current is negotiation:
                    self._close(ReplacementOutcome.CANCELLED, now)
        return negotiation

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _close(self, outcome: ReplacementOutcome, now: float, candidate_id: Optional[str] = None):
        negotiation = self.current
        negotiation.outcome = outcome
        negotiation.selected_id = candidate_id
        self.current = None
        self.history.append(negotiation)
        logger.info(f"Replacement for {negotiation.bus_id}: {outcome.value}"
                    + (f" -> {candidate_id}" if candidate_id else ""))
        self.events.publish(ReplacementDecided(negotiation.bus_id, outcome, candidate_id, now))

    def select(self, candidate_id: str, now: Optional[float] = None) -> Bus:
        now = self.clock() if now is None else now
        negotiation = self.current
        if negotiation is None:
            raise NegotiationError("No replacement negotiation is open")
        candidate = self.registry.get(candidate_id)
        if candidate_id not in negotiation.candidate_ids or not self.is_candidate(candidate):
            raise NegotiationError(f"{candidate_id} is not an available replacement for {negotiation.bus_id}")

        low_bus = self.registry.get(negotiation.bus_id)
        if low_bus is None or low_bus.route == RouteName.NONE:
            self._close(ReplacementOutcome.CANCELLED, now)
            raise NegotiationError(f"{negotiation.bus_id} is no longer in the fleet or has no route")

        self.machine.dispatch(candidate, low_bus.route, now)
        candidate.replacing_bus = low_bus.bus_id
        # Handoff window for the bus being replaced; it keeps driving meanwhile
        low_bus.restart_status_timer(now)

        self._close(ReplacementOutcome.SELECTED, now, candidate_id=candidate.bus_id)
        return candidate

    def postpone(self, now: Optional[float] = None) -> bool:
        now = self.clock() if now is None else now
        negotiation = self.current
        if negotiation is None:
            return False
        if not negotiation.can_postpone:
            raise NegotiationError(
                f"Replacement for {negotiation.bus_id} was already postponed "
                f"{negotiation.postpone_count} times; select or cancel"
            )
        negotiation.postpone_count += 1
        self._pending[negotiation.bus_id] = _PendingReopen(
            due_at=now + self.settings.POSTPONE_DELAY_MINUTES * 60,
            postpone_count=negotiation.postpone_count
        )
        self._close(ReplacementOutcome.POSTPONED, now)
        return True

    def cancel(self, now: Optional[float] = None) -> bool:
        now = self.clock() if now is None else now
        if self.current is None:
            return False
        self._close(ReplacementOutcome.CANCELLED, now)
        return True

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def pending_reopen_at(self, bus_id: str) -> Optional[float]:
        pending = self._pending.get(bus_id)
        return pending.due_at if pending else None

    def poll(self, now: Optional[float] = None) -> Optional[Negotiation]:
        """Reopen the earliest due postponed negotiation, if nothing is open."""
        now = self.clock() if now is None else now
        while self.current is None:
            due = sorted(
                ((p.due_at, bus_id) for bus_id, p in self._pending.items() if p.due_at <= now)
            )
            if not due:
                return None
            _, bus_id = due[0]
            pending = self._pending.pop(bus_id)
            bus = self.registry.get(bus_id)
            if bus is None or bus.status != BusStatus.INROUTE or bus.battery_level >= self.low_battery_percent:
                logger.info(f"Postponed replacement for {bus_id} no longer needed")
                self.events.publish(ReplacementDecided(bus_id, ReplacementOutcome.CANCELLED, None, now))
                continue
            return self.open(bus_id, now=now, postpone_count=pending.postpone_count, reopened=True)
        return None
