# src/simulation/events.py
"""
Domain events emitted by the simulation core and a minimal synchronous event bus.
Presentation layers subscribe here; the core never depends on them.
"""

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, DefaultDict, List, Optional, Type

from loguru import logger

from umove_fleet.src.core.errors import ConfigurationError


class ReplacementOutcome(Enum):
    SELECTED = "selected"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class StatusChanged:
    bus_id: str
    old_status: Any
    new_status: Any
    at: float


@dataclass(frozen=True)
class BatteryLevelChanged:
    bus_id: str
    old_level: float
    new_level: float
    at: float


@dataclass(frozen=True)
class LowBatteryCrossed:
    bus_id: str
    level: float
    at: float


@dataclass(frozen=True)
class NegotiationOpened:
    negotiation: Any
    at: float


@dataclass(frozen=True)
class ReplacementDecided:
    bus_id: str
    outcome: ReplacementOutcome
    candidate_id: Optional[str]
    at: float


Handler = Callable[[Any], None]


class EventBus:
    """
    Synchronous publish/subscribe by event type.
    Handlers run in subscription order; a failing handler is logged and the
    remaining handlers still run. ConfigurationError is fatal and propagates.
    """

    def __init__(self):
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type, handler: Handler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def publish(self, event) -> None:
        for handler in list(self._handlers[type(event)]):
            try:
                handler(event)
            except ConfigurationError:
                raise
            except Exception:
                logger.exception(f"Handler {handler!r} failed for {type(event).__name__}")


class EventRecorder:
    """Collects every published event of the given types, in order."""

    def __init__(self, bus: EventBus, *event_types: Type):
        self.events: List[Any] = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    def of_type(self, event_type: Type) -> List[Any]:
        return [e for e in self.events if isinstance(e, event_type)]
