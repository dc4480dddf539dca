# src/fleet/registry.py
"""
Ordered collection of Bus records.
Buses are added and removed here by admin workflows; the simulation core only
mutates the records it finds.
"""

import random
import time
from typing import Dict, Iterator, List, Optional

from umove_fleet.src.core.route import RouteName
from umove_fleet.src.fleet.bus import Bus, BusModel, BusStatus


class FleetRegistry:
    def __init__(self, buses: Optional[List[Bus]] = None):
        self._buses: Dict[str, Bus] = {}
        for bus in buses or []:
            self.add(bus)

    def add(self, bus: Bus) -> Bus:
        bus_id = (bus.bus_id or "").strip()
        if not bus_id:
            raise ValueError("Bus id must not be empty")
        if self.find(bus_id) is not None:
            raise ValueError(f"Bus with id '{bus_id}' already exists")
        bus.bus_id = bus_id
        self._buses[bus_id] = bus
        return bus

    def remove(self, bus_id: str) -> Bus:
        return self._buses.pop(bus_id)

    def get(self, bus_id: str) -> Optional[Bus]:
        return self._buses.get(bus_id)

    def find(self, bus_id: str) -> Optional[Bus]:
        """Case-insensitive lookup."""
        wanted = bus_id.strip().lower()
        for bus in self._buses.values():
            if bus.bus_id.lower() == wanted:
                return bus
        return None

    def snapshot(self) -> List[Bus]:
        return list(self._buses.values())

    def with_status(self, status: BusStatus) -> List[Bus]:
        return [b for b in self._buses.values() if b.status == status]

    def on_route(self, route: RouteName, status: Optional[BusStatus] = None) -> List[Bus]:
        return [
            b for b in self._buses.values()
            if b.route == route and (status is None or b.status == status)
        ]

    def __iter__(self) -> Iterator[Bus]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._buses)

    def __contains__(self, bus_id: str) -> bool:
        return bus_id in self._buses


def create_demo_fleet(
    count: int = 80,
    garage_count: int = 30,
    seed: Optional[int] = None,
    now: Optional[float] = None
) -> List[Bus]:
    """
    Seed buses for an empty registry.
    Every bus gets a round-robin home route. The first garage_count wait fully
    charged in the garage, the rest are in service with a random battery level.
    """
    rng = random.Random(seed)
    now = time.time() if now is None else now
    routes = RouteName.service_routes()

    buses: List[Bus] = []
    for i in range(1, count + 1):
        in_garage = i <= garage_count
        buses.append(Bus(
            bus_id=f"BUS{i:03d}",
            model=BusModel.YUTONG_E12,
            year=str(2020 + (i % 4)),
            battery_percent=100.0 if in_garage else float(rng.randint(35, 100)),
            status=BusStatus.GARAGE if in_garage else BusStatus.INROUTE,
            route=routes[i % len(routes)],
            last_update=now,
            status_changed_at=now
        ))
    return buses
