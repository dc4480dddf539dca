# src/core/route.py
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional


class RouteName(str, Enum):
    NONE = "None"
    R1A = "R1A"
    R10 = "R10"
    R11 = "R11"
    R13 = "R13"
    R132 = "R132"
    R133 = "R133"
    R137 = "R137"
    R139 = "R139"

    @classmethod
    def parse(cls, value, default: "RouteName" = None) -> "RouteName":
        """Lenient lookup by value or member name; falls back to default (NONE)."""
        default = cls.NONE if default is None else default
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        return default

    @classmethod
    def service_routes(cls):
        return [r for r in cls if r is not cls.NONE]


@dataclass(frozen=True)
class Route:
    """
    Static route reference data.
    Read-only from the simulation's point of view.
    """
    name: RouteName
    description: str = ""
    distance_km: float = 0.0
    estimated_time_min: int = 0

    def __str__(self) -> str:
        return f"Route {self.name.value} - {self.description} ({self.distance_km:.1f} km, {self.estimated_time_min} min)"


class RouteStore:
    """Read-only name -> Route lookup."""

    def __init__(self, routes: Iterable[Route] = ()):
        table: Dict[RouteName, Route] = {}
        for route in routes:
            table[route.name] = route
        self._routes: Mapping[RouteName, Route] = MappingProxyType(table)

    def get(self, name: RouteName) -> Optional[Route]:
        return self._routes.get(name)

    def __contains__(self, name) -> bool:
        return name in self._routes

    def __iter__(self):
        return iter(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)
