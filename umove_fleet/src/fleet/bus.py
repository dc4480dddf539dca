# src/fleet/bus.py
"""
Bus record, bus model lookup table and operational status set.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from types import MappingProxyType
from typing import Optional

from umove_fleet.src.config.settings import SimulationSettings
from umove_fleet.src.core.battery import hours_until_level
from umove_fleet.src.core.errors import ConfigurationError
from umove_fleet.src.core.route import RouteName


class BusStatus(str, Enum):
    GARAGE = "Garage"
    FREE = "Free"
    INTERCEPT = "Intercept"      # On the way to take over another bus's route
    INROUTE = "Inroute"
    RETURNING = "Returning"      # Retiring from service back to charging
    CHARGING = "Charging"
    REPAIR = "Repair"

    @classmethod
    def parse(cls, value, default: "BusStatus" = None) -> "BusStatus":
        default = cls.GARAGE if default is None else default
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        return default


IN_SERVICE_STATUSES = frozenset({BusStatus.INROUTE, BusStatus.INTERCEPT, BusStatus.RETURNING})


class BusModel(str, Enum):
    MB_ECITARO = "MBeCitaro"
    YUTONG_E12 = "YutongE12"
    BYD_K9 = "BYDK9"
    VOLVO_7900E = "Volvo7900E"

    @classmethod
    def parse(cls, value, default: "BusModel" = None) -> "BusModel":
        default = cls.MB_ECITARO if default is None else default
        if isinstance(value, cls):
            return value
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        return default


@dataclass(frozen=True)
class BusModelSpec:
    battery_capacity_kwh: float
    consumption_kwh_per_km: float


BUS_MODEL_SPECS = MappingProxyType({
    BusModel.MB_ECITARO: BusModelSpec(battery_capacity_kwh=392.0, consumption_kwh_per_km=1.11),
    BusModel.YUTONG_E12: BusModelSpec(battery_capacity_kwh=422.0, consumption_kwh_per_km=0.84),
    BusModel.BYD_K9: BusModelSpec(battery_capacity_kwh=324.0, consumption_kwh_per_km=1.26),
    BusModel.VOLVO_7900E: BusModelSpec(battery_capacity_kwh=470.0, consumption_kwh_per_km=1.00),
})


def model_spec(model: BusModel) -> BusModelSpec:
    try:
        return BUS_MODEL_SPECS[model]
    except (KeyError, TypeError):
        raise ConfigurationError(f"Unknown bus model: {model!r}") from None


@dataclass
class Bus:
    bus_id: str
    model: BusModel = BusModel.MB_ECITARO
    year: str = ""

    battery_percent: float = 100.0       # State of charge
    status: BusStatus = BusStatus.GARAGE
    route: RouteName = RouteName.NONE

    # Simulated clock (epoch seconds)
    last_update: float = 0.0
    status_changed_at: float = 0.0
    status_seconds: float = 0.0          # accrued in the current status

    # Id of the bus this one is standing in for
    replacing_bus: Optional[str] = None

    # Per-instance override, used only for custom vehicles and tests
    spec_override: Optional[BusModelSpec] = field(default=None, repr=False)

    def __post_init__(self):
        self.battery_percent = max(0.0, min(100.0, float(self.battery_percent)))

    @property
    def spec(self) -> BusModelSpec:
        if self.spec_override is not None:
            return self.spec_override
        return model_spec(self.model)

    @property
    def battery_capacity_kwh(self) -> float:
        return self.spec.battery_capacity_kwh

    @property
    def consumption_kwh_per_km(self) -> float:
        return self.spec.consumption_kwh_per_km

    @property
    def time_in_current_status(self) -> float:
        """Minutes accrued in the current status."""
        return self.status_seconds / 60

    @time_in_current_status.setter
    def time_in_current_status(self, minutes: float):
        self.status_seconds = minutes * 60

    @property
    def battery_level(self) -> float:
        return self.battery_percent

    @battery_level.setter
    def battery_level(self, value: float):
        self.battery_percent = max(0.0, min(100.0, value))

    @property
    def is_in_service(self) -> bool:
        return self.status in IN_SERVICE_STATUSES

    @property
    def is_critical(self) -> bool:
        return self.battery_level < SimulationSettings.CRITICAL_BATTERY_PERCENT

    @property
    def display_text(self) -> str:
        return f"{self.bus_id} | {self.model.value} | {self.battery_level:.1f}%"

    def change_status(self, new_status: BusStatus, now: float) -> bool:
        """Commit a transition. Returns False if the bus is already in new_status."""
        if new_status == self.status:
            return False
        self.status = new_status
        self.status_changed_at = now
        self.status_seconds = 0.0
        return True

    def restart_status_timer(self, now: float):
        """Start a new timing window without changing status."""
        self.status_changed_at = now
        self.status_seconds = 0.0

    def time_left_until(
        self,
        reserve_percent: float = SimulationSettings.RESERVE_BATTERY_PERCENT,
        speed_kmh: float = SimulationSettings.AVERAGE_SPEED_KMH,
        weather_multiplier: float = 1.0
    ) -> timedelta:
        hours = hours_until_level(
            self.battery_level,
            reserve_percent,
            self.consumption_kwh_per_km,
            self.battery_capacity_kwh,
            speed_kmh=speed_kmh,
            weather_multiplier=weather_multiplier
        )
        return timedelta(hours=hours)
