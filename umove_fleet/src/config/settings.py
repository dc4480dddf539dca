# src/config/settings.py

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SimulationSettings:
    # Energy and vehicle
    CHARGE_POWER_KW: float = 150.0                 # Depot charger output
    LOW_BATTERY_PERCENT: float = 30.0              # Triggers replacement negotiation
    CRITICAL_BATTERY_PERCENT: float = 20.0         # Display-only critical flag
    RESERVE_BATTERY_PERCENT: float = 13.0          # Floor for time-left estimates

    # Speed and time
    AVERAGE_SPEED_KMH: float = 20.0
    INTERCEPT_MINUTES: float = 30.0                # Intercept -> Inroute
    HANDOFF_MINUTES: float = 30.0                  # Inroute -> Returning
    RETURN_MINUTES: float = 30.0                   # Returning -> Charging

    # Tick sizes (simulated seconds per invocation)
    DEFAULT_SECONDS_PER_TICK: float = 1.0
    TURBO_SECONDS_PER_TICK: float = 120.0

    # Logging
    LOG_FILE_NAME: str = "simulation_log.csv"
    LOG_LEVEL: str = "INFO"


@dataclass(frozen=True)
class ReplacementSettings:
    """Configuration for low-battery replacement negotiations"""
    CANDIDATE_MIN_BATTERY_PERCENT: float = 50.0
    MAX_POSTPONEMENTS: int = 2
    POSTPONE_DELAY_MINUTES: float = 30.0


@dataclass(frozen=True)
class TickConfig:
    seconds_per_tick: float = SimulationSettings.DEFAULT_SECONDS_PER_TICK
    start_time: Optional[float] = None   # epoch; None keeps the current clock


@dataclass(frozen=True)
class Paths:
    DATA_DIR: str = "data"  # Relative to project root
    ROUTES_CSV: str = "routes.csv"
    FLEET_CSV: str = "fleet.csv"
    LOG_OUTPUT: str = "simulation_log.csv"
