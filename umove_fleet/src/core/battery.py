# src/core/battery.py
"""
Battery arithmetic.
Converts distance, charging time and weather into battery-percent deltas.
Results are never clamped here; the status machine owns clamping.
"""

from umove_fleet.src.config.settings import SimulationSettings
from umove_fleet.src.core.errors import ConfigurationError


def _check_capacity(capacity_kwh: float) -> None:
    if capacity_kwh is None or capacity_kwh <= 0:
        raise ConfigurationError(f"Battery capacity must be positive, got {capacity_kwh!r} kWh")


def consume_for_distance(
    distance_km: float,
    consumption_kwh_per_km: float,
    weather_multiplier: float,
    capacity_kwh: float
) -> float:
    """Percent of a full battery used to drive distance_km."""
    _check_capacity(capacity_kwh)
    consumption_kwh = distance_km * consumption_kwh_per_km * weather_multiplier
    return (consumption_kwh / capacity_kwh) * 100


def charge_for_duration(
    hours: float,
    capacity_kwh: float,
    charge_power_kw: float = SimulationSettings.CHARGE_POWER_KW
) -> float:
    """Percent of a full battery gained by charging for the given hours."""
    _check_capacity(capacity_kwh)
    return (charge_power_kw * hours / capacity_kwh) * 100


def hours_until_level(
    level_percent: float,
    target_percent: float,
    consumption_kwh_per_km: float,
    capacity_kwh: float,
    speed_kmh: float = SimulationSettings.AVERAGE_SPEED_KMH,
    weather_multiplier: float = 1.0
) -> float:
    """
    Driving time left before the battery falls to target_percent.
    Returns 0 when already at or below target or when the bus does not consume.
    """
    _check_capacity(capacity_kwh)
    percent_to_use = level_percent - target_percent
    rate = consumption_kwh_per_km * weather_multiplier
    if percent_to_use <= 0 or rate <= 0 or speed_kmh <= 0:
        return 0.0
    km_left = (percent_to_use / 100) * capacity_kwh / rate
    return km_left / speed_kmh
