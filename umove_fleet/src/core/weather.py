# src/core/weather.py
"""
Weather conditions and their effect on battery consumption.
The multiplier is always derived from month and rain, never stored.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class Month(Enum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12


SEASONAL_MULTIPLIER = MappingProxyType({
    Month.DECEMBER: 1.4, Month.JANUARY: 1.4, Month.FEBRUARY: 1.4,  # Winter
    Month.MARCH: 1.2, Month.NOVEMBER: 1.2,
    Month.APRIL: 1.0, Month.OCTOBER: 1.0,
    Month.MAY: 0.9, Month.SEPTEMBER: 0.9,
    Month.JUNE: 0.8, Month.JULY: 0.8, Month.AUGUST: 0.8,           # Summer
})

RAIN_SURCHARGE = 0.1


@dataclass
class Weather:
    month: Month = Month.JANUARY
    is_raining: bool = False

    @property
    def consumption_multiplier(self) -> float:
        multiplier = SEASONAL_MULTIPLIER[self.month]
        if self.is_raining:
            multiplier += RAIN_SURCHARGE
        return multiplier

    @classmethod
    def parse(cls, month, is_raining=False) -> "Weather":
        """Build from loose input (month number or name, truthy rain flag)."""
        if isinstance(month, Month):
            parsed = month
        elif isinstance(month, int) or str(month).strip().isdigit():
            parsed = Month(int(month))
        else:
            parsed = Month[str(month).strip().upper()]
        if isinstance(is_raining, str):
            is_raining = is_raining.strip().lower() in ("1", "true", "yes", "y")
        return cls(month=parsed, is_raining=bool(is_raining))
