import pytest

from umove_fleet.src.core.weather import Month, Weather


@pytest.mark.parametrize("month,expected", [
    (Month.JANUARY, 1.4),
    (Month.MARCH, 1.2),
    (Month.APRIL, 1.0),
    (Month.SEPTEMBER, 0.9),
    (Month.JULY, 0.8),
])
def test_seasonal_multiplier(month, expected):
    assert Weather(month=month).consumption_multiplier == pytest.approx(expected)


def test_rain_is_derived_not_stored():
    weather = Weather(month=Month.DECEMBER, is_raining=True)
    assert weather.consumption_multiplier == pytest.approx(1.5)
    weather.month = Month.AUGUST
    assert weather.consumption_multiplier == pytest.approx(0.9)
    weather.is_raining = False
    assert weather.consumption_multiplier == pytest.approx(0.8)


def test_multiplier_range():
    values = [Weather(month=m, is_raining=r).consumption_multiplier for m in Month for r in (False, True)]
    assert min(values) == pytest.approx(0.8)
    assert max(values) == pytest.approx(1.5)


def test_parse_loose_input():
    assert Weather.parse("11", "true") == Weather(month=Month.NOVEMBER, is_raining=True)
    assert Weather.parse("june") == Weather(month=Month.JUNE, is_raining=False)
