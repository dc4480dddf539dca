import pandas as pd

from umove_fleet.src.core.route import RouteName
from umove_fleet.src.data.loader import bus_from_record, load_fleet, load_routes
from umove_fleet.src.fleet.bus import BusModel, BusStatus

from conftest import START

FLEET_HEADER = "bus_id,year,route,battery_level,status,last_update,model\n"


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return path


def test_load_fleet_parses_valid_rows(tmp_path):
    path = _write(tmp_path, "fleet.csv", FLEET_HEADER
                  + "BUS001,2021,R1A,76.5,Inroute,2024-01-01 08:00:00,YutongE12\n"
                  + "BUS002,2022,None,100,Garage,2024-01-01 08:00:00,BYDK9\n")
    buses = load_fleet(path, now=START)

    assert [b.bus_id for b in buses] == ["BUS001", "BUS002"]
    first = buses[0]
    assert first.year == "2021"
    assert first.route is RouteName.R1A
    assert first.status is BusStatus.INROUTE
    assert first.model is BusModel.YUTONG_E12
    assert first.battery_level == 76.5
    assert first.last_update == pd.Timestamp("2024-01-01 08:00:00").timestamp()
    assert first.time_in_current_status == 0.0
    assert buses[1].battery_capacity_kwh == 324.0


def test_malformed_fields_fall_back_to_defaults(tmp_path):
    path = _write(tmp_path, "fleet.csv", FLEET_HEADER
                  + "BUS003,2020,R999,lots,Flying,yesterday-ish,Tesla\n"
                  + ",2020,R1A,50,Garage,,MBeCitaro\n"
                  + "BUS004,2020,R10,150,inroute,,volvo7900e\n")
    buses = load_fleet(path, now=START)

    assert [b.bus_id for b in buses] == ["BUS003", "BUS004"]
    bad = buses[0]
    assert bad.route is RouteName.NONE
    assert bad.status is BusStatus.GARAGE
    assert bad.model is BusModel.MB_ECITARO
    assert bad.battery_level == 0.0
    assert bad.last_update == START

    clamped = buses[1]
    assert clamped.battery_level == 100.0
    assert clamped.status is BusStatus.INROUTE
    assert clamped.model is BusModel.VOLVO_7900E


def test_duplicate_ids_keep_first(tmp_path):
    path = _write(tmp_path, "fleet.csv", FLEET_HEADER
                  + "BUS001,2021,R1A,60,Inroute,,YutongE12\n"
                  + "bus001,2021,R10,90,Garage,,YutongE12\n")
    buses = load_fleet(path, now=START)
    assert len(buses) == 1
    assert buses[0].route is RouteName.R1A


def test_missing_fleet_file_gives_empty_fleet(tmp_path):
    assert load_fleet(tmp_path / "nope.csv") == []


def test_bus_from_record_requires_id():
    assert bus_from_record({"bus_id": "  ", "battery_level": "50"}, now=START) is None
    bus = bus_from_record({"bus_id": "X1"}, now=START)
    assert (bus.status, bus.route, bus.battery_level) == (BusStatus.GARAGE, RouteName.NONE, 0.0)


def test_load_routes(tmp_path):
    path = _write(tmp_path, "routes.csv",
                  "name,description,distance_km,estimated_time_min\n"
                  "R1A,Central - Airport,21.4,52\n"
                  "R77,Unknown line,10,20\n"
                  "R13,North - Hospital,n/a,46\n")
    routes = load_routes(path)

    assert len(routes) == 2
    assert RouteName.R1A in routes
    assert routes.get(RouteName.R1A).distance_km == 21.4
    assert routes.get(RouteName.R13).distance_km == 0.0
    assert routes.get(RouteName.R13).estimated_time_min == 46


def test_bundled_routes_cover_every_service_route():
    routes = load_routes()
    assert {r.name for r in routes} == set(RouteName.service_routes())
