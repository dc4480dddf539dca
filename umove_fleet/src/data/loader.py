# src/data/loader.py
"""
Data loading module.
Builds the static route reference store and the fleet from CSV files.

Malformed fleet rows never raise: every field falls back to a documented
default (route None, status Garage, model MBeCitaro, battery 0, last update
now). Rows without a bus id are skipped.
"""

import time
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
from loguru import logger

from umove_fleet.src.config.paths import data_path
from umove_fleet.src.config.settings import Paths
from umove_fleet.src.core.route import Route, RouteName, RouteStore
from umove_fleet.src.fleet.bus import Bus, BusModel, BusStatus

FLEET_COLUMNS = ["bus_id", "year", "route", "battery_level", "status", "last_update", "model"]


def _read_raw(path: Union[str, Path]) -> pd.DataFrame:
    return pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)


def _to_float(value, default: float) -> float:
    parsed = pd.to_numeric(value, errors="coerce")
    return default if pd.isna(parsed) else float(parsed)


def _to_epoch(value, default: float) -> float:
    parsed = pd.to_datetime(value, errors="coerce")
    return default if pd.isna(parsed) else parsed.timestamp()


def load_routes(routes_csv: Union[str, Path, None] = None) -> RouteStore:
    """
    Load route reference data.
    Columns: name, description, distance_km, estimated_time_min
    """
    path = routes_csv or data_path(Paths.ROUTES_CSV)
    df = _read_raw(path)

    routes: List[Route] = []
    for _, row in df.iterrows():
        name = RouteName.parse(row.get("name", ""))
        if name is RouteName.NONE:
            logger.warning(f"Skipping route row with unknown name '{row.get('name', '')}'")
            continue
        routes.append(Route(
            name=name,
            description=str(row.get("description", "")).strip(),
            distance_km=_to_float(row.get("distance_km", ""), 0.0),
            estimated_time_min=int(_to_float(row.get("estimated_time_min", ""), 0))
        ))

    logger.info(f"Loaded {len(routes)} routes from {path}")
    return RouteStore(routes)


def bus_from_record(record: dict, now: Optional[float] = None) -> Optional[Bus]:
    """Reconstruct a Bus from one raw record, substituting defaults for bad fields."""
    now = time.time() if now is None else now
    bus_id = str(record.get("bus_id", "") or "").strip()
    if not bus_id:
        return None

    last_update = _to_epoch(record.get("last_update", ""), now)
    return Bus(
        bus_id=bus_id,
        year=str(record.get("year", "") or "").strip(),
        route=RouteName.parse(record.get("route", "")),
        battery_percent=_to_float(record.get("battery_level", ""), 0.0),
        status=BusStatus.parse(record.get("status", "")),
        model=BusModel.parse(record.get("model", "")),
        last_update=last_update,
        status_changed_at=last_update
    )


def load_fleet(fleet_csv: Union[str, Path, None] = None, now: Optional[float] = None) -> List[Bus]:
    """
    Load buses from CSV.
    Columns: bus_id, year, route, battery_level, status, last_update, model
    Duplicate ids keep the first occurrence.
    """
    path = fleet_csv or data_path(Paths.FLEET_CSV)
    if not Path(path).exists():
        logger.warning(f"Fleet file {path} not found, starting with an empty fleet")
        return []

    df = _read_raw(path)
    buses: List[Bus] = []
    seen = set()
    for _, row in df.iterrows():
        bus = bus_from_record(row.to_dict(), now=now)
        if bus is None:
            logger.warning("Skipping fleet row without bus id")
            continue
        if bus.bus_id.lower() in seen:
            logger.warning(f"Duplicate bus id '{bus.bus_id}' in {path}, keeping the first")
            continue
        seen.add(bus.bus_id.lower())
        buses.append(bus)

    logger.info(f"Loaded {len(buses)} buses from {path}")
    return buses
