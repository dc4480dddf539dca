"""
Headless fleet simulation run.
Loads the fleet (or seeds a demo fleet), runs the tick loop on the simulated
clock and writes the CSV state trail to output/.
"""

import argparse
from typing import Iterable, Optional

from loguru import logger

from umove_fleet.src.config.settings import Paths, SimulationSettings, TickConfig
from umove_fleet.src.config.paths import data_path
from umove_fleet.src.core.weather import Weather
from umove_fleet.src.data.loader import load_fleet, load_routes
from umove_fleet.src.fleet.bus import BusStatus
from umove_fleet.src.fleet.registry import FleetRegistry, create_demo_fleet
from umove_fleet.src.replacement.coordinator import highest_battery_policy
from umove_fleet.src.simulation.engine import SimulationEngine
from umove_fleet.src.simulation.events import EventRecorder, LowBatteryCrossed, ReplacementDecided
from umove_fleet.src.simulation.logger import SimulationLogger
from umove_fleet.src.simulation.state import SimulationState
from umove_fleet.src.utils.logging import setup_logging


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate an electric bus fleet on a simulated clock.")
    parser.add_argument("--fleet", default=str(data_path(Paths.FLEET_CSV)), help="Fleet CSV file")
    parser.add_argument("--routes", default=str(data_path(Paths.ROUTES_CSV)), help="Route reference CSV file")
    parser.add_argument("--month", default="1", help="Month number or name for the weather model")
    parser.add_argument("--rain", action="store_true", help="Rainy weather (+10%% consumption)")
    parser.add_argument("--hours", type=float, default=4.0, help="Simulated hours to run")
    parser.add_argument("--turbo", action="store_true", help="Use the turbo tick size")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the demo fleet")
    parser.add_argument("--log-file", default=SimulationSettings.LOG_FILE_NAME, help="CSV state trail file")
    parser.add_argument("--log-level", default=SimulationSettings.LOG_LEVEL)
    return parser.parse_args(argv)


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    state = SimulationState(
        registry=FleetRegistry(),
        routes=load_routes(args.routes),
        weather=Weather.parse(args.month, args.rain)
    )
    buses = load_fleet(args.fleet, now=state.sim_time)
    if not buses:
        buses = create_demo_fleet(seed=args.seed, now=state.sim_time)
        logger.info(f"Seeded demo fleet with {len(buses)} buses")
    for bus in buses:
        state.registry.add(bus)

    recorder = EventRecorder(state.events, LowBatteryCrossed, ReplacementDecided)
    engine = SimulationEngine(state, logger=SimulationLogger(args.log_file), policy=highest_battery_policy)
    seconds_per_tick = (
        SimulationSettings.TURBO_SECONDS_PER_TICK if args.turbo else SimulationSettings.DEFAULT_SECONDS_PER_TICK
    )
    engine.start(TickConfig(seconds_per_tick=seconds_per_tick))
    engine.run(duration_seconds=args.hours * 3600)
    engine.stop()

    by_status = {s.value: len(state.registry.with_status(s)) for s in BusStatus}
    logger.info(f"Final status distribution: {by_status}")
    logger.info(
        f"Low-battery warnings: {len(recorder.of_type(LowBatteryCrossed))}, "
        f"replacement decisions: {len(recorder.of_type(ReplacementDecided))}"
    )
    logger.info(f"Log saved to: {engine.logger.log_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
