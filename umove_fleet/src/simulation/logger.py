# src/simulation/logger.py
"""
Simple CSV logger for bus states over time.
"""

import csv
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from umove_fleet.src.config.paths import output_path
from umove_fleet.src.config.settings import SimulationSettings
from umove_fleet.src.simulation.state import SimulationState


class SimulationLogger:
    def __init__(self, log_file: Union[str, Path] = SimulationSettings.LOG_FILE_NAME):
        log_file = Path(log_file)
        self.log_path = log_file if log_file.is_absolute() else output_path(str(log_file))
        self.fieldnames = [
            "timestamp",
            "sim_time",
            "bus_id",
            "status",
            "battery_level",
            "route",
            "time_in_status_min",
            "replacing_bus",
            "open_negotiation"
        ]

        # Write header
        with open(self.log_path, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=self.fieldnames)
            writer.writeheader()

    def log_step(self, sim_time: float, state: SimulationState, open_negotiation: Optional[str] = None):
        with open(self.log_path, "a", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=self.fieldnames)
            for bus in state.buses:
                writer.writerow({
                    "timestamp": datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                    "sim_time": datetime.fromtimestamp(sim_time).strftime("%Y-%m-%d %H:%M:%S"),
                    "bus_id": bus.bus_id,
                    "status": bus.status.value,
                    "battery_level": round(bus.battery_level, 2),
                    "route": bus.route.value,
                    "time_in_status_min": round(bus.time_in_current_status, 2),
                    "replacing_bus": bus.replacing_bus or "None",
                    "open_negotiation": open_negotiation or "None"
                })
