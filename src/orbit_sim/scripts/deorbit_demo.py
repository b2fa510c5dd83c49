"""
Deorbit demo: step a satellite until it deorbits or the time limit is hit.

Usage:
    orbit-sim-deorbit                                  # built-in ISS demo
    orbit-sim-deorbit --scenario scenarios/iss_deorbit.yaml
    orbit-sim-deorbit --max-days 30 --step-hours 6
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from orbit_sim.core.config import configure_logging, load_config
from orbit_sim.core.errors import SimulationError, ValidationError
from orbit_sim.core.tle import EXAMPLE_ISS_DEMO_TLE
from orbit_sim.objects.ground_station import GroundStation
from orbit_sim.physics.visibility import slant_range_km
from orbit_sim.simulation.initial_state import InitialSimulationState, initial_state_from_mapping
from orbit_sim.simulation.run import Environment, SimulationRun, SimulationStateAtStep
from orbit_sim.simulation.stepper import SharedRun, StepChannel, StepOutcome, spawn_stepper_loop

logger = logging.getLogger(__name__)


def demo_scenario() -> Dict[str, Any]:
    return {
        "tle": EXAMPLE_ISS_DEMO_TLE,
        "ground_stations": [
            {
                "name": "Rothney Astro Observatory",
                "latitude_deg": 50.8684,
                "longitude_deg": -114.2910,
                "elevation_m": 1269.0,
                "altitude_m": 2.5,
                "min_elevation_deg": 5.0,
            }
        ],
        "satellite": {"name": "Demo Satellite", "drag_coefficient": 2.5, "drag_area_m2": 0.01},
        "simulation": {"max_days": 36500, "step_interval_hours": 1.0, "enable_space_weather": False},
    }


def load_scenario(path: Optional[str]) -> Dict[str, Any]:
    if path is None:
        return demo_scenario()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Scenario file {path} must contain a mapping.")
    tle_file = data.get("tle_file")
    if tle_file and not Path(tle_file).is_absolute():
        # Relative to the scenario file
        data["tle_file"] = str(Path(path).parent / tle_file)
    return data


def format_telemetry(t: SimulationStateAtStep, stations: List[GroundStation]) -> List[str]:
    lines = [
        f"  time={t.time.isoformat()}  altitude={t.elevation_km:.2f} km  speed={t.speed_m_per_s / 1000.0:.3f} km/s",
        f"  drag={t.drag_power_watts:.4e} W  irradiance={t.irradiance_w_per_m2:.1f} W/m^2"
        f" (approx {t.irradiance_approx_w_per_m2:.1f})  local time={t.local_time_hours:.2f} h",
    ]
    position_km = (t.position_itrf_m[0] / 1000.0, t.position_itrf_m[1] / 1000.0, t.position_itrf_m[2] / 1000.0)
    for gs, angle, visible in zip(stations, t.elevation_angles_degrees, t.station_passes(stations)):
        mark = "PASS" if visible else "----"
        lines.append(
            f'  Ground station "{gs.name}" -> {mark} Elevation: {angle:.2f} degrees '
            f"(Distance: {slant_range_km(position_km, gs):.2f} km)"
        )
    return lines


def run_until_done(initial: InitialSimulationState, environment: Environment, update_period_ms: int) -> int:
    run = SimulationRun(initial, environment)
    channel = StepChannel()
    worker = spawn_stepper_loop(SharedRun(run), channel, update_period_ms)
    stations = list(initial.ground_stations)

    exit_code = 0
    try:
        for message in channel:
            if isinstance(message, StepOutcome):
                print(message.status_line)
                if message.latest_telemetry is not None:
                    for line in format_telemetry(message.latest_telemetry, stations):
                        print(line)
            else:
                print(f"Error: {message}", file=sys.stderr)
                exit_code = 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        exit_code = 130
    finally:
        channel.close()
    worker.join(timeout=1.0)
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Step a satellite with SGP4 until it deorbits or reaches the time limit.",
    )
    parser.add_argument("--scenario", type=str, default=None, help="YAML scenario file (default: ISS demo)")
    parser.add_argument("--config", type=str, default=None, help="Simulator config YAML")
    parser.add_argument("--max-days", type=float, default=None, help="Override simulation.max_days")
    parser.add_argument("--step-hours", type=float, default=None, help="Override simulation.step_interval_hours")
    parser.add_argument(
        "--space-weather",
        action="store_true",
        help="Use observed F10.7/Ap indices for the atmosphere model",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except (SimulationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    try:
        scenario = load_scenario(args.scenario)
        sim = dict(scenario.get("simulation") or {})
        if args.max_days is not None:
            sim["max_days"] = args.max_days
        if args.step_hours is not None:
            sim["step_interval_hours"] = args.step_hours
        if args.space_weather:
            sim["enable_space_weather"] = True
        scenario["simulation"] = sim
        initial = initial_state_from_mapping(scenario)
    except (SimulationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    tle = initial.tle
    print(f"Using TLE: {tle.name or tle.sat_num} (epoch {tle.epoch.isoformat()})")
    logger.info(
        "Starting run: max_days=%s step=%s h stations=%d",
        initial.simulation_settings.max_days,
        initial.simulation_settings.step_interval_hours,
        len(initial.ground_stations),
    )
    return run_until_done(initial, Environment.default(config), config.ui_update_period_ms)


if __name__ == "__main__":
    sys.exit(main())
