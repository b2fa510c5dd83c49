"""
Immutable inputs of a simulation run, and builders that assemble them from
loosely typed field values (YAML scenarios, form fields).

Scenario mapping layout:

    tle: |                      # or tle_file: path/to/file.tle
      ISS (ZARYA)
      1 25544U ...
      2 25544 ...
    tle_parameters:             # optional orbital overrides
      inclination: 51.6
    ground_stations:            # or a single ground_station mapping
      - name: Rothney Astro Observatory
        latitude_deg: 50.8684
        longitude_deg: -114.2910
        elevation_m: 1269
        altitude_m: 2.5
        min_elevation_deg: 5
    satellite:
      name: Demo Satellite
      drag_coefficient: 2.5
      drag_area_m2: 0.01
    simulation:
      max_days: 36500
      step_interval_hours: 1
      enable_space_weather: false
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from orbit_sim.core.errors import ValidationError
from orbit_sim.core.tle import TleData, load_tle_from_file, tle_from_string
from orbit_sim.objects.ground_station import GroundStation
from orbit_sim.objects.satellite import Satellite

# Labels shown to the user when a field is missing or malformed
GROUND_STATION_LABELS: Dict[str, str] = {
    "name": "Name",
    "latitude_deg": "Latitude (deg)",
    "longitude_deg": "Longitude (deg)",
    "elevation_m": "Elevation MSL (m) (optional)",
    "altitude_m": "Altitude AGL (m)",
    "min_elevation_deg": "Min Elevation (deg)",
}

SATELLITE_LABELS: Dict[str, str] = {
    "name": "Name",
    "drag_coefficient": "Drag Coefficient (C_d)",
    "drag_area_m2": "Drag Area (m²)",
}

SIMULATION_LABELS: Dict[str, str] = {
    "max_days": "Max Days",
    "step_interval_hours": "Step Interval (hours)",
    "enable_space_weather": "Drag Power: Enable Space Weather",
}

TLE_PARAMETER_LABELS: Dict[str, str] = {
    "inclination": "Inclination (deg)",
    "raan": "RAAN (deg)",
    "eccen": "Eccentricity",
    "arg_of_perigee": "Argument of Perigee (deg)",
    "mean_anomaly": "Mean Anomaly (deg)",
    "mean_motion": "Mean Motion (rev/day)",
}


@dataclass(frozen=True)
class SimulationSettings:
    max_days: float
    step_interval_hours: float
    enable_space_weather: bool = False

    def __post_init__(self):
        if not (self.max_days > 0):
            raise ValidationError("Max Days must be > 0")
        if not (self.step_interval_hours > 0):
            raise ValidationError("Step Interval (hours) must be > 0")


@dataclass(frozen=True)
class InitialSimulationState:
    """
    Everything a run starts from. Read-only once built; a run takes its own
    copy of the TLE for propagation.
    """
    tle: TleData
    ground_stations: Tuple[GroundStation, ...]
    satellite: Satellite
    simulation_settings: SimulationSettings

    def __post_init__(self):
        # Accept any iterable of stations, keep the given order
        object.__setattr__(self, "ground_stations", tuple(self.ground_stations))


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_required_float(label: str, value: Any) -> float:
    if _is_blank(value):
        raise ValidationError(f"'{label}' is required")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid number for '{label}'")
    try:
        result = float(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid number for '{label}'") from e
    if not math.isfinite(result):
        raise ValidationError(f"Invalid number for '{label}'")
    return result


def parse_optional_float(value: Any) -> Optional[float]:
    """Blank or unparseable input is treated as absent."""
    if _is_blank(value) or isinstance(value, bool):
        return None
    try:
        result = float(str(value).strip())
    except ValueError:
        return None
    return result if math.isfinite(result) else None


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _is_blank(value):
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def ground_station_from_mapping(data: Mapping[str, Any]) -> GroundStation:
    labels = GROUND_STATION_LABELS
    return GroundStation(
        name=str(data.get("name", "") or ""),
        latitude_deg=parse_required_float(labels["latitude_deg"], data.get("latitude_deg")),
        longitude_deg=parse_required_float(labels["longitude_deg"], data.get("longitude_deg")),
        elevation_m=parse_optional_float(data.get("elevation_m")),
        altitude_m=parse_required_float(labels["altitude_m"], data.get("altitude_m")),
        min_elevation_deg=parse_required_float(labels["min_elevation_deg"], data.get("min_elevation_deg")),
    )


def satellite_from_mapping(data: Mapping[str, Any]) -> Satellite:
    labels = SATELLITE_LABELS
    return Satellite(
        name=str(data.get("name", "") or ""),
        drag_coefficient=parse_required_float(labels["drag_coefficient"], data.get("drag_coefficient")),
        drag_area_m2=parse_required_float(labels["drag_area_m2"], data.get("drag_area_m2")),
    )


def simulation_settings_from_mapping(data: Mapping[str, Any]) -> SimulationSettings:
    labels = SIMULATION_LABELS
    return SimulationSettings(
        max_days=parse_required_float(labels["max_days"], data.get("max_days")),
        step_interval_hours=parse_required_float(labels["step_interval_hours"], data.get("step_interval_hours")),
        enable_space_weather=_parse_bool(data.get("enable_space_weather")),
    )


def _tle_from_mapping(data: Mapping[str, Any]) -> TleData:
    tle_value = data.get("tle")
    if isinstance(tle_value, TleData):
        tle = tle_value
    elif not _is_blank(tle_value):
        tle = tle_from_string(str(tle_value))
    elif not _is_blank(data.get("tle_file")):
        tles = load_tle_from_file(str(data["tle_file"]))
        if not tles:
            raise ValidationError("No valid TLE available.")
        tle = tles[0]
    else:
        raise ValidationError("No valid TLE available.")

    overrides = data.get("tle_parameters") or {}
    unknown = sorted(set(overrides) - set(TLE_PARAMETER_LABELS))
    if unknown:
        raise ValidationError(f"Unknown TLE parameters: {', '.join(unknown)}")
    values = {
        key: parse_required_float(TLE_PARAMETER_LABELS[key], value)
        for key, value in overrides.items()
    }
    return tle.with_overrides(**values) if values else tle


def _station_mappings(data: Mapping[str, Any]) -> Iterable[Mapping[str, Any]]:
    if data.get("ground_stations") is not None:
        return data["ground_stations"]
    if data.get("ground_station") is not None:
        return [data["ground_station"]]
    return []


def initial_state_from_mapping(data: Mapping[str, Any]) -> InitialSimulationState:
    """
    Build an InitialSimulationState from named field groups.
    Raises ValidationError naming the first offending field.
    """
    tle = _tle_from_mapping(data)
    stations = tuple(ground_station_from_mapping(gs) for gs in _station_mappings(data))
    satellite = satellite_from_mapping(data.get("satellite") or {})
    settings = simulation_settings_from_mapping(data.get("simulation") or {})
    return InitialSimulationState(
        tle=tle,
        ground_stations=stations,
        satellite=satellite,
        simulation_settings=settings,
    )
