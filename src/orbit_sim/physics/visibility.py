from __future__ import annotations

import math

from orbit_sim.core.frames import Vector3, dot, norm, scale, sub
from orbit_sim.objects.ground_station import GroundStation


def elevation_angle_deg(position_km: Vector3, station: GroundStation) -> float:
    """
    Elevation angle of the satellite above the station's horizon.
    Uses the station's geocentric radial as "up"; both vectors are ECEF.
    """
    r_gs = station.ecef_xyz_m
    los = sub(scale(position_km, 1000.0), r_gs)  # line-of-sight vector from GS to SAT (m)

    n_g = norm(r_gs)
    n_l = norm(los)
    cos_theta = dot(r_gs, los) / (n_g * n_l)
    # clamp for numeric stability
    cos_theta = max(-1.0, min(1.0, cos_theta))
    theta = math.acos(cos_theta)  # angle from zenith
    return math.degrees(math.pi / 2.0 - theta)


def is_pass(elevation_deg: float, station: GroundStation) -> bool:
    """Strictly above the station's minimum elevation."""
    return elevation_deg > station.min_elevation_deg


def slant_range_km(position_km: Vector3, station: GroundStation) -> float:
    return norm(sub(position_km, scale(station.ecef_xyz_m, 1e-3)))
