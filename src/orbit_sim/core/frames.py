from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional, Protocol, Tuple

import numpy as np
from astropy import units as u
from astropy.coordinates import GCRS, ITRS, TEME, CartesianRepresentation
from astropy.time import Time
from astropy.utils import iers

from orbit_sim.core.config import SimulatorConfig
from orbit_sim.core.constants import WGS84_A_M, WGS84_E2
from orbit_sim.core.errors import ValidationError

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]
Matrix3 = Tuple[Vector3, Vector3, Vector3]

IDENTITY: Matrix3 = ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


def dot(a: Vector3, b: Vector3) -> float:
    return a[0]*b[0] + a[1]*b[1] + a[2]*b[2]


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0]-b[0], a[1]-b[1], a[2]-b[2])


def scale(v: Vector3, k: float) -> Vector3:
    return (v[0]*k, v[1]*k, v[2]*k)


def norm(a: Vector3) -> float:
    return math.sqrt(dot(a, a))


def mat_vec(m: Matrix3, v: Vector3) -> Vector3:
    return (dot(m[0], v), dot(m[1], v), dot(m[2], v))


def geodetic_to_ecef_m(lat_deg: float, lon_deg: float, height_m: float) -> Vector3:
    """
    WGS-84 geodetic (deg, deg, m above ellipsoid) -> ECEF (m).
    """
    lat = math.radians(lat_deg)
    lon = math.radians(lon_deg)
    slat = math.sin(lat)
    clat = math.cos(lat)
    n = WGS84_A_M / math.sqrt(1.0 - WGS84_E2 * slat * slat)

    x = (n + height_m) * clat * math.cos(lon)
    y = (n + height_m) * clat * math.sin(lon)
    z = (n * (1.0 - WGS84_E2) + height_m) * slat
    return (x, y, z)


def ecef_to_geodetic(r_ecef_m: Vector3) -> Tuple[float, float, float]:
    """
    ECEF (m) -> WGS-84 geodetic latitude (deg), longitude (deg), height (m).

    Bowring-style fixed point iteration on latitude; converges to well below
    a millimetre in a handful of passes for anything near Earth.
    Returns lon wrapped to [-180, 180).
    """
    x, y, z = r_ecef_m
    p = math.hypot(x, y)
    if p == 0.0 and z == 0.0:
        raise ValidationError("Zero ECEF vector.")

    lon = math.degrees(math.atan2(y, x))
    lon = ((lon + 180.0) % 360.0) - 180.0

    b = WGS84_A_M * math.sqrt(1.0 - WGS84_E2)
    if p < 1e-9:
        # On the polar axis
        lat = 90.0 if z > 0 else -90.0
        return lat, lon, abs(z) - b

    lat = math.atan2(z, p * (1.0 - WGS84_E2))
    for _ in range(20):
        slat = math.sin(lat)
        n = WGS84_A_M / math.sqrt(1.0 - WGS84_E2 * slat * slat)
        h = p / math.cos(lat) - n
        new_lat = math.atan2(z, p * (1.0 - WGS84_E2 * n / (n + h)))
        if abs(new_lat - lat) < 1e-13:
            lat = new_lat
            break
        lat = new_lat

    slat = math.sin(lat)
    clat = math.cos(lat)
    n = WGS84_A_M / math.sqrt(1.0 - WGS84_E2 * slat * slat)
    if abs(clat) > abs(slat):
        h = p / clat - n
    else:
        h = z / slat - n * (1.0 - WGS84_E2)
    return math.degrees(lat), lon, h


def clamp_transform_time(t: datetime, horizon: datetime) -> datetime:
    """
    Frame rotations are only defined while Earth-orientation data exist;
    past the horizon the rotation is evaluated at the horizon instead.
    """
    if t > horizon:
        logger.debug("Clamping frame transform time %s to horizon %s", t.isoformat(), horizon.isoformat())
        return horizon
    return t


class FrameTransformService(Protocol):
    def teme_to_itrf_rotation(self, t: datetime) -> Matrix3:
        ...

    def gcrf_to_itrf_rotation(self, t: datetime) -> Matrix3:
        ...


def configure_earth_orientation(config: SimulatorConfig) -> None:
    iers.conf.auto_download = config.iers_auto_download
    iers.conf.iers_degraded_accuracy = config.iers_degraded_accuracy


class AstropyFrameService:
    """
    Rotation matrices between inertial frames and ITRF from astropy.

    Both transforms between geocentric frames are pure rotations, so the
    matrix is read off by transforming the three basis vectors.
    """

    def __init__(self, config: Optional[SimulatorConfig] = None):
        self.config = config or SimulatorConfig()
        configure_earth_orientation(self.config)
        self._basis = CartesianRepresentation(
            x=[1.0, 0.0, 0.0], y=[0.0, 1.0, 0.0], z=[0.0, 0.0, 1.0], unit=u.m
        )

    def _rotation(self, frame_cls, t: datetime) -> Matrix3:
        obstime = Time(clamp_transform_time(t, self.config.frame_transform_horizon), scale="utc")
        src = frame_cls(self._basis, obstime=obstime)
        dst = src.transform_to(ITRS(obstime=obstime))
        m = np.asarray(dst.cartesian.xyz.to_value(u.m), dtype=float)
        return (
            (float(m[0, 0]), float(m[0, 1]), float(m[0, 2])),
            (float(m[1, 0]), float(m[1, 1]), float(m[1, 2])),
            (float(m[2, 0]), float(m[2, 1]), float(m[2, 2])),
        )

    def teme_to_itrf_rotation(self, t: datetime) -> Matrix3:
        return self._rotation(TEME, t)

    def gcrf_to_itrf_rotation(self, t: datetime) -> Matrix3:
        return self._rotation(GCRS, t)
