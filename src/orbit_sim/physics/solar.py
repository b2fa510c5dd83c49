"""
Sun position, eclipse irradiance and local solar time.

Two shadow models are provided. Both take the satellite and Sun positions in
the same Earth-centred frame (metres) and return W/m^2 in [0, 1361]:

- irradiance_cone_w_per_m2: umbra/penumbra cones behind the Earth with a
  linear taper across the penumbra.
- irradiance_approx_w_per_m2: compares apparent angular radii of the Earth
  and the Sun as seen from the satellite, quadratic taper across the
  partial-overlap band.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Protocol

from astropy import units as u
from astropy.coordinates import get_body
from astropy.time import Time

from orbit_sim.core.constants import AU_M, R_EARTH_M, R_SUN_M, SOLAR_CONSTANT_W_M2
from orbit_sim.core.errors import PhysicsSanityError
from orbit_sim.core.frames import FrameTransformService, Vector3, dot, mat_vec, norm, scale, sub
from orbit_sim.core.tle import julian_day_parts


class SunEphemeris(Protocol):
    def sun_position_gcrf(self, t: datetime) -> Vector3:
        ...


class AstropySunEphemeris:
    """Geocentric apparent Sun position from astropy's built-in ephemeris."""

    def sun_position_gcrf(self, t: datetime) -> Vector3:
        sun = get_body("sun", Time(t, scale="utc"))
        x, y, z = sun.cartesian.xyz.to_value(u.m)
        return (float(x), float(y), float(z))


def sun_position_itrf(t: datetime, sun: SunEphemeris, frames: FrameTransformService) -> Vector3:
    return mat_vec(frames.gcrf_to_itrf_rotation(t), sun.sun_position_gcrf(t))


def _check_geometry(r_sat_m: Vector3, r_sun_m: Vector3) -> None:
    d_sun = norm(r_sun_m)
    if not (0.9 * AU_M <= d_sun <= 1.1 * AU_M):
        raise PhysicsSanityError(f"Sun distance {d_sun:.6e} m is outside 0.9-1.1 AU.")
    d_sat = norm(r_sat_m)
    if not (R_EARTH_M < d_sat <= 5.0 * R_EARTH_M):
        raise PhysicsSanityError(
            f"Satellite distance {d_sat / 1000.0:.3f} km is outside (R_earth, 5 R_earth]."
        )


def irradiance_cone_w_per_m2(r_sat_m: Vector3, r_sun_m: Vector3) -> float:
    _check_geometry(r_sat_m, r_sun_m)

    d_sun = norm(r_sun_m)
    anti_sun = scale(r_sun_m, -1.0 / d_sun)
    p = dot(r_sat_m, anti_sun)  # distance behind the Earth along the shadow axis
    if p <= 0.0:
        return SOLAR_CONSTANT_W_M2

    d = norm(sub(r_sat_m, scale(anti_sun, p)))
    r_umbra = R_EARTH_M - p * (R_SUN_M - R_EARTH_M) / d_sun
    r_penumbra = R_EARTH_M + p * (R_SUN_M + R_EARTH_M) / d_sun

    if d <= r_umbra:
        return 0.0
    if d < r_penumbra:
        lo = max(r_umbra, 0.0)
        frac = (d - lo) / (r_penumbra - lo)
        return SOLAR_CONSTANT_W_M2 * min(1.0, max(0.0, frac))
    return SOLAR_CONSTANT_W_M2


def irradiance_approx_w_per_m2(r_sat_m: Vector3, r_sun_m: Vector3) -> float:
    _check_geometry(r_sat_m, r_sun_m)

    to_sun = sub(r_sun_m, r_sat_m)
    to_earth = scale(r_sat_m, -1.0)
    n_sun = norm(to_sun)
    n_earth = norm(to_earth)

    alpha = math.asin(R_SUN_M / n_sun)  # apparent solar radius
    beta = math.asin(R_EARTH_M / n_earth)  # apparent Earth radius
    cos_theta = max(-1.0, min(1.0, dot(to_sun, to_earth) / (n_sun * n_earth)))
    theta = math.acos(cos_theta)

    if theta >= alpha + beta:
        return SOLAR_CONSTANT_W_M2
    if theta <= beta - alpha:
        return 0.0

    delta = (alpha + beta) - theta  # overlap depth
    frac = 1.0 - (delta / (2.0 * alpha)) ** 2
    return SOLAR_CONSTANT_W_M2 * min(1.0, max(0.0, frac))


def julian_date(t: datetime) -> float:
    jd, fr = julian_day_parts(t)
    return jd + fr


def local_solar_time_hours(lon_deg: float, t: datetime) -> float:
    """Mean local solar time in [0, 24)."""
    utc_hours = ((julian_date(t) + 0.5) % 1.0) * 24.0
    local = (utc_hours + lon_deg / 15.0) % 24.0
    # float modulo can land exactly on 24.0 for tiny negative inputs
    if local >= 24.0:
        local = 0.0
    return local
