"""
Atmospheric density and drag power.

Density comes from NRLMSIS 2.1 through pymsis. Drag power is the rate at
which drag removes kinetic energy from the satellite:

    P = 0.5 * C_d * rho * A * v^3
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional, Protocol, Tuple

import numpy as np
import pymsis
from pymsis.utils import get_f107_ap

from orbit_sim.objects.satellite import Satellite

logger = logging.getLogger(__name__)

# Moderate solar activity, quiet geomagnetic field
DEFAULT_F107: float = 150.0
DEFAULT_F107A: float = 150.0
DEFAULT_AP: float = 4.0

# Used when the caller has no instant to offer
_REFERENCE_TIME = datetime(2000, 1, 1, 12, tzinfo=timezone.utc)


class AtmosphereModel(Protocol):
    def density_temperature(
        self,
        h_km: float,
        lat_deg: Optional[float] = None,
        lon_deg: Optional[float] = None,
        time: Optional[datetime] = None,
        space_weather: bool = False,
    ) -> Tuple[float, float]:
        ...


def _to_datetime64(t: datetime) -> np.datetime64:
    if t.tzinfo is not None:
        t = t.astimezone(timezone.utc).replace(tzinfo=None)
    return np.datetime64(t, "ms")


class MsisAtmosphere:
    """
    NRLMSIS 2.1 density (kg/m^3) and temperature (K).

    With space weather disabled the model runs on fixed default indices.
    With it enabled, F10.7 and Ap are looked up for the instant; instants
    outside the available index data, or an index file that cannot be
    fetched, fall back to the defaults.
    """

    def _indices(self, date: np.datetime64, space_weather: bool):
        if space_weather:
            try:
                f107, f107a, ap = get_f107_ap(np.atleast_1d(date))
                return f107, f107a, ap
            except (ValueError, OSError) as e:
                # OSError covers a failed index download (urllib URLError)
                logger.warning("Space weather indices unavailable for %s, using defaults: %s", date, e)
        return [DEFAULT_F107], [DEFAULT_F107A], [[DEFAULT_AP] * 7]

    def density_temperature(
        self,
        h_km: float,
        lat_deg: Optional[float] = None,
        lon_deg: Optional[float] = None,
        time: Optional[datetime] = None,
        space_weather: bool = False,
    ) -> Tuple[float, float]:
        if not math.isfinite(h_km) or h_km < 0.0:
            return 0.0, 0.0

        date = _to_datetime64(time or _REFERENCE_TIME)
        f107s, f107as, aps = self._indices(date, space_weather)

        out = pymsis.calculate(
            [date],
            [lon_deg if lon_deg is not None else 0.0],
            [lat_deg if lat_deg is not None else 0.0],
            [h_km],
            f107s,
            f107as,
            aps,
        )
        row = np.asarray(out, dtype=float).reshape(-1, len(pymsis.Variable))[0]
        rho = float(row[pymsis.Variable.MASS_DENSITY])
        temp = float(row[pymsis.Variable.TEMPERATURE])

        if not math.isfinite(rho):
            return 0.0, temp
        return rho, temp


def drag_power_watts(
    sat: Satellite,
    h_km: float,
    lat_deg: Optional[float],
    lon_deg: Optional[float],
    speed_m_per_s: float,
    time: Optional[datetime],
    enable_space_weather: bool,
    atmosphere: Optional[AtmosphereModel] = None,
) -> float:
    atmosphere = atmosphere or MsisAtmosphere()
    rho, _ = atmosphere.density_temperature(h_km, lat_deg, lon_deg, time, enable_space_weather)
    return 0.5 * sat.drag_coefficient * rho * sat.drag_area_m2 * speed_m_per_s ** 3
