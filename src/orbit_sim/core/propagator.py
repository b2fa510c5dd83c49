"""
SGP4 propagation of TleData.

Returns TEME position (m) and velocity (m/s) at an absolute instant.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol, Tuple

from sgp4.api import SGP4_ERRORS

from orbit_sim.core.errors import PropagationError
from orbit_sim.core.frames import Vector3
from orbit_sim.core.tle import TleData, julian_day_parts

logger = logging.getLogger(__name__)


class Propagator(Protocol):
    def propagate(self, tle: TleData, t: datetime) -> Tuple[Vector3, Vector3]:
        ...


class Sgp4Propagator:
    """
    SGP4 (WGS-72, improved mode) propagator.

    The SGP4 record is initialised once per TleData instance and kept on
    that instance; SGP4 updates it on every call.
    """

    def satrec_for(self, tle: TleData):
        if tle._satrec is None:
            tle._satrec = tle.to_satrec()
            logger.debug("Initialised SGP4 record for catalog number %d", tle.sat_num)
        return tle._satrec

    def propagate(self, tle: TleData, t: datetime) -> Tuple[Vector3, Vector3]:
        satrec = self.satrec_for(tle)
        jd, fr = julian_day_parts(t)
        error_code, r_km, v_km_s = satrec.sgp4(jd, fr)

        if error_code != 0:
            message = SGP4_ERRORS.get(error_code)
            logger.debug("SGP4 error code %d at %s (jd=%.6f, fr=%.6f)", error_code, t.isoformat(), jd, fr)
            raise PropagationError(error_code, message)

        r_m = (r_km[0] * 1000.0, r_km[1] * 1000.0, r_km[2] * 1000.0)
        v_m_s = (v_km_s[0] * 1000.0, v_km_s[1] * 1000.0, v_km_s[2] * 1000.0)
        return r_m, v_m_s
