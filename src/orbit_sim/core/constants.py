from __future__ import annotations

# WGS-84 ellipsoid
WGS84_A_M: float = 6378137.0
WGS84_F: float = 1.0 / 298.257223563
WGS84_E2: float = WGS84_F * (2.0 - WGS84_F)

# Earth equatorial radius in km (WGS-84, same value SGP4 uses for altitude)
R_EARTH_KM: float = 6378.137
R_EARTH_M: float = R_EARTH_KM * 1000.0

# Nominal solar radius (IAU 2015) and astronomical unit, in metres
R_SUN_M: float = 6.957e8
AU_M: float = 1.495978707e11

# Solar irradiance at 1 AU (W/m^2)
SOLAR_CONSTANT_W_M2: float = 1361.0

# Operational deorbit altitude (km above R_EARTH_KM)
DEORBIT_ALTITUDE_KM: float = 100.0

# Longest wall-clock batch before the stepper publishes progress (ms)
UI_UPDATE_PERIOD_MS: int = 600
