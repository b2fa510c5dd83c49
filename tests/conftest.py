"""
Shared stubs for the collaborator seams of a SimulationRun.
"""
from datetime import timedelta

import pytest

from orbit_sim.core.constants import AU_M, R_EARTH_M
from orbit_sim.core.frames import IDENTITY
from orbit_sim.core.tle import EXAMPLE_CANX5_TLE, EXAMPLE_ISS_DEMO_TLE, tle_from_string
from orbit_sim.objects.ground_station import GroundStation
from orbit_sim.objects.satellite import Satellite
from orbit_sim.simulation.initial_state import InitialSimulationState, SimulationSettings
from orbit_sim.simulation.run import Environment


class IdentityFrames:
    """ITRF == TEME == GCRF."""

    def __init__(self):
        self.calls = 0

    def teme_to_itrf_rotation(self, t):
        self.calls += 1
        return IDENTITY

    def gcrf_to_itrf_rotation(self, t):
        return IDENTITY


class FixedSun:
    def __init__(self, position=(AU_M, 0.0, 0.0)):
        self.position = position

    def sun_position_gcrf(self, t):
        return self.position


class ConstantAtmosphere:
    def __init__(self, rho=1e-12, temp=1000.0):
        self.rho = rho
        self.temp = temp
        self.calls = []

    def density_temperature(self, h_km, lat_deg=None, lon_deg=None, time=None, space_weather=False):
        self.calls.append((h_km, lat_deg, lon_deg, time, space_weather))
        return self.rho, self.temp


class DecayingPropagator:
    """
    Circular-ish equatorial track whose radius shrinks linearly with time.
    Altitude above R_EARTH is h0_km - rate_km_per_h * hours.
    """

    def __init__(self, h0_km=400.0, rate_km_per_h=50.0):
        self.h0_km = h0_km
        self.rate_km_per_h = rate_km_per_h

    def propagate(self, tle, t):
        hours = (t - tle.epoch) / timedelta(hours=1)
        r = R_EARTH_M + (self.h0_km - self.rate_km_per_h * hours) * 1000.0
        return (r, 0.0, 0.0), (0.0, 7700.0, 0.0)


class FailingPropagator:
    def __init__(self, error):
        self.error = error

    def propagate(self, tle, t):
        raise self.error


def make_environment(propagator, sun=None, atmosphere=None):
    return Environment(
        propagator=propagator,
        frames=IdentityFrames(),
        sun=sun or FixedSun(),
        atmosphere=atmosphere or ConstantAtmosphere(),
    )


def make_initial(tle, max_days=1.0, step_hours=1.0, stations=(), space_weather=False,
                 drag_coefficient=2.5, drag_area_m2=0.01):
    return InitialSimulationState(
        tle=tle,
        ground_stations=stations,
        satellite=Satellite("Demo Satellite", drag_coefficient, drag_area_m2),
        simulation_settings=SimulationSettings(max_days, step_hours, space_weather),
    )


@pytest.fixture
def iss_tle():
    return tle_from_string(EXAMPLE_ISS_DEMO_TLE)


@pytest.fixture
def canx5_tle():
    return tle_from_string(EXAMPLE_CANX5_TLE)


@pytest.fixture
def rothney():
    return GroundStation(
        name="Rothney Astro Observatory",
        latitude_deg=50.8684,
        longitude_deg=-114.2910,
        elevation_m=1269.0,
        altitude_m=2.5,
        min_elevation_deg=5.0,
    )
