"""
Tests for ground-station elevation angle and pass detection.
"""
import math

import pytest

from orbit_sim.core.frames import norm, scale
from orbit_sim.objects.ground_station import GroundStation
from orbit_sim.physics.visibility import elevation_angle_deg, is_pass, slant_range_km


def _overhead_km(gs: GroundStation, height_km: float):
    r = gs.ecef_xyz_m
    n = norm(r)
    return scale(r, (n + height_km * 1000.0) / n / 1000.0)


def _east_unit(gs: GroundStation):
    lon = math.radians(gs.longitude_deg)
    return (-math.sin(lon), math.cos(lon), 0.0)


class TestElevationAngle:
    def test_satellite_directly_overhead(self, rothney):
        sat_km = _overhead_km(rothney, 500.0)
        elev = elevation_angle_deg(sat_km, rothney)
        assert elev == pytest.approx(90.0, abs=0.1)
        assert is_pass(elev, rothney)

    def test_satellite_on_horizon(self, rothney):
        r = scale(rothney.ecef_xyz_m, 1e-3)
        e = _east_unit(rothney)
        sat_km = (r[0] + 1000.0 * e[0], r[1] + 1000.0 * e[1], r[2] + 1000.0 * e[2])
        elev = elevation_angle_deg(sat_km, rothney)
        assert elev == pytest.approx(0.0, abs=1e-6)
        assert not is_pass(elev, rothney)

    def test_satellite_behind_earth(self, rothney):
        sat_km = scale(_overhead_km(rothney, 500.0), -1.0)
        elev = elevation_angle_deg(sat_km, rothney)
        assert elev == pytest.approx(-90.0, abs=0.1)

    @pytest.mark.parametrize(
        "sat_km",
        [
            (7000.0, 0.0, 0.0),
            (0.0, -7000.0, 100.0),
            (-3000.0, -3000.0, 6000.0),
            (42164.0, 0.0, 0.0),
        ],
    )
    def test_always_in_range(self, rothney, sat_km):
        assert -90.0 <= elevation_angle_deg(sat_km, rothney) <= 90.0


class TestPassFlag:
    def test_strictly_greater_than_minimum(self):
        gs = GroundStation("GS", 0.0, 0.0, min_elevation_deg=10.0)
        assert not is_pass(10.0, gs)
        assert is_pass(10.0001, gs)
        assert not is_pass(-5.0, gs)


def test_slant_range_overhead(rothney):
    sat_km = _overhead_km(rothney, 500.0)
    assert slant_range_km(sat_km, rothney) == pytest.approx(500.0, abs=1e-6)
