from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence, Tuple

from orbit_sim.core.config import SimulatorConfig
from orbit_sim.core.constants import DEORBIT_ALTITUDE_KM, R_EARTH_KM
from orbit_sim.core.frames import (
    AstropyFrameService,
    FrameTransformService,
    Vector3,
    ecef_to_geodetic,
    mat_vec,
    norm,
    scale,
)
from orbit_sim.core.propagator import Propagator, Sgp4Propagator
from orbit_sim.core.tle import TleData
from orbit_sim.objects.ground_station import GroundStation
from orbit_sim.physics.atmosphere import AtmosphereModel, MsisAtmosphere, drag_power_watts
from orbit_sim.physics.solar import (
    AstropySunEphemeris,
    SunEphemeris,
    irradiance_approx_w_per_m2,
    irradiance_cone_w_per_m2,
    local_solar_time_hours,
    sun_position_itrf,
)
from orbit_sim.physics.visibility import elevation_angle_deg, is_pass
from orbit_sim.simulation.initial_state import InitialSimulationState


@dataclass(frozen=True)
class Environment:
    """
    External services a run depends on.
    Swap any of them for a stub to run without astropy or pymsis.
    """
    propagator: Propagator
    frames: FrameTransformService
    sun: SunEphemeris
    atmosphere: AtmosphereModel

    @classmethod
    def default(cls, config: Optional[SimulatorConfig] = None) -> "Environment":
        return cls(
            propagator=Sgp4Propagator(),
            frames=AstropyFrameService(config),
            sun=AstropySunEphemeris(),
            atmosphere=MsisAtmosphere(),
        )


@dataclass(frozen=True)
class SimulationStateAtStep:
    """
    Telemetry for one step.

    `time` is the instant the record was computed for; `hours_since_epoch`
    is read after the run's clock has advanced past it.
    """
    time: datetime
    hours_since_epoch: float
    position_itrf_m: Vector3
    velocity_itrf_m_per_s: Vector3
    speed_m_per_s: float
    elevation_km: float  # above R_EARTH_KM
    elevation_angles_degrees: Tuple[float, ...]  # one per ground station, same order
    drag_power_watts: float
    irradiance_approx_w_per_m2: float
    irradiance_w_per_m2: float
    local_time_hours: float
    is_deorbited: bool

    def station_passes(self, stations: Sequence[GroundStation]) -> Tuple[bool, ...]:
        return tuple(
            is_pass(angle, gs) for angle, gs in zip(self.elevation_angles_degrees, stations)
        )


class SimulationRun:
    """
    Mutable state of one run: the working TLE, the simulation clock and the
    most recent telemetry. step() computes one record and advances the clock
    by the configured interval. It never stops on its own.
    """

    def __init__(self, initial: InitialSimulationState, environment: Optional[Environment] = None):
        self.initial = initial
        self.tle: TleData = initial.tle.copy()
        self.current_sim_time: datetime = initial.tle.epoch
        self.latest_telemetry: Optional[SimulationStateAtStep] = None
        self._environment = environment

    @property
    def environment(self) -> Environment:
        # Built lazily so constructing a run has no side effects
        if self._environment is None:
            self._environment = Environment.default()
        return self._environment

    def hours_since_epoch(self) -> float:
        return (self.current_sim_time - self.initial.tle.epoch).total_seconds() / 3600.0

    def step(self) -> SimulationStateAtStep:
        env = self.environment
        settings = self.initial.simulation_settings
        t = self.current_sim_time

        r_teme, v_teme = env.propagator.propagate(self.tle, t)

        rotation = env.frames.teme_to_itrf_rotation(t)
        r_itrf = mat_vec(rotation, r_teme)
        v_itrf = mat_vec(rotation, v_teme)

        lat_deg, lon_deg, h_m = ecef_to_geodetic(r_itrf)

        speed = norm(v_itrf)
        r_km = scale(r_itrf, 1e-3)
        elevation_km = norm(r_km) - R_EARTH_KM

        angles = tuple(elevation_angle_deg(r_km, gs) for gs in self.initial.ground_stations)

        drag = drag_power_watts(
            self.initial.satellite,
            h_m / 1000.0,
            lat_deg,
            lon_deg,
            speed,
            t,
            settings.enable_space_weather,
            env.atmosphere,
        )

        r_sun = sun_position_itrf(t, env.sun, env.frames)
        irr_approx = irradiance_approx_w_per_m2(r_itrf, r_sun)
        irr_cone = irradiance_cone_w_per_m2(r_itrf, r_sun)
        local_time = local_solar_time_hours(lon_deg, t)

        is_deorbited = elevation_km < DEORBIT_ALTITUDE_KM

        self.current_sim_time = t + timedelta(hours=settings.step_interval_hours)

        telemetry = SimulationStateAtStep(
            time=t,
            hours_since_epoch=self.hours_since_epoch(),
            position_itrf_m=r_itrf,
            velocity_itrf_m_per_s=v_itrf,
            speed_m_per_s=speed,
            elevation_km=elevation_km,
            elevation_angles_degrees=angles,
            drag_power_watts=drag,
            irradiance_approx_w_per_m2=irr_approx,
            irradiance_w_per_m2=irr_cone,
            local_time_hours=local_time,
            is_deorbited=is_deorbited,
        )
        self.latest_telemetry = telemetry
        return telemetry
