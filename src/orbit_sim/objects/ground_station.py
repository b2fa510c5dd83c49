from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import Optional

from orbit_sim.core.errors import ValidationError
from orbit_sim.core.frames import Vector3, geodetic_to_ecef_m


@dataclass(frozen=True)
class GroundStation:
    name: str
    latitude_deg: float
    longitude_deg: float
    elevation_m: Optional[float] = None  # above mean sea level, optional
    altitude_m: float = 0.0  # above ground level
    min_elevation_deg: float = 5.0

    def __post_init__(self):
        if not (-90.0 <= self.latitude_deg <= 90.0):
            raise ValidationError(f"Latitude must be in range [-90, 90] degrees. Got: {self.latitude_deg}")
        if not (-180.0 <= self.longitude_deg <= 180.0):
            raise ValidationError(f"Longitude must be in range [-180, 180] degrees. Got: {self.longitude_deg}")

    @property
    def height_m(self) -> float:
        return (self.elevation_m or 0.0) + self.altitude_m

    @cached_property
    def ecef_xyz_m(self) -> Vector3:
        """WGS-84 ECEF position, computed on first access."""
        return geodetic_to_ecef_m(self.latitude_deg, self.longitude_deg, self.height_m)
