from __future__ import annotations

from dataclasses import dataclass

from orbit_sim.core.errors import ValidationError


@dataclass(frozen=True)
class Satellite:
    """
    Physical properties used for atmospheric drag.
    The orbit itself comes from the TLE.
    """
    name: str
    drag_coefficient: float  # C_d, unitless
    drag_area_m2: float  # average cross-sectional area A

    def __post_init__(self):
        if self.drag_coefficient < 0:
            raise ValidationError(f"Drag coefficient must be non-negative. Got: {self.drag_coefficient}")
        if self.drag_area_m2 < 0:
            raise ValidationError(f"Drag area must be non-negative. Got: {self.drag_area_m2}")
