"""
Exception hierarchy shared by the simulator.

Construction-time problems raise ValidationError. Everything raised while a
run is stepping is terminal for that run and is delivered to the observer
through the step channel.
"""

from __future__ import annotations

from typing import Optional


class SimulationError(Exception):
    """Base class for all simulator errors."""


class ValidationError(SimulationError, ValueError):
    """Out-of-range or unparseable input at a construction boundary."""


class PropagationError(SimulationError):
    """SGP4 returned a non-success code."""

    def __init__(self, code: int, message: Optional[str] = None):
        self.code = code
        detail = message or "unknown error"
        super().__init__(f"SGP4 propagation failed with code {code}: {detail}")


class PhysicsSanityError(SimulationError):
    """Geometry fell outside the range the eclipse models are valid for."""


class ConcurrencyError(SimulationError):
    """The shared run handle or the step channel can no longer be used."""


class ChannelClosedError(ConcurrencyError):
    """The receiving side of a step channel has gone away."""
