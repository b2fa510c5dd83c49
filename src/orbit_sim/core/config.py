"""
Runtime configuration.

Values come from, in increasing priority: the defaults below, an optional
YAML file, and a handful of environment overrides. The YAML file is looked
up at the explicit path given to load_config(), then $ORBIT_SIM_CFG, then
./orbit_sim.yaml.

Example file:

    ui_update_period_ms: 600
    frame_transform_horizon: "2027-01-01T00:00:00Z"
    iers_auto_download: false
    iers_degraded_accuracy: warn
    log_level: INFO
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from orbit_sim.core.constants import UI_UPDATE_PERIOD_MS
from orbit_sim.core.errors import ValidationError

_CFG_ENV = "ORBIT_SIM_CFG"
_DEFAULT_CFG_PATH = Path("orbit_sim.yaml")

_DEGRADED_ACCURACY_CHOICES = ("error", "warn", "ignore")


def parse_utc(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 instant into an aware UTC datetime.
    Naive values are taken to be UTC already.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(f"Invalid ISO-8601 instant: {value!r}") from e
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_period_ms(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid ui_update_period_ms: {value!r}") from e


@dataclass(frozen=True)
class SimulatorConfig:
    ui_update_period_ms: int = UI_UPDATE_PERIOD_MS
    # Last instant with usable Earth-orientation data; frame rotations for
    # later simulation times are evaluated at this instant instead.
    frame_transform_horizon: datetime = datetime(2027, 1, 1, tzinfo=timezone.utc)
    iers_auto_download: bool = False
    iers_degraded_accuracy: str = "warn"
    log_level: str = "INFO"

    def __post_init__(self):
        if self.ui_update_period_ms < 0:
            raise ValidationError(
                f"ui_update_period_ms must be non-negative. Got: {self.ui_update_period_ms}"
            )
        if self.iers_degraded_accuracy not in _DEGRADED_ACCURACY_CHOICES:
            raise ValidationError(
                f"iers_degraded_accuracy must be one of {_DEGRADED_ACCURACY_CHOICES}. "
                f"Got: {self.iers_degraded_accuracy!r}"
            )
        if self.frame_transform_horizon.tzinfo is None:
            raise ValidationError("frame_transform_horizon must be timezone-aware.")


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping.")
    return data


def config_from_mapping(data: Dict[str, Any], base: Optional[SimulatorConfig] = None) -> SimulatorConfig:
    base = base or SimulatorConfig()
    known = {f.name for f in fields(SimulatorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown config keys: {', '.join(unknown)}")

    values: Dict[str, Any] = dict(data)
    if "frame_transform_horizon" in values:
        values["frame_transform_horizon"] = parse_utc(values["frame_transform_horizon"])
    if "ui_update_period_ms" in values:
        values["ui_update_period_ms"] = parse_period_ms(values["ui_update_period_ms"])
    if "iers_auto_download" in values:
        values["iers_auto_download"] = bool(values["iers_auto_download"])
    if "log_level" in values:
        values["log_level"] = str(values["log_level"]).upper()
    return replace(base, **values)


def load_config(path: Union[str, Path, None] = None) -> SimulatorConfig:
    env_path = os.environ.get(_CFG_ENV)
    if path is None and env_path:
        path = Path(env_path)
        if not path.exists():
            raise FileNotFoundError(f"{_CFG_ENV} set to '{env_path}' but file not found")
    elif path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at explicit path: {path}")
    elif _DEFAULT_CFG_PATH.exists():
        path = _DEFAULT_CFG_PATH

    cfg = SimulatorConfig()
    if path is not None:
        cfg = config_from_mapping(_load_yaml(path), cfg)

    # Soft env overrides
    ll = os.environ.get("LOG_LEVEL")
    if ll:
        cfg = replace(cfg, log_level=ll.upper())
    period = os.environ.get("ORBIT_SIM_UI_PERIOD_MS")
    if period:
        cfg = replace(cfg, ui_update_period_ms=parse_period_ms(period))
    return cfg


def configure_logging(level: str = "INFO") -> None:
    """Entry points only; library modules just use logging.getLogger(__name__)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
