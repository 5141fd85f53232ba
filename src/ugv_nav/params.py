"""
Runtime parameters with JSON persistence and environment overrides.

One Parameters instance is built at startup and passed to every
component. The web interface can modify values at runtime; changes
take effect on the next control tick. Single-threaded asyncio means
no locks needed.

Precedence: dataclass defaults < params.json < UGV_* environment.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

from ugv_nav import config
from ugv_nav.decision.target import Region, UnknownRegionError

logger = logging.getLogger(__name__)

PARAMS_FILE = Path(__file__).parent / "params.json"
MASK = "***"


class ConfigError(Exception):
    """Missing or invalid configuration detected at startup."""


@dataclass
class Parameters:
    """Runtime tunable parameters."""

    # Endpoints (tokens go in the Authorization header verbatim)
    car_url: str = ""
    car_auth: str = ""
    cam1_url: str = ""
    cam1_auth: str = ""
    cam2_url: str = ""
    cam2_auth: str = ""
    oracle_url: str = ""
    oracle_auth: str = ""

    # Goal override, bypasses the oracle when set (e.g. "TL", "Q3")
    target_override: str = ""

    # Markers
    vehicle_marker_id: int = config.VEHICLE_MARKER_ID
    corner_top_left_id: int = config.CORNER_TOP_LEFT_ID
    corner_top_right_id: int = config.CORNER_TOP_RIGHT_ID
    corner_bottom_left_id: int = config.CORNER_BOTTOM_LEFT_ID
    corner_bottom_right_id: int = config.CORNER_BOTTOM_RIGHT_ID
    aruco_dictionary: str = config.ARUCO_DICTIONARY
    heading_probe_px: float = config.HEADING_PROBE_PX

    # Calibration / fusion
    calibration_grace_ticks: int = config.CALIBRATION_GRACE_TICKS
    fusion_outlier_distance: float = config.FUSION_OUTLIER_DISTANCE

    # Navigation
    angle_ok: float = config.ANGLE_OK
    turn_polarity: float = config.TURN_POLARITY
    arrive_distance: float = config.ARRIVE_DISTANCE
    goal_tolerance: float = config.GOAL_TOLERANCE
    search_after_misses: int = config.SEARCH_AFTER_MISSES
    turn_speed: float = config.TURN_SPEED
    search_speed: float = config.SEARCH_SPEED
    speed_gain: float = config.SPEED_GAIN
    min_drive_speed: float = config.MIN_DRIVE_SPEED
    max_drive_speed: float = config.MAX_DRIVE_SPEED

    # Timing (seconds)
    tick_interval: float = config.TICK_INTERVAL
    fetch_timeout: float = config.FETCH_TIMEOUT
    oracle_interval: float = config.ORACLE_INTERVAL
    oracle_timeout: float = config.ORACLE_TIMEOUT
    dispatch_interval: float = config.DISPATCH_INTERVAL
    min_command_interval: float = config.MIN_COMMAND_INTERVAL
    command_timeout: float = config.COMMAND_TIMEOUT

    @property
    def cameras(self) -> list[tuple[str, str, str]]:
        """Configured cameras as (name, url, auth)."""
        cams = [
            ("camera1", self.cam1_url, self.cam1_auth),
            ("camera2", self.cam2_url, self.cam2_auth),
        ]
        return [c for c in cams if c[1]]

    @property
    def corner_ids(self) -> dict[str, int]:
        """Corner name -> marker ID."""
        return {
            "top_left": self.corner_top_left_id,
            "top_right": self.corner_top_right_id,
            "bottom_left": self.corner_bottom_left_id,
            "bottom_right": self.corner_bottom_right_id,
        }

    def update(self, **kwargs):
        """Update parameters from dict (e.g., from web API)."""
        for key, value in kwargs.items():
            if key.endswith("_auth") and value == MASK:
                continue  # Masked value echoed back from to_dict
            if hasattr(self, key):
                expected_type = type(getattr(self, key))
                try:
                    setattr(self, key, _coerce(expected_type, value))
                except (TypeError, ValueError):
                    logger.warning(f"Invalid value for {key}: {value}")

    def apply_env(self, environ=None):
        """Override fields from UGV_<FIELD> environment variables."""
        environ = os.environ if environ is None else environ
        overrides = {}
        for f in fields(self):
            name = config.ENV_PREFIX + f.name.upper()
            if name in environ:
                overrides[f.name] = environ[name]
        if overrides:
            logger.info(f"Environment overrides: {', '.join(sorted(overrides))}")
            self.update(**overrides)

    def validate(self):
        """Raise ConfigError if the loop cannot start with these values."""
        problems = []
        if not self.car_url:
            problems.append("car_url is required")
        if not self.car_auth:
            problems.append("car_auth is required")
        if not self.cameras:
            problems.append("at least one camera URL is required")
        for name, _url, auth in self.cameras:
            if not auth:
                problems.append(f"{name} token is required")
        if self.target_override:
            try:
                Region.parse(self.target_override)
            except UnknownRegionError as e:
                problems.append(str(e))
        else:
            if not self.oracle_url:
                problems.append("oracle_url is required without target_override")
            elif not self.oracle_auth:
                problems.append("oracle_auth is required")
        if self.fetch_timeout >= self.tick_interval:
            problems.append("fetch_timeout must be shorter than tick_interval")
        if self.dispatch_interval < self.min_command_interval:
            problems.append("dispatch_interval below min_command_interval")
        if len(set(self.corner_ids.values()) | {self.vehicle_marker_id}) != 5:
            problems.append("corner and vehicle marker IDs must be distinct")
        if problems:
            raise ConfigError("; ".join(problems))

    def save(self, path: Path = PARAMS_FILE):
        """Persist to JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)
        logger.info(f"Parameters saved to {path}")

    @classmethod
    def load(cls, path: Path = PARAMS_FILE, environ=None) -> Parameters:
        """Load from JSON file (if present), then apply environment."""
        params = cls()
        path = Path(path)
        if path.exists():
            try:
                with open(path) as f:
                    data = json.load(f)
                params.update(**data)
                logger.info(f"Parameters loaded from {path}")
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load {path}: {e}, using defaults")
        params.apply_env(environ)
        return params

    def to_dict(self) -> dict:
        """Convert to dict for JSON API. Tokens are masked."""
        data = asdict(self)
        for key in data:
            if key.endswith("_auth") and data[key]:
                data[key] = MASK
        return data


def _coerce(expected_type, value):
    """Convert value to expected_type (ints may arrive as "3" or 3.0)."""
    if expected_type is int and isinstance(value, (str, float)):
        return int(float(value))
    return expected_type(value)
