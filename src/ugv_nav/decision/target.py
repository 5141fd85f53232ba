"""
Target resolution - oracle region name -> arena goal point.

The oracle may answer with a JSON string, a JSON object carrying a
"quadrant" or "target" field, or plain text. All are accepted. Unknown
names never clear the current goal.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class UnknownRegionError(ValueError):
    """Oracle answer does not name a known region."""


class Region(Enum):
    """Arena quadrants (arena y grows downwards, like the image)."""

    TOP_LEFT = "TOP_LEFT"
    TOP_RIGHT = "TOP_RIGHT"
    BOTTOM_LEFT = "BOTTOM_LEFT"
    BOTTOM_RIGHT = "BOTTOM_RIGHT"

    @property
    def point(self) -> tuple[float, float]:
        """Quadrant centroid in arena-normalised coordinates."""
        return _CENTROIDS[self]

    @classmethod
    def from_position(cls, x: float, y: float) -> Region:
        """Quadrant containing an arena position."""
        right = x > 0.5
        bottom = y > 0.5
        if bottom:
            return cls.BOTTOM_RIGHT if right else cls.BOTTOM_LEFT
        return cls.TOP_RIGHT if right else cls.TOP_LEFT

    @classmethod
    def parse(cls, text: str) -> Region:
        """Parse a region alias such as "TL", "Q2", "3" or "13"."""
        key = str(text).strip().upper()
        try:
            return _ALIASES[key]
        except KeyError:
            raise UnknownRegionError(f"unknown region: {text!r}") from None


_CENTROIDS = {
    Region.TOP_LEFT: (0.25, 0.25),
    Region.TOP_RIGHT: (0.75, 0.25),
    Region.BOTTOM_LEFT: (0.25, 0.75),
    Region.BOTTOM_RIGHT: (0.75, 0.75),
}

# Corner marker ID, short name, quadrant number and full name all work
_ALIASES = {}
for _region, _names in {
    Region.TOP_LEFT: ("13", "TL", "Q1", "1", "TOP_LEFT"),
    Region.TOP_RIGHT: ("11", "TR", "Q2", "2", "TOP_RIGHT"),
    Region.BOTTOM_LEFT: ("14", "BL", "Q3", "3", "BOTTOM_LEFT"),
    Region.BOTTOM_RIGHT: ("12", "BR", "Q4", "4", "BOTTOM_RIGHT"),
}.items():
    for _name in _names:
        _ALIASES[_name] = _region


@dataclass(frozen=True)
class Goal:
    """Navigation goal: a region and its representative point."""

    region: Region
    point: tuple[float, float]

    @classmethod
    def for_region(cls, region: Region) -> Goal:
        return cls(region=region, point=region.point)


def parse_oracle_body(body: str) -> Region:
    """
    Extract the region from an oracle response body.

    Raises:
        UnknownRegionError: if no known region can be found.
    """
    raw = body.strip()
    try:
        value = json.loads(body)
    except ValueError:
        value = None

    if isinstance(value, dict):
        value = value.get("quadrant", value.get("target"))
    if isinstance(value, str):
        raw = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        raw = _integral_text(value)

    return Region.parse(raw)


def _integral_text(number) -> str:
    """Quadrant numbers must be whole; 1.5, NaN and Infinity name nothing."""
    if isinstance(number, float) and not (math.isfinite(number) and number.is_integer()):
        raise UnknownRegionError(f"not a region number: {number!r}")
    return str(int(number))


class TargetResolver:
    """
    Keeps the current goal, updating it from oracle answers.

    Usage:
        resolver = TargetResolver()
        goal = resolver.resolve_body(response_text)  # previous goal on error

        # Pin the goal without the oracle:
        resolver = TargetResolver(override="BR")
    """

    def __init__(self, override: str = ""):
        self._goal: Goal | None = None
        self.override: Region | None = None
        if override:
            self.set_override(override)

    @property
    def goal(self) -> Goal | None:
        return self._goal

    def set_override(self, text: str) -> Goal:
        """Pin the goal to a region. Raises UnknownRegionError."""
        region = Region.parse(text)
        self.override = region
        self._set(Goal.for_region(region), source="override")
        return self._goal

    def clear_override(self):
        self.override = None

    def resolve_body(self, body: str) -> Goal | None:
        """Update the goal from an oracle body; keep the old goal on error."""
        if self.override is not None:
            return self._goal
        try:
            region = parse_oracle_body(body)
        except UnknownRegionError as e:
            logger.error(f"Oracle answer rejected ({e}), keeping {self._describe()}")
            return self._goal
        self._set(Goal.for_region(region), source="oracle")
        return self._goal

    def _set(self, goal: Goal, source: str):
        if goal != self._goal:
            logger.info(f"New target {goal.region.name} at {goal.point} ({source})")
        else:
            logger.debug(f"Target still {goal.region.name}")
        self._goal = goal

    def _describe(self) -> str:
        return self._goal.region.name if self._goal else "no goal"
