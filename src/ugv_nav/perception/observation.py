"""
Marker observations - typed records of one detector hit.

MarkerRoles maps marker IDs to what they mean in the arena (one of the
four fixed corners, or the vehicle) so calibration and fusion never
test raw IDs themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ArenaCorner(Enum):
    """Arena corner and its arena-normalised coordinate."""

    TOP_LEFT = (0.0, 0.0)
    TOP_RIGHT = (1.0, 0.0)
    BOTTOM_LEFT = (0.0, 1.0)
    BOTTOM_RIGHT = (1.0, 1.0)

    @property
    def point(self) -> tuple[float, float]:
        return self.value


@dataclass(frozen=True)
class MarkerObservation:
    """One marker seen by one camera in one frame."""

    marker_id: int
    center: tuple[float, float]  # Pixel (x, y)
    heading: float  # Radians, centre -> top-edge midpoint, image axes
    camera: str


@dataclass(frozen=True)
class MarkerRoles:
    """Lookup table from marker ID to arena role."""

    vehicle_id: int
    corners: dict[int, ArenaCorner]

    @classmethod
    def from_params(cls, params) -> MarkerRoles:
        return cls(
            vehicle_id=params.vehicle_marker_id,
            corners={
                params.corner_top_left_id: ArenaCorner.TOP_LEFT,
                params.corner_top_right_id: ArenaCorner.TOP_RIGHT,
                params.corner_bottom_left_id: ArenaCorner.BOTTOM_LEFT,
                params.corner_bottom_right_id: ArenaCorner.BOTTOM_RIGHT,
            },
        )

    def corner_of(self, marker_id: int) -> ArenaCorner | None:
        return self.corners.get(marker_id)

    def is_vehicle(self, marker_id: int) -> bool:
        return marker_id == self.vehicle_id
