"""
Arena calibration - pixel to arena-normalised homography per camera.

Each camera sees the four fixed corner markers from its own viewpoint,
so every camera gets its own transform. A transform is recomputed from
scratch whenever all four corners are visible in that camera's frame.
When corners are missing, the last transform is reused unchanged for a
bounded number of ticks and then dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from .observation import ArenaCorner, MarkerObservation, MarkerRoles

logger = logging.getLogger(__name__)

_MIN_DETERMINANT = 1e-12


@dataclass(frozen=True)
class ArenaCalibration:
    """Homography from one camera's pixels to arena coordinates."""

    camera: str
    homography: np.ndarray  # 3x3
    age: int = 0  # Ticks since all four corners were last seen

    def to_arena(self, point: tuple[float, float]) -> tuple[float, float]:
        """Map a pixel (x, y) into arena-normalised (x, y)."""
        src = np.array([[point]], dtype=np.float64)
        dst = cv2.perspectiveTransform(src, self.homography)
        return float(dst[0, 0, 0]), float(dst[0, 0, 1])

    def aged(self) -> ArenaCalibration:
        return ArenaCalibration(self.camera, self.homography, self.age + 1)


def compute_calibration(
    camera: str,
    observations: list[MarkerObservation],
    roles: MarkerRoles,
) -> ArenaCalibration | None:
    """
    Fit a homography from the four corner markers in one frame.

    Returns:
        ArenaCalibration, or None unless all four corners are present
        and form a non-degenerate quadrilateral.
    """
    found: dict[ArenaCorner, tuple[float, float]] = {}
    for obs in observations:
        corner = roles.corner_of(obs.marker_id)
        if corner is not None:
            found[corner] = obs.center

    if len(found) < len(ArenaCorner):
        return None

    order = list(ArenaCorner)
    src = np.array([found[c] for c in order], dtype=np.float32)
    dst = np.array([c.point for c in order], dtype=np.float32)

    try:
        homography = cv2.getPerspectiveTransform(src, dst)
    except cv2.error as e:
        logger.warning(f"{camera}: homography failed: {e}")
        return None
    if homography is None or abs(np.linalg.det(homography)) < _MIN_DETERMINANT:
        logger.warning(f"{camera}: degenerate corner layout, calibration skipped")
        return None

    return ArenaCalibration(camera=camera, homography=homography)


class CalibrationTracker:
    """
    Holds the current calibration of every camera across ticks.

    Usage:
        tracker = CalibrationTracker(roles, grace_ticks=10)

        # Once per camera per tick (empty list if the frame failed):
        calib = tracker.update("camera1", observations)
    """

    def __init__(self, roles: MarkerRoles, grace_ticks: int = 10):
        self.roles = roles
        self.grace_ticks = grace_ticks
        self._calibrations: dict[str, ArenaCalibration] = {}

    def update(
        self,
        camera: str,
        observations: list[MarkerObservation],
    ) -> ArenaCalibration | None:
        fresh = compute_calibration(camera, observations, self.roles)
        if fresh is not None:
            if camera not in self._calibrations:
                logger.info(f"{camera}: arena calibrated")
            self._calibrations[camera] = fresh
            return fresh

        previous = self._calibrations.get(camera)
        if previous is None:
            return None

        if previous.age >= self.grace_ticks:
            logger.warning(
                f"{camera}: corners missing for {previous.age + 1} ticks, "
                f"calibration dropped"
            )
            del self._calibrations[camera]
            return None

        reused = previous.aged()
        self._calibrations[camera] = reused
        logger.debug(f"{camera}: reusing calibration (age {reused.age})")
        return reused

    def get(self, camera: str) -> ArenaCalibration | None:
        return self._calibrations.get(camera)

    @property
    def calibrations(self) -> dict[str, ArenaCalibration]:
        return dict(self._calibrations)

    def reset(self):
        """Forget all calibrations."""
        self._calibrations.clear()
