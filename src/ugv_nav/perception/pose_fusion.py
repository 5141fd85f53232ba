"""
Pose fusion - Combines per-camera vehicle sightings into one pose.

The fusion process:
1. For each camera with a valid calibration that sees the vehicle marker,
   project the marker centre and a probe point ahead of it into arena space
2. One estimate: use it as is
3. Two estimates: mean position, circular mean heading
4. No estimate: no pose this tick (never a stale one)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from .calibration import ArenaCalibration
from .observation import MarkerObservation, MarkerRoles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pose:
    """Vehicle pose in arena-normalised coordinates."""

    x: float
    y: float
    heading: float  # Radians in (-pi, pi]
    age: int = 0  # Ticks since the pose was measured
    cameras: tuple[str, ...] = ()

    @property
    def position(self) -> tuple[float, float]:
        return self.x, self.y

    def distance_to(self, point: tuple[float, float]) -> float:
        return math.hypot(point[0] - self.x, point[1] - self.y)


def wrap_angle(angle: float) -> float:
    """Wrap an angle to (-pi, pi]."""
    wrapped = math.remainder(angle, 2.0 * math.pi)
    if wrapped <= -math.pi:
        wrapped += 2.0 * math.pi
    return wrapped


def circular_mean(angles: list[float]) -> float:
    """Mean direction of angles, safe across the +-pi seam."""
    s = sum(math.sin(a) for a in angles)
    c = sum(math.cos(a) for a in angles)
    return wrap_angle(math.atan2(s, c))


def project_observation(
    obs: MarkerObservation,
    calibration: ArenaCalibration,
    probe_px: float = 20.0,
) -> Pose:
    """Project a pixel-space marker sighting into an arena pose."""
    x, y = calibration.to_arena(obs.center)
    probe = (
        obs.center[0] + probe_px * math.cos(obs.heading),
        obs.center[1] + probe_px * math.sin(obs.heading),
    )
    px, py = calibration.to_arena(probe)
    heading = wrap_angle(math.atan2(py - y, px - x))
    return Pose(x=x, y=y, heading=heading, cameras=(obs.camera,))


def fuse_poses(poses: list[Pose]) -> Pose | None:
    """Average positions and circularly average headings."""
    if not poses:
        return None
    if len(poses) == 1:
        return poses[0]
    cameras: tuple[str, ...] = ()
    for p in poses:
        cameras += p.cameras
    return Pose(
        x=sum(p.x for p in poses) / len(poses),
        y=sum(p.y for p in poses) / len(poses),
        heading=circular_mean([p.heading for p in poses]),
        cameras=cameras,
    )


class PoseFusion:
    """
    Turns one tick of observations and calibrations into a vehicle pose.

    Usage:
        fusion = PoseFusion(roles)

        # In control loop:
        pose = fusion.update(observations_by_camera, calibrations)
        if pose is None:
            ...  # vehicle not seen this tick

        # Reject a camera that disagrees by more than 0.2 arena units:
        fusion = PoseFusion(roles, outlier_distance=0.2)
    """

    def __init__(
        self,
        roles: MarkerRoles,
        probe_px: float = 20.0,
        outlier_distance: float = 0.0,
    ):
        self.roles = roles
        self.probe_px = probe_px
        self.outlier_distance = outlier_distance

        self._last_pose: Pose | None = None

    @property
    def last_pose(self) -> Pose | None:
        """Most recent fused pose, kept across ticks without a sighting."""
        return self._last_pose

    def estimates(
        self,
        observations: dict[str, list[MarkerObservation]],
        calibrations: dict[str, ArenaCalibration],
    ) -> list[Pose]:
        """Per-camera vehicle poses for this tick."""
        poses = []
        for camera, obs_list in observations.items():
            calibration = calibrations.get(camera)
            if calibration is None:
                continue
            sightings = [o for o in obs_list if self.roles.is_vehicle(o.marker_id)]
            if not sightings:
                continue
            if len(sightings) > 1:
                logger.debug(f"{camera}: {len(sightings)} vehicle markers, using first")
            poses.append(project_observation(sightings[0], calibration, self.probe_px))
        return poses

    def update(
        self,
        observations: dict[str, list[MarkerObservation]],
        calibrations: dict[str, ArenaCalibration],
    ) -> Pose | None:
        poses = self.estimates(observations, calibrations)
        poses = self._reject_outliers(poses)
        pose = fuse_poses(poses)

        if pose is not None:
            self._last_pose = pose
        return pose

    def _reject_outliers(self, poses: list[Pose]) -> list[Pose]:
        """Keep the estimate nearest the last pose when two disagree."""
        if self.outlier_distance <= 0 or len(poses) < 2:
            return poses

        spread = max(
            a.distance_to(b.position) for a in poses for b in poses
        )
        if spread <= self.outlier_distance:
            return poses

        if self._last_pose is None:
            logger.debug(f"Cameras disagree by {spread:.2f}, no history, averaging")
            return poses

        best = min(poses, key=lambda p: p.distance_to(self._last_pose.position))
        logger.info(
            f"Cameras disagree by {spread:.2f}, keeping {best.cameras[0]}"
        )
        return [best]
