"""
World state - Per-tick perception snapshot.

WorldState is what the control loop knows after one tick of perception:
which cameras delivered a frame, which are calibrated, and where the
vehicle is (if anywhere). The decision layer reads it; nothing mutates it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .pose_fusion import Pose


@dataclass(frozen=True)
class WorldState:
    """Current instant perception."""

    timestamp: float
    tick: int

    # Vehicle pose, None when no calibrated camera saw the vehicle
    pose: Pose | None = None

    # Camera name -> frame fetched this tick
    frames: dict[str, bool] = field(default_factory=dict)

    # Camera name -> calibration age in ticks (absent = uncalibrated)
    calibration_ages: dict[str, int] = field(default_factory=dict)

    # Camera name -> marker IDs detected
    markers: dict[str, list[int]] = field(default_factory=dict)

    @property
    def has_pose(self) -> bool:
        return self.pose is not None

    @property
    def calibrated_cameras(self) -> list[str]:
        return sorted(self.calibration_ages)

    def to_dict(self) -> dict:
        """JSON-friendly form for the web API."""
        pose = None
        if self.pose is not None:
            pose = {
                "x": round(self.pose.x, 4),
                "y": round(self.pose.y, 4),
                "heading": round(self.pose.heading, 4),
                "cameras": list(self.pose.cameras),
            }
        return {
            "timestamp": self.timestamp,
            "tick": self.tick,
            "pose": pose,
            "frames": dict(self.frames),
            "calibration_ages": dict(self.calibration_ages),
            "markers": {k: list(v) for k, v in self.markers.items()},
        }
