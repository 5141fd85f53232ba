"""
Perception Layer - World understanding.

Turns marker detections into an arena-relative vehicle pose:
- MarkerObservation / MarkerRoles: typed detector output and ID roles
- CalibrationTracker: per-camera pixel -> arena homography
- PoseFusion: per-camera projection and multi-camera fusion
- WorldState: per-tick snapshot
"""

from .observation import ArenaCorner, MarkerObservation, MarkerRoles
from .calibration import ArenaCalibration, CalibrationTracker, compute_calibration
from .pose_fusion import Pose, PoseFusion, circular_mean, fuse_poses, wrap_angle
from .world_state import WorldState

__all__ = [
    "ArenaCorner",
    "MarkerObservation",
    "MarkerRoles",
    "ArenaCalibration",
    "CalibrationTracker",
    "compute_calibration",
    "Pose",
    "PoseFusion",
    "circular_mean",
    "fuse_poses",
    "wrap_angle",
    "WorldState",
]
