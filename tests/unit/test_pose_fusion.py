"""
Unit tests for pose projection and multi-camera fusion
"""

import math

import pytest

from ugv_nav.perception import (
    CalibrationTracker,
    Pose,
    PoseFusion,
    circular_mean,
    fuse_poses,
    wrap_angle,
)


def calibrate(roles, scene, *cameras):
    tracker = CalibrationTracker(roles)
    return {cam: tracker.update(cam, scene.corners(cam)) for cam in cameras}


class TestAngles:
    """Test angle helpers"""

    def test_circular_mean_across_seam(self):
        """0.1 and 2pi-0.1 average to 0, not pi"""
        mean = circular_mean([0.1, 2 * math.pi - 0.1])
        assert mean == pytest.approx(0.0, abs=1e-9)

    def test_circular_mean_near_pi(self):
        mean = circular_mean([math.pi - 0.1, -math.pi + 0.1])
        assert abs(mean) == pytest.approx(math.pi, abs=1e-9)

    def test_circular_mean_plain(self):
        assert circular_mean([0.2, 0.4]) == pytest.approx(0.3, abs=1e-9)

    @pytest.mark.parametrize(
        "angle,expected",
        [
            (0.0, 0.0),
            (math.pi, math.pi),
            (-math.pi, math.pi),
            (3 * math.pi, math.pi),
            (2 * math.pi + 0.5, 0.5),
            (-2 * math.pi - 0.5, -0.5),
            (1.5 * math.pi, -0.5 * math.pi),
        ],
    )
    def test_wrap_angle_range(self, angle, expected):
        """Wrapped angles lie in (-pi, pi]"""
        wrapped = wrap_angle(angle)
        assert -math.pi < wrapped <= math.pi
        assert wrapped == pytest.approx(expected, abs=1e-9)


class TestFusePoses:
    """Test the combining step"""

    def test_none(self):
        assert fuse_poses([]) is None

    def test_single_passthrough(self):
        pose = Pose(0.3, 0.4, 1.0, cameras=("cam1",))
        assert fuse_poses([pose]) is pose

    def test_average(self):
        a = Pose(0.2, 0.4, 0.1, cameras=("cam1",))
        b = Pose(0.4, 0.6, 2 * math.pi - 0.1, cameras=("cam2",))
        fused = fuse_poses([a, b])
        assert fused.x == pytest.approx(0.3)
        assert fused.y == pytest.approx(0.5)
        assert fused.heading == pytest.approx(0.0, abs=1e-9)
        assert fused.cameras == ("cam1", "cam2")


class TestPoseFusion:
    """Test per-camera projection and fusion policy"""

    def test_vehicle_at_midpoint(self, roles, scene):
        """Marker at the pixel midpoint of the corners resolves to (0.5, 0.5)"""
        calibs = calibrate(roles, scene, "cam1")
        fusion = PoseFusion(roles)
        pose = fusion.update({"cam1": [scene.vehicle("cam1", 0.5, 0.5)]}, calibs)
        assert pose.x == pytest.approx(0.5, abs=1e-6)
        assert pose.y == pytest.approx(0.5, abs=1e-6)

    @pytest.mark.parametrize("heading", [0.0, math.pi / 2, -math.pi / 2, 3.0, -2.5])
    def test_heading_preserved_by_square_view(self, roles, scene, heading):
        """An axis-aligned square view keeps the pixel heading"""
        calibs = calibrate(roles, scene, "cam1")
        fusion = PoseFusion(roles)
        pose = fusion.update({"cam1": [scene.vehicle("cam1", 0.3, 0.6, heading)]}, calibs)
        assert wrap_angle(pose.heading - heading) == pytest.approx(0.0, abs=1e-6)

    def test_no_calibration_no_pose(self, roles, scene):
        """A vehicle sighting without calibration is not a pose"""
        fusion = PoseFusion(roles)
        pose = fusion.update({"cam1": [scene.vehicle("cam1", 0.5, 0.5)]}, {})
        assert pose is None
        assert fusion.last_pose is None

    def test_calibrated_but_unseen(self, roles, scene):
        calibs = calibrate(roles, scene, "cam1", "cam2")
        fusion = PoseFusion(roles)
        observations = {"cam1": scene.corners("cam1"), "cam2": scene.corners("cam2")}
        assert fusion.update(observations, calibs) is None

    def test_never_returns_stale_pose(self, roles, scene):
        """A previous pose is not returned when this tick has none"""
        calibs = calibrate(roles, scene, "cam1")
        fusion = PoseFusion(roles)
        assert fusion.update({"cam1": [scene.vehicle("cam1", 0.2, 0.2)]}, calibs) is not None
        assert fusion.update({"cam1": []}, calibs) is None
        assert fusion.last_pose.position == pytest.approx((0.2, 0.2), abs=1e-6)

    def test_only_calibrated_camera_counts(self, roles, scene):
        calibs = calibrate(roles, scene, "cam1")
        fusion = PoseFusion(roles)
        pose = fusion.update(
            {
                "cam1": [scene.vehicle("cam1", 0.2, 0.2)],
                "cam2": [scene.vehicle("cam2", 0.8, 0.8)],
            },
            calibs,
        )
        assert pose.cameras == ("cam1",)
        assert pose.position == pytest.approx((0.2, 0.2), abs=1e-6)

    def test_two_cameras_averaged(self, roles, scene):
        calibs = calibrate(roles, scene, "cam1", "cam2")
        fusion = PoseFusion(roles)
        pose = fusion.update(
            {
                "cam1": [scene.vehicle("cam1", 0.40, 0.50, 0.1)],
                "cam2": [scene.vehicle("cam2", 0.44, 0.54, 2 * math.pi - 0.1)],
            },
            calibs,
        )
        assert pose.position == pytest.approx((0.42, 0.52), abs=1e-6)
        assert pose.heading == pytest.approx(0.0, abs=1e-6)
        assert set(pose.cameras) == {"cam1", "cam2"}

    def test_outlier_rejected_with_history(self, roles, scene):
        """With outlier rejection, the camera nearest the last pose wins"""
        calibs = calibrate(roles, scene, "cam1", "cam2")
        fusion = PoseFusion(roles, outlier_distance=0.2)

        fusion.update({"cam1": [scene.vehicle("cam1", 0.3, 0.3)]}, calibs)
        pose = fusion.update(
            {
                "cam1": [scene.vehicle("cam1", 0.32, 0.3)],
                "cam2": [scene.vehicle("cam2", 0.9, 0.9)],
            },
            calibs,
        )
        assert pose.cameras == ("cam1",)
        assert pose.x == pytest.approx(0.32, abs=1e-6)

    def test_outlier_without_history_averages(self, roles, scene):
        calibs = calibrate(roles, scene, "cam1", "cam2")
        fusion = PoseFusion(roles, outlier_distance=0.2)
        pose = fusion.update(
            {
                "cam1": [scene.vehicle("cam1", 0.2, 0.2)],
                "cam2": [scene.vehicle("cam2", 0.8, 0.8)],
            },
            calibs,
        )
        assert pose.position == pytest.approx((0.5, 0.5), abs=1e-6)

    def test_outlier_disabled_by_default(self, roles, scene):
        calibs = calibrate(roles, scene, "cam1", "cam2")
        fusion = PoseFusion(roles)
        fusion.update({"cam1": [scene.vehicle("cam1", 0.2, 0.2)]}, calibs)
        pose = fusion.update(
            {
                "cam1": [scene.vehicle("cam1", 0.2, 0.2)],
                "cam2": [scene.vehicle("cam2", 0.8, 0.8)],
            },
            calibs,
        )
        assert pose.position == pytest.approx((0.5, 0.5), abs=1e-6)
