"""
Pytest configuration and shared fixtures
"""

import logging
import sys
from pathlib import Path

import pytest

# Add src to path so tests run without an install
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from ugv_nav.params import Parameters  # noqa: E402
from ugv_nav.perception import MarkerObservation, MarkerRoles  # noqa: E402

# Configure logging for tests
logging.basicConfig(
    level=logging.WARNING,  # Only warnings and errors in tests
    format="%(levelname)s: %(message)s",
)

VEHICLE_ID = 9
CORNER_IDS = {"top_left": 13, "top_right": 11, "bottom_left": 14, "bottom_right": 12}


class ArenaScene:
    """
    Synthetic marker observations for an axis-aligned square arena.

    Pixel = origin + arena * size, so arena (0.5, 0.5) is the pixel
    centre of the square.
    """

    def __init__(self, origin=(100.0, 100.0), size=200.0):
        self.origin = origin
        self.size = size

    def pixel(self, x, y):
        return (self.origin[0] + x * self.size, self.origin[1] + y * self.size)

    def corners(self, camera, skip=()):
        """Four corner markers, minus any corner names in skip."""
        placement = {
            "top_left": (0.0, 0.0),
            "top_right": (1.0, 0.0),
            "bottom_left": (0.0, 1.0),
            "bottom_right": (1.0, 1.0),
        }
        return [
            MarkerObservation(CORNER_IDS[name], self.pixel(*xy), 0.0, camera)
            for name, xy in placement.items()
            if name not in skip
        ]

    def vehicle(self, camera, x, y, heading=0.0):
        """Vehicle marker at arena (x, y), heading in image axes."""
        return MarkerObservation(VEHICLE_ID, self.pixel(x, y), heading, camera)

    def frame(self, camera, x=None, y=None, heading=0.0, skip=()):
        """Corners plus (optionally) the vehicle."""
        obs = self.corners(camera, skip)
        if x is not None:
            obs.append(self.vehicle(camera, x, y, heading))
        return obs


@pytest.fixture
def roles():
    """Default marker roles"""
    return MarkerRoles.from_params(Parameters())


@pytest.fixture
def params():
    """Complete, valid parameters with two cameras"""
    p = Parameters()
    p.update(
        car_url="http://car.local:5000",
        car_auth="car-token",
        cam1_url="http://cam1.local/frame",
        cam1_auth="cam1-token",
        cam2_url="http://cam2.local/frame",
        cam2_auth="cam2-token",
        oracle_url="http://oracle.local/quadrant",
        oracle_auth="oracle-token",
    )
    return p


@pytest.fixture
def scene():
    """Square arena at pixels (100, 100)-(300, 300)"""
    return ArenaScene()
