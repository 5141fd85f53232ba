"""
Sensor Layer - External interfaces.

Everything the vehicle sees or does goes over HTTP:
- Camera: overhead JPEG frames
- MarkerDetector: OpenCV ArUco over a frame
- Motor: drive commands to the vehicle
- Oracle: current target region
"""

from .camera import Camera, decode_jpeg
from .detector import MarkerDetector, observations_from_corners
from .motor import Motor
from .oracle import Oracle

__all__ = [
    "Camera",
    "decode_jpeg",
    "MarkerDetector",
    "observations_from_corners",
    "Motor",
    "Oracle",
]
