"""
Marker detector - OpenCV ArUco wrapper.

Runs the ArUco detector over a frame and converts each hit into a
MarkerObservation: centre = mean of the four corners, heading = angle
from the centre to the midpoint of the top edge (corners 0 -> 1).
"""

from __future__ import annotations

import logging
import math

import cv2
import numpy as np

from ugv_nav.perception.observation import MarkerObservation

logger = logging.getLogger(__name__)


def observations_from_corners(
    corners,
    ids,
    camera: str,
) -> list[MarkerObservation]:
    """
    Convert detector output into observations.

    Args:
        corners: Sequence of (1, 4, 2) arrays, corners in TL, TR, BR, BL order
        ids: (N, 1) array of marker IDs, or None when nothing was found
        camera: Name of the source camera
    """
    if ids is None:
        return []

    observations = []
    for quad, marker_id in zip(corners, np.asarray(ids).reshape(-1)):
        pts = np.asarray(quad, dtype=np.float64).reshape(4, 2)
        cx, cy = pts.mean(axis=0)
        fx, fy = (pts[0] + pts[1]) / 2.0
        heading = math.atan2(fy - cy, fx - cx)
        observations.append(
            MarkerObservation(
                marker_id=int(marker_id),
                center=(float(cx), float(cy)),
                heading=heading,
                camera=camera,
            )
        )
    return observations


class MarkerDetector:
    """
    ArUco marker detector for one dictionary.

    Usage:
        detector = MarkerDetector("DICT_4X4_50")
        observations = detector.detect(frame, "camera1")
    """

    def __init__(self, dictionary: str = "DICT_4X4_50"):
        dict_id = getattr(cv2.aruco, dictionary, None)
        if dict_id is None:
            raise ValueError(f"Unknown ArUco dictionary: {dictionary}")
        self.dictionary_name = dictionary
        self._dictionary = cv2.aruco.getPredefinedDictionary(dict_id)

        # OpenCV >= 4.7 has ArucoDetector; older builds only the free function
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._params = cv2.aruco.DetectorParameters()
            self._detector = cv2.aruco.ArucoDetector(self._dictionary, self._params)
        else:
            self._params = cv2.aruco.DetectorParameters_create()
            self._detector = None

        logger.info(f"ArUco detector ready ({dictionary})")

    def detect(self, frame: np.ndarray, camera: str) -> list[MarkerObservation]:
        """Detect all markers in a BGR or grayscale frame."""
        gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

        if self._detector is not None:
            corners, ids, _rejected = self._detector.detectMarkers(gray)
        else:
            corners, ids, _rejected = cv2.aruco.detectMarkers(
                gray, self._dictionary, parameters=self._params
            )

        observations = observations_from_corners(corners, ids, camera)
        logger.debug(
            f"{camera}: {len(observations)} marker(s) "
            f"{sorted(o.marker_id for o in observations)}"
        )
        return observations
