"""
Arena UGV navigator.

Drives a sensorless vehicle to an oracle-assigned arena quadrant using
two overhead cameras and ArUco markers.

Layers:
- sensors: HTTP cameras, ArUco detector, vehicle drive endpoint, oracle
- perception: calibration, pose fusion, WorldState
- decision: target resolution, navigation state machine
- control: tick loop and command dispatcher
- web: debug interface
"""

__version__ = "0.1.0"
