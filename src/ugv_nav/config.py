"""
Configuration constants for the arena UGV navigator.

Default values only. Runtime values live in params.Parameters, which
starts from these and can be overridden by JSON file or environment.
"""

# =============================================================================
# MARKERS (ArUco DICT_4X4_50)
# =============================================================================

ARUCO_DICTIONARY = "DICT_4X4_50"

VEHICLE_MARKER_ID = 9

# Fixed arena corner markers
CORNER_TOP_LEFT_ID = 13
CORNER_TOP_RIGHT_ID = 11
CORNER_BOTTOM_LEFT_ID = 14
CORNER_BOTTOM_RIGHT_ID = 12

# Pixels ahead of the marker centre used to project heading into arena space
HEADING_PROBE_PX = 20.0

# =============================================================================
# CALIBRATION / FUSION
# =============================================================================

CALIBRATION_GRACE_TICKS = 10  # Reuse last homography this many ticks
FUSION_OUTLIER_DISTANCE = 0.0  # Arena units, 0 = plain averaging

# =============================================================================
# NAVIGATION (arena-normalised units, radians)
# =============================================================================

ANGLE_OK = 0.50  # Heading error below which we drive instead of spinning
TURN_POLARITY = -1.0  # Flip if the car turns the wrong way when error > 0
ARRIVE_DISTANCE = 0.08
GOAL_TOLERANCE = 0.05  # Goal shift that wakes the vehicle from ARRIVED
SEARCH_AFTER_MISSES = 3

TURN_SPEED = 0.2
SEARCH_SPEED = 0.45
SPEED_GAIN = 2.0  # speed per arena unit of distance
MIN_DRIVE_SPEED = 0.45  # Below this the motors stall
MAX_DRIVE_SPEED = 0.85

# =============================================================================
# TIMING (seconds)
# =============================================================================

TICK_INTERVAL = 0.1
FETCH_TIMEOUT = 0.08
ORACLE_INTERVAL = 2.0
ORACLE_TIMEOUT = 1.0
DISPATCH_INTERVAL = 0.1
MIN_COMMAND_INTERVAL = 0.1  # Actuator rejects faster commands
COMMAND_TIMEOUT = 0.5

# =============================================================================
# ENVIRONMENT / WEB
# =============================================================================

ENV_PREFIX = "UGV_"

WEB_HOST = "0.0.0.0"
WEB_PORT = 8080
