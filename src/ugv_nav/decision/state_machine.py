"""
State machine for arena navigation.

States:
- SEARCHING: vehicle marker lost, spin in place until it is seen again
- ALIGNING: spin towards the goal until the heading error is small
- DRIVING: drive straight, speed scaled by distance to goal
- ARRIVED: hold still until the goal moves

The transitions are a plain function of (state, pose, goal), one handler
per state, so every transition can be tested without any I/O. The
StateMachine class wraps it with the consecutive-miss counter, which
overrides everything: enough ticks without a pose always means SEARCHING.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto

from ugv_nav.perception.pose_fusion import Pose, wrap_angle
from .target import Goal

logger = logging.getLogger(__name__)


class NavState(Enum):
    """Navigation state enumeration."""

    SEARCHING = auto()
    ALIGNING = auto()
    DRIVING = auto()
    ARRIVED = auto()


@dataclass(frozen=True)
class DriveCommand:
    """
    Actuator command.

    flip=True rotates in place (wheels in opposite directions) at |speed|,
    sign picks the direction; flip=False drives straight at speed.
    """

    speed: float = 0.0
    flip: bool = False

    def __post_init__(self):
        if not -1.0 <= self.speed <= 1.0:
            raise ValueError(f"speed out of range: {self.speed}")

    @classmethod
    def stop(cls) -> DriveCommand:
        return cls(0.0, False)

    @classmethod
    def spin(cls, speed: float) -> DriveCommand:
        return cls(_clamp(speed, -1.0, 1.0), True)

    @classmethod
    def forward(cls, speed: float) -> DriveCommand:
        return cls(_clamp(speed, -1.0, 1.0), False)

    @property
    def is_stop(self) -> bool:
        return self.speed == 0.0 and not self.flip

    def to_json(self) -> dict:
        return {"speed": float(self.speed), "flip": bool(self.flip)}


@dataclass(frozen=True)
class NavigationConfig:
    """Thresholds and speeds used by the transition function."""

    angle_ok: float = 0.5
    turn_polarity: float = -1.0
    arrive_distance: float = 0.08
    goal_tolerance: float = 0.05
    search_after_misses: int = 3
    turn_speed: float = 0.2
    search_speed: float = 0.45
    speed_gain: float = 2.0
    min_drive_speed: float = 0.45
    max_drive_speed: float = 0.85

    @classmethod
    def from_params(cls, params) -> NavigationConfig:
        return cls(
            angle_ok=params.angle_ok,
            turn_polarity=params.turn_polarity,
            arrive_distance=params.arrive_distance,
            goal_tolerance=params.goal_tolerance,
            search_after_misses=params.search_after_misses,
            turn_speed=params.turn_speed,
            search_speed=params.search_speed,
            speed_gain=params.speed_gain,
            min_drive_speed=params.min_drive_speed,
            max_drive_speed=params.max_drive_speed,
        )


@dataclass(frozen=True)
class Transition:
    """Result of one evaluation: next state and the command to send."""

    state: NavState
    command: DriveCommand
    heading_error: float | None = None
    distance: float | None = None


def heading_error(pose: Pose, point: tuple[float, float]) -> float:
    """Signed angle from the vehicle heading to the bearing of point."""
    bearing = math.atan2(point[1] - pose.y, point[0] - pose.x)
    return wrap_angle(bearing - pose.heading)


def drive_speed(distance: float, cfg: NavigationConfig) -> float:
    """Forward speed, monotonic in distance, never below the stall floor."""
    speed = _clamp(distance * cfg.speed_gain, cfg.min_drive_speed, cfg.max_drive_speed)
    return min(speed, 1.0)


def search_command(cfg: NavigationConfig) -> DriveCommand:
    return DriveCommand.spin(cfg.search_speed * cfg.turn_polarity)


def align_command(error: float, cfg: NavigationConfig) -> DriveCommand:
    return DriveCommand.spin(math.copysign(1.0, error) * cfg.turn_polarity * cfg.turn_speed)


def transition(
    state: NavState,
    pose: Pose,
    goal: Goal,
    cfg: NavigationConfig,
    arrived_point: tuple[float, float] | None = None,
) -> Transition:
    """
    Evaluate one tick with a known pose and goal.

    Args:
        state: Current state
        pose: Fused vehicle pose this tick
        goal: Current goal
        cfg: Thresholds and speeds
        arrived_point: Goal point at the time ARRIVED was entered

    Returns:
        Transition with the next state and its command
    """
    return _HANDLERS[state](pose, goal, cfg, arrived_point)


def _searching(pose, goal, cfg, arrived_point) -> Transition:
    # Vehicle visible again
    return _aligning(pose, goal, cfg, arrived_point)


def _aligning(pose, goal, cfg, arrived_point) -> Transition:
    distance = pose.distance_to(goal.point)
    if distance < cfg.arrive_distance:
        return Transition(NavState.ARRIVED, DriveCommand.stop(), None, distance)

    error = heading_error(pose, goal.point)
    if abs(error) > cfg.angle_ok:
        return Transition(NavState.ALIGNING, align_command(error, cfg), error, distance)

    return _driving(pose, goal, cfg, arrived_point)


def _driving(pose, goal, cfg, arrived_point) -> Transition:
    distance = pose.distance_to(goal.point)
    if distance < cfg.arrive_distance:
        return Transition(NavState.ARRIVED, DriveCommand.stop(), None, distance)

    error = heading_error(pose, goal.point)
    if abs(error) > cfg.angle_ok:
        return Transition(NavState.ALIGNING, align_command(error, cfg), error, distance)

    command = DriveCommand.forward(drive_speed(distance, cfg))
    return Transition(NavState.DRIVING, command, error, distance)


def _arrived(pose, goal, cfg, arrived_point) -> Transition:
    if arrived_point is not None:
        moved = math.hypot(
            goal.point[0] - arrived_point[0], goal.point[1] - arrived_point[1]
        )
        if moved > cfg.goal_tolerance:
            return _aligning(pose, goal, cfg, arrived_point)
    return Transition(NavState.ARRIVED, DriveCommand.stop(), None, pose.distance_to(goal.point))


_HANDLERS = {
    NavState.SEARCHING: _searching,
    NavState.ALIGNING: _aligning,
    NavState.DRIVING: _driving,
    NavState.ARRIVED: _arrived,
}


class StateMachine:
    """
    Navigation state machine with pose-loss recovery.

    Usage:
        sm = StateMachine(params=params)

        # In control loop:
        command = sm.decide(pose, goal)   # pose may be None

        # Without Parameters (tests):
        sm = StateMachine(config=NavigationConfig(angle_ok=0.3))
    """

    def __init__(self, params=None, config: NavigationConfig = None):
        self.params = params  # Shared Parameters for runtime tuning
        self._config = config or NavigationConfig()

        self.state = NavState.SEARCHING
        self.misses = 0  # Consecutive ticks without a pose
        self.last: Transition | None = None
        self._arrived_point: tuple[float, float] | None = None

    @property
    def config(self) -> NavigationConfig:
        # Sync from runtime params so web changes apply next tick
        if self.params is not None:
            return NavigationConfig.from_params(self.params)
        return self._config

    def reset(self):
        self.state = NavState.SEARCHING
        self.misses = 0
        self.last = None
        self._arrived_point = None

    def decide(self, pose: Pose | None, goal: Goal | None) -> DriveCommand:
        """
        Decide the drive command for this tick.

        Args:
            pose: Fused pose, or None if the vehicle was not seen
            goal: Current goal, or None before the first oracle answer

        Returns:
            DriveCommand to dispatch
        """
        cfg = self.config

        if pose is None:
            self.misses += 1
            if self.misses >= cfg.search_after_misses:
                self._enter(NavState.SEARCHING, f"vehicle lost for {self.misses} ticks")
            else:
                logger.debug(f"Vehicle not seen (miss #{self.misses})")
            self.last = None
            if self.state == NavState.SEARCHING:
                return search_command(cfg)
            return DriveCommand.stop()

        self.misses = 0

        if goal is None:
            logger.debug("Waiting for first target")
            self.last = None
            return DriveCommand.stop()

        result = transition(self.state, pose, goal, cfg, self._arrived_point)
        self.last = result
        self._enter(result.state, self._reason(result))
        if result.state == NavState.ARRIVED:
            self._arrived_point = goal.point

        logger.debug(
            f"{result.state.name}: pos=({pose.x:.2f},{pose.y:.2f}) "
            f"hdg={pose.heading:.2f}rad speed={result.command.speed:.2f} "
            f"flip={result.command.flip}"
        )
        return result.command

    def _enter(self, state: NavState, reason: str = ""):
        if state != self.state:
            logger.info(f"Transition: {self.state.name} -> {state.name} ({reason})")
            self.state = state

    @staticmethod
    def _reason(result: Transition) -> str:
        parts = []
        if result.distance is not None:
            parts.append(f"dist={result.distance:.3f}")
        if result.heading_error is not None:
            parts.append(f"err={result.heading_error:.2f}rad")
        return " ".join(parts)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
