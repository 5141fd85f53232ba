"""
Decision Layer - What to do.

Contains:
- TargetResolver: oracle answer -> goal point
- StateMachine: SEARCHING / ALIGNING / DRIVING / ARRIVED control core
"""

from .target import Goal, Region, TargetResolver, UnknownRegionError, parse_oracle_body
from .state_machine import (
    DriveCommand,
    NavigationConfig,
    NavState,
    StateMachine,
    Transition,
    heading_error,
    transition,
)

__all__ = [
    "Goal",
    "Region",
    "TargetResolver",
    "UnknownRegionError",
    "parse_oracle_body",
    "DriveCommand",
    "NavigationConfig",
    "NavState",
    "StateMachine",
    "Transition",
    "heading_error",
    "transition",
]
