"""
Control Layer - Execution.

Main control loop that coordinates all other layers, and the
dispatcher that paces commands to the vehicle.
"""

from .dispatcher import CommandDispatcher
from .controller import Controller

__all__ = ["CommandDispatcher", "Controller"]
