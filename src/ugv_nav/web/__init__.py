"""
Web Layer - Debug and remote control interface.

Provides:
- Navigation status and latest WorldState
- Parameter tuning
- Target override and stop/resume

Not needed for normal runs; start with --web.
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
