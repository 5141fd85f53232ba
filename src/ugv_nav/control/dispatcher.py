"""
Command dispatcher - Paces drive commands to the vehicle.

The control loop only ever replaces the latest command. A separate
task sends whatever is latest on a fixed cadence, so the vehicle's
command expiry is fed even if a tick runs long, and the actuator's
minimum spacing between requests is never violated even if ticks run
fast. A failed send is logged and the next one goes out on schedule.
"""

from __future__ import annotations

import asyncio
import logging
import time

import aiohttp

from ugv_nav.decision.state_machine import DriveCommand
from ugv_nav.sensors.motor import Motor

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """
    Rate-limited command sender.

    Usage:
        dispatcher = CommandDispatcher(motor, interval=0.1, min_interval=0.1)
        dispatcher.start()

        # In control loop:
        dispatcher.submit(command)

        await dispatcher.stop()
    """

    def __init__(
        self,
        motor: Motor,
        interval: float = 0.1,
        min_interval: float = 0.1,
        clock=time.monotonic,
    ):
        self.motor = motor
        self.interval = max(interval, min_interval)
        self.min_interval = min_interval
        self._clock = clock

        self._command = DriveCommand.stop()
        self._last_sent_at: float | None = None
        self._task: asyncio.Task | None = None
        self._running = False

        self.sent = 0
        self.failures = 0
        self._consecutive_failures = 0

    @property
    def command(self) -> DriveCommand:
        """Latest submitted command."""
        return self._command

    @property
    def is_running(self) -> bool:
        return self._running

    def submit(self, command: DriveCommand):
        """Replace the command sent on the next dispatch."""
        self._command = command

    async def dispatch_once(self) -> bool:
        """
        Send the latest command, waiting out the minimum interval first.

        Returns:
            True if the vehicle accepted the command
        """
        await self._wait_min_interval()
        command = self._command
        self._last_sent_at = self._clock()

        try:
            await self.motor.drive(command)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.failures += 1
            self._consecutive_failures += 1
            if self._consecutive_failures == 1 or self._consecutive_failures % 50 == 0:
                logger.error(
                    f"Drive command failed ({self._consecutive_failures} in a row): "
                    f"{e or type(e).__name__}"
                )
            return False

        if self._consecutive_failures:
            logger.info(f"Drive commands recovered after {self._consecutive_failures} failures")
            self._consecutive_failures = 0
        self.sent += 1
        return True

    async def flush(self, command: DriveCommand) -> bool:
        """Submit and send immediately (still honouring the min interval)."""
        self.submit(command)
        return await self.dispatch_once()

    def start(self):
        if self._running:
            return
        self._running = True
        self._task = asyncio.ensure_future(self._run())
        logger.info(f"Dispatcher started ({1.0 / self.interval:.0f} Hz)")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Dispatcher stopped (sent={self.sent} failed={self.failures})")

    async def _run(self):
        while self._running:
            t0 = self._clock()
            await self.dispatch_once()
            elapsed = self._clock() - t0
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    async def _wait_min_interval(self):
        if self._last_sent_at is None:
            return
        while True:
            wait = self._last_sent_at + self.min_interval - self._clock()
            if wait <= 0:
                return
            await asyncio.sleep(wait)
