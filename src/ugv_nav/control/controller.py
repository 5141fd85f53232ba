"""
Main controller - Coordinates all layers.

This is the main control loop that, every tick:
1. Fetches one frame from each camera (concurrently)
2. Detects markers in each frame
3. Updates per-camera calibration and fuses the vehicle pose
4. Gets a drive command from the StateMachine for the current goal
5. Hands the command to the dispatcher

The oracle is polled by a separate, slower task. It only ever replaces
the resolver's goal; the loop reads whatever goal is current.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import time

import aiohttp
import cv2
import numpy as np

from ugv_nav.decision import DriveCommand, Region, StateMachine, TargetResolver
from ugv_nav.params import Parameters
from ugv_nav.perception import (
    CalibrationTracker,
    MarkerObservation,
    MarkerRoles,
    PoseFusion,
    WorldState,
)
from ugv_nav.sensors import Camera, MarkerDetector, Motor, Oracle
from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

STATS_PERIOD = 5.0  # seconds


class Controller:
    """
    Main navigation controller.

    Coordinates:
    - Sensor layer (Camera x2, MarkerDetector, Motor, Oracle)
    - Perception layer (CalibrationTracker, PoseFusion)
    - Decision layer (TargetResolver, StateMachine)
    - CommandDispatcher

    Usage:
        params = Parameters.load()
        controller = Controller(params)
        asyncio.run(controller.run())
    """

    def __init__(self, params: Parameters, detector: MarkerDetector = None):
        self.params = params
        self.camera_names = [name for name, _url, _auth in params.cameras]

        # Perception
        self.roles = MarkerRoles.from_params(params)
        self.detector = detector
        self.calibration = CalibrationTracker(self.roles, params.calibration_grace_ticks)
        self.fusion = PoseFusion(
            self.roles,
            probe_px=params.heading_probe_px,
            outlier_distance=params.fusion_outlier_distance,
        )

        # Decision
        self.resolver = TargetResolver(override=params.target_override)
        self.state_machine = StateMachine(params=params)

        # I/O, created in run()
        self.cameras: list[Camera] = []
        self.motor: Motor | None = None
        self.oracle: Oracle | None = None
        self.dispatcher: CommandDispatcher | None = None

        # Manual stop from the web interface
        self.hold = False

        # Latest snapshot (for web access)
        self._latest_world: WorldState | None = None
        self.command = DriveCommand.stop()

        # Control state
        self._running = False
        self._tick = 0

    @property
    def world_state(self) -> WorldState | None:
        """Latest WorldState for web access."""
        return self._latest_world

    @property
    def is_running(self) -> bool:
        return self._running

    async def run(self):
        """Run until SIGINT/SIGTERM. Raises ConfigError before starting."""
        self.params.validate()
        logger.info(f"Vehicle marker #{self.params.vehicle_marker_id}, starting up")
        logger.info(f"  car     : {self.params.car_url}")
        for name, url, _auth in self.params.cameras:
            logger.info(f"  {name} : {url}")
        logger.info(f"  oracle  : {self.params.oracle_url or '(override)'}")

        loop = asyncio.get_event_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._shutdown)

        async with aiohttp.ClientSession() as session:
            self._init_io(session)
            self.dispatcher.start()
            oracle_task = asyncio.ensure_future(self._oracle_loop())
            self._running = True

            try:
                logger.info("Entering main control loop")
                await self._control_loop()
            finally:
                await self._stop_task(oracle_task)
                await self._cleanup()

    def _init_io(self, session: aiohttp.ClientSession):
        """Create HTTP collaborators on a shared session."""
        p = self.params
        if self.detector is None:
            self.detector = MarkerDetector(p.aruco_dictionary)
        self.cameras = [
            Camera(name, url, auth, session, timeout=p.fetch_timeout)
            for name, url, auth in p.cameras
        ]
        self.motor = Motor(p.car_url, p.car_auth, session, timeout=p.command_timeout)
        if p.oracle_url:
            self.oracle = Oracle(p.oracle_url, p.oracle_auth, session, timeout=p.oracle_timeout)
        self.dispatcher = CommandDispatcher(
            self.motor,
            interval=p.dispatch_interval,
            min_interval=p.min_command_interval,
        )

    async def _cleanup(self):
        """Stop the dispatcher and leave the vehicle stopped."""
        logger.info("Cleaning up...")
        self._running = False
        if self.dispatcher:
            await self.dispatcher.stop()
            if not await self.dispatcher.flush(DriveCommand.stop()):
                logger.warning("Final stop not acknowledged, vehicle will time out")
        logger.info("Cleanup complete")

    async def _stop_task(self, task: asyncio.Task):
        """Cancel a helper task; its failure must not block cleanup."""
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error(f"Background task failed: {e}", exc_info=True)

    def _shutdown(self):
        """Handle shutdown signal. The current tick still completes."""
        logger.info("Shutdown requested")
        self._running = False

    async def _control_loop(self):
        period = self.params.tick_interval
        loop = asyncio.get_event_loop()
        last_stats = loop.time()

        while self._running:
            t0 = loop.time()

            try:
                world = await self.tick()
            except Exception as e:
                logger.error(f"Tick {self._tick} failed: {e}", exc_info=True)
                self._submit(DriveCommand.stop())
                world = None

            if world is not None and t0 - last_stats >= STATS_PERIOD:
                self._log_stats(world)
                last_stats = t0

            elapsed = loop.time() - t0
            await asyncio.sleep(max(0.0, period - elapsed))

    async def tick(self) -> WorldState:
        """One full tick: fetch, detect, fuse, decide, submit."""
        frames = await asyncio.gather(*(cam.fetch() for cam in self.cameras))

        observations: dict[str, list[MarkerObservation]] = {}
        frames_ok: dict[str, bool] = {}
        for camera, frame in zip(self.cameras, frames):
            frames_ok[camera.name] = frame is not None
            observations[camera.name] = self._detect(frame, camera.name)

        return self.process(observations, frames_ok)

    def _detect(self, frame: np.ndarray | None, camera: str) -> list[MarkerObservation]:
        if frame is None:
            return []
        try:
            return self.detector.detect(frame, camera)
        except cv2.error as e:
            logger.error(f"{camera}: detection error: {e}")
            return []

    def process(
        self,
        observations: dict[str, list[MarkerObservation]],
        frames_ok: dict[str, bool] = None,
    ) -> WorldState:
        """
        Perception and decision for one tick of observations.

        Args:
            observations: Camera name -> markers seen this tick
            frames_ok: Camera name -> whether a frame arrived

        Returns:
            WorldState snapshot for this tick
        """
        self._tick += 1

        calibrations = {}
        for name in self.camera_names:
            calib = self.calibration.update(name, observations.get(name, []))
            if calib is not None:
                calibrations[name] = calib

        pose = self.fusion.update(observations, calibrations)
        goal = self.resolver.goal

        command = self.state_machine.decide(pose, goal)
        if self.hold:
            command = DriveCommand.stop()
        self._submit(command)

        world = WorldState(
            timestamp=time.time(),
            tick=self._tick,
            pose=pose,
            frames=dict(frames_ok or {}),
            calibration_ages={name: c.age for name, c in calibrations.items()},
            markers={
                name: sorted(o.marker_id for o in obs)
                for name, obs in observations.items()
            },
        )
        self._latest_world = world
        return world

    def _submit(self, command: DriveCommand):
        self.command = command
        if self.dispatcher:
            self.dispatcher.submit(command)

    async def poll_oracle(self):
        """Ask the oracle once; the resolver keeps the old goal on any failure."""
        if self.oracle is None or self.resolver.override is not None:
            return self.resolver.goal
        try:
            body = await self.oracle.fetch()
        except asyncio.TimeoutError:
            logger.error("Oracle poll timed out")
            return self.resolver.goal
        except aiohttp.ClientError as e:
            logger.error(f"Oracle poll failed: {e}")
            return self.resolver.goal
        return self.resolver.resolve_body(body)

    async def _oracle_loop(self):
        while True:
            try:
                await self.poll_oracle()
            except Exception as e:
                logger.error(f"Oracle poll crashed: {e}", exc_info=True)
            await asyncio.sleep(self.params.oracle_interval)

    def _log_stats(self, world: WorldState):
        """Log periodic statistics."""
        goal = self.resolver.goal
        if world.pose is not None:
            where = (
                f"pos=({world.pose.x:.2f},{world.pose.y:.2f}) "
                f"in {Region.from_position(world.pose.x, world.pose.y).name}"
            )
        else:
            where = f"vehicle unseen for {self.state_machine.misses} ticks"
            last = self.fusion.last_pose
            if last is not None:
                where += f", last at ({last.x:.2f},{last.y:.2f})"
        sent = self.dispatcher.sent if self.dispatcher else 0
        logger.info(
            f"Tick {self._tick}: "
            f"State={self.state_machine.state.name}, "
            f"Target={goal.region.name if goal else None}, "
            f"{where}, "
            f"Calibrated={world.calibrated_cameras}, "
            f"Sent={sent}"
        )
