"""
Camera sensor - overhead HTTP camera returning single JPEG frames.

Each fetch is one authenticated GET. A slow or broken camera yields
None for the tick instead of stalling the loop.
"""

from __future__ import annotations

import asyncio
import logging

import aiohttp
import cv2
import numpy as np

logger = logging.getLogger(__name__)


def decode_jpeg(data: bytes) -> np.ndarray | None:
    """Decode JPEG bytes to a BGR image, None if undecodable."""
    if not data:
        return None
    buf = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        return None
    return img


class Camera:
    """
    Overhead arena camera.

    Usage:
        async with aiohttp.ClientSession() as session:
            camera = Camera("camera1", url, token, session, timeout=0.08)
            frame = await camera.fetch()   # BGR ndarray or None
    """

    def __init__(
        self,
        name: str,
        url: str,
        auth: str,
        session: aiohttp.ClientSession,
        timeout: float = 0.08,
    ):
        self.name = name
        self.url = url
        self.auth = auth
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

        self.frames = 0
        self.failures = 0

    async def fetch(self) -> np.ndarray | None:
        """Fetch and decode the latest frame."""
        try:
            async with self.session.get(
                self.url,
                headers={"Authorization": self.auth},
                timeout=self.timeout,
            ) as resp:
                resp.raise_for_status()
                data = await resp.read()
        except asyncio.TimeoutError:
            self.failures += 1
            logger.warning(f"{self.name}: frame fetch timed out")
            return None
        except aiohttp.ClientError as e:
            self.failures += 1
            logger.warning(f"{self.name}: frame fetch failed: {e}")
            return None

        frame = decode_jpeg(data)
        if frame is None:
            self.failures += 1
            logger.warning(f"{self.name}: undecodable frame ({len(data)} bytes)")
            return None

        self.frames += 1
        logger.debug(f"{self.name}: frame {frame.shape[1]}x{frame.shape[0]}")
        return frame
