"""
Oracle - HTTP endpoint naming the current target region.
"""

from __future__ import annotations

import logging

import aiohttp

logger = logging.getLogger(__name__)


class Oracle:
    """Target oracle client. fetch() returns the raw response body."""

    def __init__(
        self,
        url: str,
        auth: str,
        session: aiohttp.ClientSession,
        timeout: float = 1.0,
    ):
        self.url = url
        self.auth = auth
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def fetch(self) -> str:
        """
        Raises:
            aiohttp.ClientError: on connection failure or non-2xx status
            asyncio.TimeoutError: if the oracle does not answer in time
        """
        async with self.session.get(
            self.url,
            headers={"Authorization": self.auth},
            timeout=self.timeout,
        ) as resp:
            resp.raise_for_status()
            body = await resp.text(errors="replace")
        logger.debug(f"Oracle raw response: {body!r}")
        return body
