"""
Motor actuator - HTTP drive endpoint on the vehicle.

Protocol:
    PUT <car_url>
    Authorization: <token>
    {"speed": <-1.0..1.0>, "flip": <bool>}

The vehicle stops by itself about one second after the last command,
so a lost request is never dangerous, only late.
"""

from __future__ import annotations

import logging

import aiohttp

from ugv_nav.decision.state_machine import DriveCommand

logger = logging.getLogger(__name__)


class Motor:
    """
    Vehicle drive endpoint.

    Usage:
        motor = Motor(url, token, session)
        await motor.drive(DriveCommand.forward(0.5))
    """

    def __init__(
        self,
        url: str,
        auth: str,
        session: aiohttp.ClientSession,
        timeout: float = 0.5,
    ):
        self.url = url
        self.auth = auth
        self.session = session
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def drive(self, command: DriveCommand):
        """
        Send one command.

        Raises:
            aiohttp.ClientError: on connection failure or non-2xx status
            asyncio.TimeoutError: if the vehicle does not answer in time
        """
        async with self.session.put(
            self.url,
            json=command.to_json(),
            headers={"Authorization": self.auth},
            timeout=self.timeout,
        ) as resp:
            resp.raise_for_status()
        logger.debug(f"Sent: speed={command.speed:.2f} flip={command.flip}")
