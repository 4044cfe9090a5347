# HTTP Helper for device connections
# Session configuration and request helper shared by probe, poll and command calls

import aiohttp
import logging
from dataclasses import dataclass
from typing import Optional

from config_loader import Credentials

logger = logging.getLogger(__name__)


@dataclass
class DeviceResponse:
    """Fully read response from a device"""
    status: int
    reason: str
    body: str

    @property
    def ok(self) -> bool:
        return self.status == 200


def create_device_session(credentials: Optional[Credentials] = None,
                          timeout_seconds: Optional[float] = None) -> aiohttp.ClientSession:
    """
    Create aiohttp session for local device connections (always HTTP)
    Basic auth is only attached when both user and password are configured
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=2,           # ESP devices handle very few parallel connections
        ssl=False,
        force_close=True,
        enable_cleanup_closed=True
    )

    auth = None
    if credentials is not None and credentials.enabled:
        auth = aiohttp.BasicAuth(credentials.user, credentials.password)

    # No explicit timeout means aiohttp's transport default applies
    timeout = aiohttp.ClientTimeout(total=timeout_seconds) if timeout_seconds else None

    kwargs = {'connector': connector, 'auth': auth}
    if timeout is not None:
        kwargs['timeout'] = timeout
    return aiohttp.ClientSession(**kwargs)


async def fetch(url: str, credentials: Optional[Credentials] = None, method: str = "GET",
                timeout_seconds: Optional[float] = None) -> DeviceResponse:
    """
    Perform a single request against a device and read the whole body
    Transport errors (aiohttp.ClientError, asyncio.TimeoutError, OSError) propagate to the caller
    """
    async with create_device_session(credentials, timeout_seconds) as session:
        async with session.request(method, url) as response:
            # Devices and other LAN web servers may serve non UTF-8 pages
            body = await response.text(errors="replace")
            logger.debug(f"{method} {url} -> {response.status}")
            return DeviceResponse(
                status=response.status,
                reason=response.reason or "",
                body=body
            )
