"""
mDNS advertisement listener for ESPHome devices
Browses the generic web service type and the ESPHome native API type
"""

import asyncio
import ipaddress
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from zeroconf import ServiceStateChange, Zeroconf
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from config_loader import BridgeConfig
from .models import ServiceRecord

logger = logging.getLogger(__name__)

RESOLVE_TIMEOUT_MS = 3000

ServiceCallback = Callable[[ServiceRecord], Awaitable[None]]


def remove_trailing_dot(value: str) -> str:
    if value.endswith('.'):
        return value[:-1]
    return value


def first_ipv4(addresses: List[str]) -> Optional[str]:
    """Return the first IPv4 address of the list, if any"""
    for address in addresses:
        try:
            if ipaddress.ip_address(address).version == 4:
                return address
        except ValueError:
            continue
    return None


def build_service_record(server: str, addresses: List[str], port: int,
                         service_type: str = "") -> ServiceRecord:
    """Normalize a resolved announcement into a ServiceRecord"""
    name = remove_trailing_dot(server or "")
    return ServiceRecord(
        name=name,
        host=first_ipv4(addresses) or name,
        port=port,
        addresses=list(addresses),
        service_type=service_type
    )


class AdvertisementListener:
    """Subscribes to both advertisement channels and reports appeared services"""

    def __init__(self, config: BridgeConfig, callback: ServiceCallback):
        self.callback = callback
        self.fallback_port = config.device.fallback_port
        self.http_service_type = config.discovery.http_service_type
        self.api_service_type = config.discovery.api_service_type

        self._aiozc: Optional[AsyncZeroconf] = None
        self._browsers: Dict[str, AsyncServiceBrowser] = {}
        self._pending: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._aiozc is not None

    async def start(self) -> None:
        """Start browsing both service types; restarts if already running"""
        if self.running:
            await self.stop()

        logger.info(f"[DISCOVERY] Browsing for {self.http_service_type} and {self.api_service_type}")
        self._aiozc = AsyncZeroconf()
        for service_type in (self.http_service_type, self.api_service_type):
            self._browsers[service_type] = AsyncServiceBrowser(
                self._aiozc.zeroconf,
                [service_type],
                handlers=[self._on_service_state_change],
            )

    async def stop(self) -> None:
        """Stop browsing; safe to call when not running"""
        browsers = list(self._browsers.values())
        self._browsers = {}
        aiozc, self._aiozc = self._aiozc, None

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        for browser in browsers:
            await browser.async_cancel()

        if aiozc is not None:
            await aiozc.async_close()
            logger.info("[DISCOVERY] Stopped browsing")

    def _on_service_state_change(self, zeroconf: Zeroconf, service_type: str, name: str,
                                 state_change: ServiceStateChange) -> None:
        if state_change is not ServiceStateChange.Added:
            return
        logger.debug(f"[DISCOVERY] Service appeared: {name}")
        task = asyncio.ensure_future(self._resolve(zeroconf, service_type, name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _resolve(self, zeroconf: Zeroconf, service_type: str, name: str) -> None:
        info = AsyncServiceInfo(service_type, name)
        try:
            resolved = await info.async_request(zeroconf, RESOLVE_TIMEOUT_MS)
        except Exception as e:
            logger.warning(f"[DISCOVERY] Failed to resolve {name}: {e}")
            return

        if not resolved or not info.server:
            logger.warning(f"[DISCOVERY] Could not resolve {name}")
            return

        await self.handle_resolved(service_type, info.server, info.parsed_addresses(), info.port)

    async def handle_resolved(self, service_type: str, server: str, addresses: List[str],
                              port: Optional[int]) -> None:
        """Turn a resolved announcement into a ServiceRecord and hand it to the callback"""
        if service_type == self.api_service_type:
            # The native API port is not the web server port
            port = self.fallback_port
        elif not port:
            port = self.fallback_port

        record = build_service_record(server, addresses, port, service_type)
        channel = "http" if service_type == self.http_service_type else "api"
        logger.info(f"[DISCOVERY] Discovered {channel} service at {record.name} ({record.host}:{record.port})")

        try:
            await self.callback(record)
        except Exception as e:
            logger.error(f"[DISCOVERY] Failed to handle service {record.name}: {e}")
