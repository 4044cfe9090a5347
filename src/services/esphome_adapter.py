"""
ESPHome adapter - wires the advertisement listener to the device registry
and registers itself with the hub
"""

import logging
from typing import Optional

from config_loader import BridgeConfig
from devices.registry import DeviceRegistry
from discovery.network_discovery import AdvertisementListener
from hub.base import Hub

logger = logging.getLogger(__name__)


class EspHomeAdapter:
    """Hub adapter owning discovery and the devices it produces"""

    id = "esphome-adapter"
    name = "ESPHome"

    def __init__(self, config: BridgeConfig, hub: Hub,
                 registry: Optional[DeviceRegistry] = None,
                 listener: Optional[AdvertisementListener] = None):
        self.config = config
        self.hub = hub
        self.registry = registry or DeviceRegistry(config.device, hub)
        self.listener = listener or AdvertisementListener(config, self.registry.handle_record)
        hub.add_adapter(self)

    @property
    def discovering(self) -> bool:
        return self.listener.running

    async def start_discovery(self) -> None:
        await self.listener.start()

    async def start_pairing(self, timeout_seconds: Optional[float] = None) -> None:
        """Restart discovery; the hub decides when pairing ends"""
        logger.info(f"Start pairing (timeout={timeout_seconds}s)")
        await self.start_discovery()

    async def cancel_pairing(self) -> None:
        logger.info("Cancel pairing")
        await self.listener.stop()

    async def stop(self) -> None:
        """Stop discovery and every device's polling"""
        await self.listener.stop()
        await self.registry.stop_all()
