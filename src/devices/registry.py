"""
Device registry - turns probed services into hub devices, once per service name
"""

import logging
from typing import Dict, List, Optional, Set

from config_loader import DeviceSettings
from discovery.models import ServiceRecord
from discovery.prober import CapabilityProber
from hub.base import Hub
from .device import BridgeDevice, create_device

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """
    Deduplicates discovered services by name and registers their capabilities

    A name is recorded once its probe matched, and held as in-flight while the
    probe runs, so repeated or concurrent announcements of the same service
    (both advertisement channels usually fire) register devices only once.
    Failed or non-device probes are not recorded and are retried on the next
    announcement.
    """

    def __init__(self, settings: DeviceSettings, hub: Hub, prober: Optional[CapabilityProber] = None):
        self.settings = settings
        self.hub = hub
        self.prober = prober or CapabilityProber(settings)
        self.services: Dict[str, List[BridgeDevice]] = {}
        self._probing: Set[str] = set()

    @property
    def devices(self) -> Dict[str, BridgeDevice]:
        return {device.id: device for devices in self.services.values() for device in devices}

    def is_known(self, name: str) -> bool:
        return name in self.services

    async def handle_record(self, record: ServiceRecord) -> List[BridgeDevice]:
        """Advertisement listener callback"""
        return await self.on_service_discovered(record.name, record.host, record.port)

    async def on_service_discovered(self, name: str, host: str, port: int) -> List[BridgeDevice]:
        """Probe a service and register its devices; returns the newly created devices"""
        if name in self.services or name in self._probing:
            logger.debug(f"[REGISTRY] {name} already registered - skipping")
            return []

        self._probing.add(name)
        try:
            result = await self.prober.probe(host, port, name)
            if not result.matched:
                return []

            created = []
            for capability in result.capabilities:
                device = create_device(name, host, capability, self.settings, self.hub, port)
                if device is None:
                    continue
                self.hub.handle_device_added(device)
                device.start_polling()
                created.append(device)
                logger.info(f"[REGISTRY] Added {device.domain} device {device.name} ({device.id})")

            self.services[name] = created
            logger.info(f"[REGISTRY] Registered {len(created)} devices for {name}")
            return created
        finally:
            self._probing.discard(name)

    async def stop_all(self) -> None:
        """Cancel every device's polling task"""
        for device in self.devices.values():
            await device.stop_polling()
        logger.info(f"[REGISTRY] Stopped polling for {len(self.devices)} devices")
