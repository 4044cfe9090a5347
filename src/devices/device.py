"""
Hub-facing device wrapper around a single polling property
"""

import logging
from typing import Dict, Optional

from config_loader import DeviceSettings
from discovery.models import DeviceCapability
from .polling import PeriodicTask
from .properties import BinarySensorProperty, PollingProperty, SwitchProperty

logger = logging.getLogger(__name__)

SCHEMA_CONTEXT = "https://iot.mozilla.org/schemas/"

# domain -> (device @type, property implementation)
DEVICE_KINDS: Dict[str, tuple] = {
    'binary_sensor': (['BinarySensor'], BinarySensorProperty),
    'switch': (['SmartPlug'], SwitchProperty),
}


class BridgeDevice:
    """One capability of a discovered ESPHome node, exposed as a hub device"""

    def __init__(self, service_name: str, host: str, capability: DeviceCapability,
                 settings: DeviceSettings, hub=None, port: int = 80):
        device_types, property_class = DEVICE_KINDS[capability.domain]

        self.id = f"{service_name}_{capability.id}"
        self.name = f"{capability.name} ({host})"
        self.service_name = service_name
        self.host = host
        self.port = port
        self.domain = capability.domain
        self.context = SCHEMA_CONTEXT
        self.types = list(device_types)
        self.poll_interval = settings.poll_interval_seconds
        self.hub = hub

        prop: PollingProperty = property_class(capability.id, host, settings,
                                                 device_name=self.name, device_port=port)
        prop.on_change = self._property_changed
        self.properties: Dict[str, PollingProperty] = {prop.name: prop}
        self._poller: Optional[PeriodicTask] = None

    @property
    def primary_property(self) -> PollingProperty:
        return next(iter(self.properties.values()))

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def start_polling(self) -> None:
        if self._poller is None:
            self._poller = PeriodicTask(self.id, self.poll_interval, self.primary_property.poll_once)
        self._poller.start()

    async def stop_polling(self) -> None:
        if self._poller is not None:
            await self._poller.stop()
            self._poller = None

    def _property_changed(self, prop: PollingProperty) -> None:
        if self.hub is not None:
            self.hub.notify_property_changed(self, prop)

    def as_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            '@context': self.context,
            '@type': self.types,
            'host': self.host,
            'port': self.port,
            'polling': self.polling,
            'properties': {name: prop.as_dict() for name, prop in self.properties.items()},
        }


def is_supported_domain(domain: str) -> bool:
    return domain in DEVICE_KINDS


def create_device(service_name: str, host: str, capability: DeviceCapability,
                  settings: DeviceSettings, hub=None, port: int = 80) -> Optional[BridgeDevice]:
    """Build the typed device for a capability, None for unsupported domains"""
    if not is_supported_domain(capability.domain):
        logger.debug(f"Ignoring unsupported capability {capability.domain}/{capability.id} of {service_name}")
        return None
    return BridgeDevice(service_name, host, capability, settings, hub, port)

