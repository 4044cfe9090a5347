"""
In-process hub keeping registered adapters, devices and recent property changes
"""

import logging
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Deque, Dict, List, Optional

from errors import UnknownDevice

logger = logging.getLogger(__name__)


@dataclass
class PropertyChangeEvent:
    device_id: str
    property: str
    value: Optional[bool]
    timestamp: datetime

    def to_dict(self) -> Dict:
        return asdict(self)


class DeviceHub:
    """Implements the hub contract for the local API"""

    def __init__(self, max_events: int = 200):
        self.adapters: Dict[str, object] = {}
        self.devices: Dict[str, object] = {}
        self.events: Deque[PropertyChangeEvent] = deque(maxlen=max_events)
        self.change_count = 0

    def add_adapter(self, adapter) -> None:
        self.adapters[adapter.id] = adapter
        logger.info(f"[HUB] Adapter registered: {adapter.name} ({adapter.id})")

    def handle_device_added(self, device) -> None:
        if device.id in self.devices:
            logger.warning(f"[HUB] Device {device.id} added twice - replacing")
        self.devices[device.id] = device
        logger.info(f"[HUB] Device added: {device.name} ({device.id})")

    def notify_property_changed(self, device, prop) -> None:
        self.change_count += 1
        event = PropertyChangeEvent(
            device_id=device.id,
            property=prop.name,
            value=prop.current_value,
            timestamp=datetime.now(timezone.utc)
        )
        self.events.append(event)
        logger.debug(f"[HUB] {device.id}#{prop.name} -> {prop.current_value}")

    def get_device(self, device_id: str):
        device = self.devices.get(device_id)
        if device is None:
            raise UnknownDevice(f"Unknown device: {device_id}")
        return device

    def list_devices(self) -> List[Dict]:
        return [device.as_dict() for device in self.devices.values()]

    def recent_events(self, limit: int = 50) -> List[PropertyChangeEvent]:
        if limit <= 0:
            return []
        return list(self.events)[-limit:]

    async def set_property(self, device_id: str, name: str, value: bool) -> bool:
        """Forward a write to the device property; CommandRejected for read-only properties"""
        device = self.get_device(device_id)
        prop = device.properties.get(name)
        if prop is None:
            raise UnknownDevice(f"Device {device_id} has no property {name}")
        return await prop.apply_command(value)
