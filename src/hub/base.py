"""
Hub collaborator contract consumed by the adapter, registry and devices
"""

from typing import Protocol


class Hub(Protocol):
    def add_adapter(self, adapter) -> None:
        ...

    def handle_device_added(self, device) -> None:
        ...

    def notify_property_changed(self, device, prop) -> None:
        ...
