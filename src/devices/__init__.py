"""
Device module - hub-facing devices and their polling properties
"""

from .device import BridgeDevice, create_device, is_supported_domain
from .polling import PeriodicTask
from .properties import PollingProperty, BinarySensorProperty, SwitchProperty, PollOutcome
from .registry import DeviceRegistry

__all__ = ['BridgeDevice', 'create_device', 'is_supported_domain', 'PeriodicTask',
           'PollingProperty', 'BinarySensorProperty', 'SwitchProperty', 'PollOutcome', 'DeviceRegistry']
