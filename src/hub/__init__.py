"""
Hub module - device/property registry the bridge reports into
"""

from .base import Hub
from .device_hub import DeviceHub, PropertyChangeEvent

__all__ = ['Hub', 'DeviceHub', 'PropertyChangeEvent']
