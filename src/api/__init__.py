"""
API module for device state and pairing control
"""

from .main_api import BridgeAPI
from .device_routes import create_device_routes
from .system_routes import create_system_routes

__all__ = ['BridgeAPI', 'create_device_routes', 'create_system_routes']
