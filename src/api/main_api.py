"""
Local HTTP API for the ESPHome bridge
Exposes discovered devices, their current values and pairing control
"""

from fastapi import FastAPI
import logging

from config_loader import BridgeConfig
from .device_routes import create_device_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)


class BridgeAPI:
    """FastAPI application over the hub and the ESPHome adapter"""

    def __init__(self, hub, adapter, config: BridgeConfig):
        self.hub = hub
        self.adapter = adapter
        self.config = config
        self.app = FastAPI(
            title="ESPHome Local Bridge",
            description="Local API for discovered ESPHome switches and binary sensors",
            version="1.0.0"
        )
        self._setup_routes()

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_system_routes(self.hub, self.adapter))
        self.app.include_router(create_device_routes(self.hub))
