"""
Bridge Server - Main orchestrator for discovery, polling and the local API
"""

import asyncio
import logging
from typing import List, Optional

import uvicorn

from config_loader import BridgeConfig, load_config, setup_logging
from hub.device_hub import DeviceHub
from api.main_api import BridgeAPI
from services.esphome_adapter import EspHomeAdapter

logger = logging.getLogger(__name__)


class BridgeServer:
    """Owns the hub, the ESPHome adapter and the API server"""

    def __init__(self, config_path: str = "config/config.yaml", config: Optional[BridgeConfig] = None):
        self.config = config or load_config(config_path)
        setup_logging(self.config)

        self.hub = DeviceHub()
        self.adapter = EspHomeAdapter(self.config, self.hub)
        self.api = BridgeAPI(self.hub, self.adapter, self.config)

        self.running = False
        self.tasks: List[asyncio.Task] = []
        self._api_server: Optional[uvicorn.Server] = None
        self._stopped = asyncio.Event()

    async def start(self):
        """Start discovery and the API server; returns when the server stops"""
        logger.info("Starting ESPHome local bridge...")
        device = self.config.device
        logger.info(f"Polling every {device.poll_interval_ms}ms, fallback port {device.fallback_port}, "
                    f"authentication {'enabled' if device.credentials.enabled else 'disabled'}")

        try:
            if self.config.discovery.start_on_boot:
                await self.adapter.start_discovery()
            else:
                logger.info("Discovery on boot disabled - waiting for a pairing request")

            self.running = True

            if self.config.api.enabled:
                self.tasks.append(asyncio.create_task(self._start_api_server()))
            else:
                logger.info("Local API disabled")

            self.tasks.append(asyncio.create_task(self._stopped.wait()))
            await asyncio.wait(self.tasks, return_when=asyncio.FIRST_COMPLETED)

        except Exception as e:
            logger.error(f"Bridge startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all services gracefully; safe to call more than once"""
        logger.info("Stopping bridge...")
        self.running = False

        # Discovery may have failed part-way through start
        await self.adapter.stop()

        if self._api_server is not None:
            self._api_server.should_exit = True

        self._stopped.set()
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []

        logger.info(f"Bridge stopped ({len(self.hub.devices)} devices, "
                    f"{self.hub.change_count} property changes observed)")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        api_config = self.config.api
        config = uvicorn.Config(
            self.api.app,
            host=api_config.host,
            port=api_config.port,
            log_level="info",
            access_log=False  # We handle our own logging
        )
        self._api_server = uvicorn.Server(config)

        logger.info(f"Starting API server on {api_config.host}:{api_config.port}")
        logger.info(f"API documentation: http://localhost:{api_config.port}/docs")
        await self._api_server.serve()
