"""
System health and pairing API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


# Response models
class HealthResponse(BaseModel):
    status: str
    discovering: bool
    device_count: int
    registered_services: int
    timestamp: datetime


class PairingRequest(BaseModel):
    timeout_seconds: Optional[float] = 60


class PairingResponse(BaseModel):
    discovering: bool


def create_system_routes(hub, adapter):
    """Create health and pairing routes"""
    router = APIRouter(prefix="/api", tags=["system"])

    @router.get("/health", response_model=HealthResponse)
    async def get_health():
        return HealthResponse(
            status="ok",
            discovering=adapter.discovering,
            device_count=len(hub.devices),
            registered_services=len(adapter.registry.services),
            timestamp=datetime.now(timezone.utc)
        )

    @router.post("/pairing", response_model=PairingResponse)
    async def start_pairing(request: Optional[PairingRequest] = None):
        timeout = request.timeout_seconds if request else None
        await adapter.start_pairing(timeout)
        return PairingResponse(discovering=adapter.discovering)

    @router.delete("/pairing", response_model=PairingResponse)
    async def cancel_pairing():
        await adapter.cancel_pairing()
        return PairingResponse(discovering=adapter.discovering)

    return router
