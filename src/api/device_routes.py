"""
Device API routes - list devices, read state and forward commands
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
import logging

from errors import CommandRejected, UnknownDevice

logger = logging.getLogger(__name__)


# Request models
class PropertyValueRequest(BaseModel):
    value: bool


class PropertyValueResponse(BaseModel):
    device_id: str
    property: str
    value: Optional[bool]
    accepted: bool


def create_device_routes(hub):
    """Create device routes backed by the hub"""
    router = APIRouter(prefix="/api", tags=["devices"])

    @router.get("/devices")
    async def list_devices():
        return {"devices": hub.list_devices(), "count": len(hub.devices)}

    @router.get("/devices/{device_id}")
    async def get_device(device_id: str):
        try:
            return hub.get_device(device_id).as_dict()
        except UnknownDevice as e:
            raise HTTPException(status_code=404, detail=str(e))

    @router.put("/devices/{device_id}/properties/{name}", response_model=PropertyValueResponse)
    async def set_property(device_id: str, name: str, request: PropertyValueRequest):
        """Apply a value to a writable property (optimistic, reconciled by polling)"""
        try:
            accepted = await hub.set_property(device_id, name, request.value)
        except UnknownDevice as e:
            raise HTTPException(status_code=404, detail=str(e))
        except CommandRejected as e:
            raise HTTPException(status_code=400, detail=str(e))

        prop = hub.get_device(device_id).properties[name]
        if not accepted:
            logger.warning(f"Device {device_id} did not accept {name}={request.value}")
        return PropertyValueResponse(
            device_id=device_id,
            property=name,
            value=prop.current_value,
            accepted=accepted
        )

    @router.get("/events")
    async def get_events(limit: int = 50):
        events = hub.recent_events(limit)
        return {"events": [event.to_dict() for event in events], "total_changes": hub.change_count}

    return router
