"""
API Routes for the Resonance Touch Interface

This module provides endpoints for:
- Submitting touch samples
- Reading status, statistics and configuration
- Enabling and disabling processing
- Exporting and importing the user profile
- Streaming pipeline events over a WebSocket
"""

import logging
from typing import Any, Dict, Optional

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
)
from pydantic import BaseModel, Field, ValidationError

from resonance_touch.errors import (
    ConfigurationError,
    ConfigValidationError,
    SampleRejectedError,
)
from resonance_touch.models import TouchSample, to_payload
from resonance_touch.modules.orchestrator import ResonanceTouchInterface
from resonance_touch.modules.personalization import PersonalizationStore

# Create router
router = APIRouter()

logger = logging.getLogger("resonance_touch.api")


class TouchSampleRequest(BaseModel):
    """Touch sample as submitted by a client."""

    x: float
    y: float
    pressure: float = Field(ge=0.0, le=1.0)
    duration: float = Field(ge=0.0)
    area: float = Field(ge=0.0)
    timestamp: Optional[float] = None
    thermal: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    pulse: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class ProfileImportRequest(BaseModel):
    data: Dict[str, Any]
    merge: bool = False


def get_interface(request: Request) -> ResonanceTouchInterface:
    return request.app.state.interface


def get_store(request: Request) -> PersonalizationStore:
    store = request.app.state.store
    if store is None:
        raise HTTPException(status_code=404, detail="No profile store configured")
    return store


@router.post("/api/touch")
async def submit_touch(
    body: TouchSampleRequest,
    interface: ResonanceTouchInterface = Depends(get_interface),
):
    """
    Run one touch sample through the pipeline.

    Returns:
        The resonance event, or null if a pipeline stage failed
    """
    values = body.model_dump()
    if values["timestamp"] is None:
        values["timestamp"] = interface.clock.time()

    try:
        event = await interface.process_touch(TouchSample(**values))
    except SampleRejectedError as e:
        raise HTTPException(status_code=409, detail=e.message)

    return {"resonance": to_payload(event) if event is not None else None}


@router.get("/api/status")
async def get_status(interface: ResonanceTouchInterface = Depends(get_interface)):
    return interface.get_status().model_dump()


@router.get("/api/stats")
async def get_stats(interface: ResonanceTouchInterface = Depends(get_interface)):
    return interface.get_stats().model_dump()


@router.get("/api/config")
async def get_config(interface: ResonanceTouchInterface = Depends(get_interface)):
    return interface.get_config().model_dump()


@router.put("/api/config")
async def update_config(
    overrides: Dict[str, Dict[str, Any]],
    interface: ResonanceTouchInterface = Depends(get_interface),
):
    """Apply section overrides; every violation is reported on rejection."""
    try:
        config = await interface.update_config(overrides)
    except ConfigValidationError as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return config.model_dump()


@router.post("/api/enable")
async def enable(interface: ResonanceTouchInterface = Depends(get_interface)):
    await interface.set_enabled(True)
    return {"status": interface.status.value}


@router.post("/api/disable")
async def disable(interface: ResonanceTouchInterface = Depends(get_interface)):
    await interface.set_enabled(False)
    return {"status": interface.status.value}


@router.get("/api/profile")
async def export_profile(
    include_private: bool = Query(False),
    store: PersonalizationStore = Depends(get_store),
):
    return store.export_profile(include_private=include_private)


@router.post("/api/profile/import")
async def import_profile(
    body: ProfileImportRequest,
    store: PersonalizationStore = Depends(get_store),
):
    try:
        store.import_profile(body.data, merge=body.merge)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    await store.save()
    return store.export_profile(include_private=True)


@router.websocket("/ws/events")
async def websocket_events_endpoint(websocket: WebSocket):
    """Streams every pipeline event to the client as JSON."""
    manager = websocket.app.state.connections
    interface = websocket.app.state.interface
    await manager.connect(websocket)
    try:
        # Send initial data
        await websocket.send_json(
            {"type": "status", "data": interface.get_status().model_dump(mode="json")}
        )

        # Keep the connection alive; clients are not expected to send anything
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        manager.disconnect(websocket)
