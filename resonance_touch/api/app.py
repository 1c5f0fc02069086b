"""
FastAPI Web Application for the Resonance Touch Interface

This module sets up the FastAPI application with:
- A lifespan that initializes the interface and persists the profile
- Periodic performance monitoring while the server runs
- Forwarding of every pipeline event to WebSocket clients
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from resonance_touch.api.connection_manager import ConnectionManager
from resonance_touch.api.routes import router
from resonance_touch.constants import EventType, SystemStatus
from resonance_touch.models import to_payload
from resonance_touch.modules.orchestrator import ResonanceTouchInterface
from resonance_touch.modules.personalization import PersonalizationStore

logger = logging.getLogger("resonance_touch.api")


def create_app(
    interface: ResonanceTouchInterface,
    store: Optional[PersonalizationStore] = None,
    monitor: bool = True,
) -> FastAPI:
    """Create the web application around an existing interface.

    Args:
        interface: Interface processing the submitted samples
        store: Profile store exposed by the profile endpoints
        monitor: Run the periodic metrics task while the server is up

    Returns:
        FastAPI: The configured application
    """
    connections = ConnectionManager()

    async def forward_event(event_type: EventType, payload: Any) -> None:
        message = json.dumps(
            {"type": event_type.value, "data": to_payload(payload)}, default=str
        )
        await connections.broadcast(message)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup logic
        logger.info("Starting Resonance Touch API")
        interface.events.subscribe_all(forward_event)
        if interface.status == SystemStatus.INITIALIZING:
            await interface.initialize()
        if monitor:
            interface.start_monitoring()

        yield  # Application runs here

        # Shutdown logic
        logger.info("Resonance Touch API shutting down")
        await interface.stop_monitoring()
        if store is not None:
            try:
                store.apply_retention()
                await store.save()
            except Exception as e:
                logger.error(f"Failed to save profile on shutdown: {e}", exc_info=True)
        interface.events.unsubscribe_all(forward_event)

    app = FastAPI(
        title="Resonance Touch API",
        description="Emotion-aware touch interaction service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.interface = interface
    app.state.store = store
    app.state.connections = connections

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
