import asyncio
import logging
from typing import List

from fastapi import WebSocket

logger = logging.getLogger("resonance_touch.api.connections")


class ConnectionManager:
    """Manages active WebSocket connections."""

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        """Accepts a new WebSocket connection."""
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket client connected ({len(self.active_connections)} active)")

    def disconnect(self, websocket: WebSocket):
        """Removes a WebSocket connection."""
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(
                f"WebSocket client disconnected ({len(self.active_connections)} active)"
            )

    async def broadcast(self, message: str):
        """Sends a message to all active WebSocket connections."""
        connections = list(self.active_connections)
        results = await asyncio.gather(
            *(conn.send_text(message) for conn in connections), return_exceptions=True
        )
        for conn, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping WebSocket client after send failure: {result}")
                self.disconnect(conn)
