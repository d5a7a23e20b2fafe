"""
WebSocket session endpoint for meter telemetry.

Mounted on the configured fixed path (``/ws`` by default); Starlette
routing rejects anything that is not a WebSocket upgrade on that path. Each
connection is registered as a broadcast observer for its lifetime and every
inbound frame is handed to the IngressHandler. Sessions carry no device
state: a meter that reconnects simply opens a new session.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import contextlib
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from eems.services.broadcast import BroadcastHub
from eems.services.ingress import IngressHandler

logger = logging.getLogger(__name__)


async def telemetry_socket(websocket: WebSocket) -> None:
    """Serve one WebSocket session until the peer disconnects or errors."""
    hub: BroadcastHub = websocket.app.state.hub
    ingress: IngressHandler = websocket.app.state.ingress

    # Registered before accept; the hub skips sockets that are not open yet.
    hub.connect(websocket)
    try:
        await websocket.accept()
        logger.info("Client connected: %s", websocket.client)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue
            await ingress.handle_frame(frame)
    except Exception:
        logger.error("WebSocket error, closing session", exc_info=True)
        if websocket.application_state == WebSocketState.CONNECTED:
            with contextlib.suppress(RuntimeError):
                await websocket.close(code=1011)
    finally:
        hub.disconnect(websocket)
        logger.info("Client disconnected: %s", websocket.client)
