"""
Real-time fan-out of raw frames to connected WebSocket observers.

Fire-and-forget: each frame is sent once to every observer whose socket is
open at that moment. Observers that are not connected are skipped, and an
observer whose send fails is dropped. Nothing is queued or retried, and
there is no per-observer flow control.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


def _is_open(observer: WebSocket) -> bool:
    return (
        observer.client_state == WebSocketState.CONNECTED
        and observer.application_state == WebSocketState.CONNECTED
    )


class BroadcastHub:
    """Registry of live observers and the broadcast operation over them."""

    def __init__(self) -> None:
        self._observers: list[WebSocket] = []

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def connect(self, observer: WebSocket) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def disconnect(self, observer: WebSocket) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    async def broadcast(self, payload: str | bytes) -> int:
        """Send *payload* unmodified to every open observer.

        Text payloads go out as text frames and bytes as binary frames.
        Iterates a copy of the observer list so observers can connect or
        disconnect while a broadcast is awaiting a send.

        Args:
            payload: The raw frame to relay.

        Returns:
            int: Number of observers the payload was delivered to.
        """
        delivered = 0
        for observer in list(self._observers):
            if not _is_open(observer):
                continue
            try:
                if isinstance(payload, bytes):
                    await observer.send_bytes(payload)
                else:
                    await observer.send_text(payload)
            except Exception:
                logger.debug("Dropping observer after failed send", exc_info=True)
                self.disconnect(observer)
                continue
            delivered += 1
        logger.debug("Broadcast %d byte(s) to %d observer(s)", len(payload), delivered)
        return delivered
