"""
HTTP endpoints over the in-memory telemetry buffer and the broadcast hub.

- GET /api/energy/message returns every RTU's buffered readings, served
  from a short-lived Redis cache when one is configured.
- POST /api/energy/push relays an arbitrary JSON body to all WebSocket
  observers without touching the registry.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from eems.api.deps import Hub, Settings, Telemetry
from eems.cache.redis_client import read_cached_snapshot, write_cached_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/energy", tags=["energy"])


class PushResponse(BaseModel):
    """Response from the push endpoint."""

    success: bool
    delivered: int


@router.get("/message", response_model=None)
async def get_messages(
    settings: Settings,
    telemetry: Telemetry,
) -> dict[str, Any] | JSONResponse:
    """Return all buffered readings grouped by RTU id.

    Returns:
        dict: ``{"success": true, "count": <readings>, "devices": <rtus>,
        "data": {<rtu_id>: [<reading>, ...]}}``.
        JSONResponse: 404 when no frame has been received yet.
    """
    cached = await read_cached_snapshot(settings.redis_url)
    if cached is not None:
        return cached

    registry = telemetry.registry
    count = registry.total_readings()
    if count == 0:
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": "No message received from any RTU yet"},
        )

    body = {
        "success": True,
        "count": count,
        "devices": len(registry),
        "data": registry.snapshot(),
    }
    await write_cached_snapshot(settings.redis_url, body, settings.cache_ttl_s)
    return body


@router.post("/push", response_model=PushResponse)
async def push(request: Request, hub: Hub) -> PushResponse:
    """Relay a JSON body verbatim to every connected observer.

    Raises:
        HTTPException: 422 if the body is not valid UTF-8 JSON.
    """
    raw = await request.body()
    try:
        text = raw.decode("utf-8")
        json.loads(text)
    except ValueError:
        raise HTTPException(status_code=422, detail="Body must be valid JSON.") from None

    delivered = await hub.broadcast(text)
    logger.info("Pushed %d byte(s) to %d observer(s)", len(raw), delivered)
    return PushResponse(success=True, delivered=delivered)
