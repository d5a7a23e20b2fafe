"""
Health check endpoint for the gateway.

Provides a simple GET /health endpoint that returns the service status with
HTTP 200, plus the number of RTUs and observers currently tracked. No
authentication is required; this is intended for Docker HEALTHCHECK and
internal monitoring only.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from fastapi import APIRouter

from eems.api.deps import Hub, Telemetry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(telemetry: Telemetry, hub: Hub) -> dict[str, str | int]:
    """Return a simple health status.

    Returns:
        dict: ``{"status": "ok", "devices": <n>, "observers": <n>}``.
    """
    return {
        "status": "ok",
        "devices": len(telemetry.registry),
        "observers": hub.observer_count,
    }
