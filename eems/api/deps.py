"""
FastAPI dependency injection providers.

The application lifespan builds the telemetry state, broadcast hub and
ingress handler once and stores them on ``app.state``. These providers
expose them to route handlers through FastAPI's Depends() mechanism, so
tests can swap any of them with ``app.dependency_overrides``.

CHANGELOG:
- 2026-10-19: Initial creation
"""

from typing import Annotated

from fastapi import Depends, Request

from eems.config import EemsSettings
from eems.services.broadcast import BroadcastHub
from eems.services.state import TelemetryState


def get_settings(request: Request) -> EemsSettings:
    """Return the settings the application was created with."""
    return request.app.state.settings


def get_telemetry(request: Request) -> TelemetryState:
    """Return the shared in-memory telemetry state."""
    return request.app.state.telemetry


def get_hub(request: Request) -> BroadcastHub:
    """Return the observer broadcast hub."""
    return request.app.state.hub


# Type aliases for injecting app-scoped objects via FastAPI Depends().
# Usage in route handlers:
#   async def my_route(telemetry: Telemetry):
#       telemetry.registry.latest("RTU0001")
Settings = Annotated[EemsSettings, Depends(get_settings)]
Telemetry = Annotated[TelemetryState, Depends(get_telemetry)]
Hub = Annotated[BroadcastHub, Depends(get_hub)]
