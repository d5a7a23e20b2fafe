"""
FastAPI application factory for the EEMS telemetry gateway.

The lifespan builds the process-wide objects (telemetry state, broadcast
hub, document store, aggregator, ingress handler and tick scheduler),
stores them on ``app.state``, starts the aggregator loop, and tears it all
down on shutdown.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from eems.api.energy import router as energy_router
from eems.api.health import router as health_router
from eems.api.ws import telemetry_socket
from eems.config import EemsSettings
from eems.db.session import create_engine, create_session_factory, init_schema
from eems.services.aggregation import ENERGY_ROLLUPS, PeriodicAggregator
from eems.services.broadcast import BroadcastHub
from eems.services.ingress import IngressHandler
from eems.services.scheduler import TickScheduler
from eems.services.state import TelemetryState
from eems.store.documents import InMemoryDocumentStore, SqlDocumentStore

logger = logging.getLogger(__name__)

MEMORY_STORE_URL = "memory://"


def _masked_url(url: str) -> str:
    """Return *url* with any password hidden, for log output."""
    if not url:
        return "disabled"
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "unparseable"


def log_config_summary(settings: EemsSettings) -> None:
    """Log a config summary at startup, with credentials masked."""
    logger.info(
        "Gateway starting with config: "
        "database_url=%s, redis_url=%s, timezone=%s, offline_timeout_s=%s, "
        "buffer_capacity=%s, scheduler_enabled=%s, scheduler_interval_s=%s, "
        "slot_minutes=%s, daily_window_start=%s, energy_rollup=%s, "
        "default_rtu_id=%s, ws_path=%s",
        _masked_url(settings.database_url),
        _masked_url(settings.redis_url),
        settings.timezone,
        settings.offline_timeout_s,
        settings.buffer_capacity,
        settings.scheduler_enabled,
        settings.scheduler_interval_s,
        settings.slot_minutes,
        settings.daily_window_start.isoformat(),
        settings.energy_rollup,
        settings.default_rtu_id,
        settings.ws_path,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build shared services, run the scheduler.

    Startup:
        - Builds the document store (SQL or in-memory) and, if enabled,
          creates its schema.
        - Builds state, hub, aggregator, ingress handler and scheduler.
        - Starts the aggregator tick loop.

    Shutdown:
        - Stops the tick loop and disposes of the database engine.
    """
    settings: EemsSettings = app.state.settings
    log_config_summary(settings)

    engine = None
    if settings.database_url == MEMORY_STORE_URL:
        store = InMemoryDocumentStore()
        logger.warning("Using in-memory document store; aggregates will not persist")
    else:
        engine = create_engine(settings.database_url)
        if settings.auto_create_schema:
            await init_schema(engine)
        store = SqlDocumentStore(create_session_factory(engine))

    telemetry = TelemetryState.create(
        capacity=settings.buffer_capacity,
        offline_timeout=settings.offline_timeout,
    )
    hub = BroadcastHub()
    aggregator = PeriodicAggregator(
        telemetry,
        store,
        tz=settings.tz,
        offline_timeout=settings.offline_timeout,
        slot_minutes=settings.slot_minutes,
        daily_window_start=settings.daily_window_start,
        default_rtu_id=settings.default_rtu_id,
        energy_rollup=ENERGY_ROLLUPS[settings.energy_rollup],
    )
    ingress = IngressHandler(
        telemetry,
        hub,
        aggregator,
        default_rtu_id=settings.default_rtu_id,
    )
    scheduler = TickScheduler(aggregator.tick, settings.scheduler_interval_s)

    app.state.telemetry = telemetry
    app.state.hub = hub
    app.state.store = store
    app.state.aggregator = aggregator
    app.state.ingress = ingress
    app.state.scheduler = scheduler

    if settings.scheduler_enabled:
        scheduler.start()
    logger.info("EEMS gateway ready, WebSocket on %s", settings.ws_path)
    try:
        yield
    finally:
        await scheduler.stop()
        if engine is not None:
            await engine.dispose()
        logger.info("EEMS gateway shutting down")


def create_app(settings: EemsSettings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Gateway settings; loaded from the environment if None.

    Returns:
        FastAPI: The configured application.
    """
    if settings is None:
        settings = EemsSettings()

    app = FastAPI(
        title="EEMS Telemetry Gateway",
        description="Energy meter telemetry ingest, live relay and rollups.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    app.include_router(health_router)
    app.include_router(energy_router)
    app.add_api_websocket_route(settings.ws_path, telemetry_socket)

    @app.get("/")
    async def root() -> dict:
        """Root welcome endpoint.

        Returns:
            dict: JSON object with application status.
        """
        return {
            "success": True,
            "message": "Welcome to EEMS API",
            "status": "Server is running",
        }

    return app
