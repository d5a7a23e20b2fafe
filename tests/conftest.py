"""
Shared test fixtures for gateway tests.

Provides isolated settings, in-memory and SQLite-backed document stores,
a fresh TelemetryState, and a FastAPI TestClient whose lifespan runs against
a temporary SQLite database with the aggregator loop disabled.

CHANGELOG:
- 2026-10-19: Initial creation
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from eems.config import EemsSettings
from eems.db.session import create_engine, create_session_factory, init_schema
from eems.services.state import TelemetryState
from eems.store.documents import InMemoryDocumentStore, SqlDocumentStore

# Every EemsSettings environment variable name, used for cleanup.
_ALL_EEMS_ENV_VARS = (
    "DATABASE_URL",
    "REDIS_URL",
    "CACHE_TTL_S",
    "TIMEZONE",
    "OFFLINE_TIMEOUT_S",
    "BUFFER_CAPACITY",
    "SCHEDULER_INTERVAL_S",
    "SCHEDULER_ENABLED",
    "SLOT_MINUTES",
    "DAILY_WINDOW_START",
    "DEFAULT_RTU_ID",
    "WS_PATH",
    "ENERGY_ROLLUP",
    "AUTO_CREATE_SCHEMA",
    "CORS_ORIGINS",
    "HOST",
    "PORT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_eems_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove gateway env vars and isolate from .env files before each test.

    Changes the working directory to tmp_path so no .env file is
    accidentally loaded by Pydantic BaseSettings.
    """
    for var in _ALL_EEMS_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def telemetry() -> TelemetryState:
    """Return an empty TelemetryState with default capacity and timeout."""
    return TelemetryState.create()


@pytest.fixture()
def memory_store() -> InMemoryDocumentStore:
    """Return an empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest_asyncio.fixture()
async def sql_store(tmp_path: Path) -> AsyncGenerator[SqlDocumentStore, None]:
    """Yield a SqlDocumentStore backed by a fresh SQLite file.

    The schema is created with init_schema; the engine is disposed after
    the test.
    """
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
    await init_schema(engine)
    try:
        yield SqlDocumentStore(create_session_factory(engine))
    finally:
        await engine.dispose()


@pytest.fixture()
def settings(tmp_path: Path) -> EemsSettings:
    """Return settings pointing at a temporary SQLite file, scheduler off."""
    return EemsSettings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}",
        scheduler_enabled=False,
    )


@pytest.fixture()
def client(settings: EemsSettings) -> Generator[TestClient, None, None]:
    """Create a FastAPI TestClient for integration testing.

    Uses a context manager so the application lifespan (startup/shutdown)
    runs.

    Yields:
        TestClient: Configured test client for the gateway app.
    """
    from eems.api.main import create_app

    with TestClient(create_app(settings)) as test_client:
        yield test_client
