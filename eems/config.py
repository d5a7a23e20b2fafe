"""
Gateway configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Every timing window the aggregator relies on (offline timeout, slot size,
daily rollup window, time zone) is configurable here so tests and
deployments never need to patch module constants.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from datetime import time, timedelta
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_RTU_ID = "RTU0001"


class EemsSettings(BaseSettings):
    """Gateway configuration.

    All values are loaded from environment variables (or a ``.env`` file).
    Nothing is required; defaults run a self-contained gateway backed by a
    local SQLite file.

    Attributes:
        database_url: SQLAlchemy async URL for the document store, or
            ``memory://`` to keep documents in process memory.
        redis_url: Optional Redis URL for caching the snapshot endpoint.
        cache_ttl_s: Snapshot cache TTL in seconds.
        timezone: IANA zone used for date and time-slot bucket keys.
        offline_timeout_s: Seconds of silence after which an RTU is offline.
        buffer_capacity: Readings kept in memory per RTU.
        scheduler_interval_s: Seconds between aggregator ticks.
        scheduler_enabled: Start the aggregator tick loop with the app.
        slot_minutes: Width of a power snapshot slot in minutes.
        daily_window_start: Local time-of-day the daily rollup window opens.
            The window closes at 23:59:59.999.
        default_rtu_id: RTU id used when a frame carries none.
        ws_path: Fixed path on which WebSocket upgrades are accepted.
        energy_rollup: Daily energy arithmetic, ``raw`` or ``delta``.
        auto_create_schema: Create the document table at startup.
        cors_origins: Comma-separated origins allowed to call the API.
        host: Bind address for the HTTP server.
        port: Bind port for the HTTP server.
        log_level: Root log level.
    """

    database_url: str = "sqlite+aiosqlite:///./eems.db"
    redis_url: str = ""
    cache_ttl_s: int = 2
    timezone: str = "Asia/Phnom_Penh"
    offline_timeout_s: int = 60
    buffer_capacity: int = 1000
    scheduler_interval_s: int = 10
    scheduler_enabled: bool = True
    slot_minutes: int = 10
    daily_window_start: time = time(23, 59, 50)
    default_rtu_id: str = DEFAULT_RTU_ID
    ws_path: str = "/ws"
    energy_rollup: Literal["raw", "delta"] = "raw"
    auto_create_schema: bool = True
    cors_origins: str = "*"
    host: str = "0.0.0.0"
    port: int = 10000
    log_level: str = "INFO"

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: str) -> str:
        """Validate that the zone name resolves in the tz database."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"TIMEZONE '{v}' is not a known IANA zone") from None
        return v

    @field_validator("offline_timeout_s", "scheduler_interval_s", "cache_ttl_s")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        """Validate durations are strictly positive."""
        if v < 1:
            raise ValueError("value must be >= 1 second")
        return v

    @field_validator("buffer_capacity")
    @classmethod
    def buffer_capacity_must_be_positive(cls, v: int) -> int:
        """Validate the per-RTU buffer holds at least one reading."""
        if v < 1:
            raise ValueError("BUFFER_CAPACITY must be >= 1")
        return v

    @field_validator("slot_minutes")
    @classmethod
    def slot_minutes_must_divide_hour(cls, v: int) -> int:
        """Validate slots tile the hour exactly (1, 2, 5, 10, 15, 30, 60)."""
        if v < 1 or 60 % v != 0:
            raise ValueError("SLOT_MINUTES must divide 60")
        return v

    @field_validator("ws_path")
    @classmethod
    def ws_path_must_be_absolute(cls, v: str) -> str:
        """Validate the WebSocket path starts with a slash."""
        if not v.startswith("/"):
            raise ValueError("WS_PATH must start with '/'")
        return v

    @field_validator("default_rtu_id")
    @classmethod
    def default_rtu_id_not_blank(cls, v: str) -> str:
        """Validate the fallback RTU id is not blank."""
        if not v.strip():
            raise ValueError("DEFAULT_RTU_ID must not be blank")
        return v.strip()

    @property
    def tz(self) -> ZoneInfo:
        """Return the configured zone as a ZoneInfo instance."""
        return ZoneInfo(self.timezone)

    @property
    def offline_timeout(self) -> timedelta:
        """Return the offline timeout as a timedelta."""
        return timedelta(seconds=self.offline_timeout_s)

    @property
    def cors_origin_list(self) -> list[str]:
        """Return CORS origins split on commas, blanks dropped."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
