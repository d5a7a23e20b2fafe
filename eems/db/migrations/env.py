"""
Alembic environment configuration for async migrations.

Runs migrations through the async SQLAlchemy engine (asyncpg or aiosqlite)
and exposes the document table metadata for autogenerate. SQLite targets
use batch mode. The database URL comes from the same EemsSettings the
gateway uses, so DATABASE_URL (or .env) is the single source.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from eems.config import EemsSettings
from eems.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    url = EemsSettings().database_url
    if url == "memory://":
        raise RuntimeError("DATABASE_URL selects the in-memory store; nothing to migrate")
    return url


def _configure(sqlite: bool, **options) -> None:
    """Configure the migration context for the energy_documents schema.

    SQLite cannot ALTER most column properties, so batch mode rebuilds the
    table there. Column type changes (JSON vs JSONB) are compared.
    """
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=sqlite,
        compare_type=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    url = _database_url()
    _configure(
        url.startswith("sqlite"),
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def _run_sync_migrations(connection) -> None:
    _configure(connection.dialect.name == "sqlite", connection=connection)


async def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _database_url()
    engine = async_engine_from_config(
        configuration, prefix="sqlalchemy.", poolclass=pool.NullPool
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
