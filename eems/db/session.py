"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine. The default URL targets a local SQLite
file through aiosqlite; PostgreSQL deployments use the asyncpg driver
(``postgresql+asyncpg://...``). Unlike a request-scoped API, the gateway
builds one engine in the application lifespan and hands the session
factory to the document store.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from eems.db.models import Base


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: SQLAlchemy async URL.

    Returns:
        AsyncEngine: Configured async engine.
    """
    return create_async_engine(database_url, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    Args:
        engine: The async engine.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_schema(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet.

    Used for SQLite and development setups. Production PostgreSQL databases
    are migrated with Alembic instead.

    Args:
        engine: The async engine to create tables on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
