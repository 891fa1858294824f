"""
Pocketbook Backend — Database Engine and Session Factory
=========================================================

What:  Async SQLAlchemy engine, session factory, and declarative Base.
How:   `Database` is built once by the application factory from Settings
       and handed to SqlStorage. No engine is created at import time.
Who:   main.create_app(), SqlStorage, Alembic (for Base.metadata), tests.
When:  Engine is created at startup; one AsyncSession per adapter call.

Connection Pooling Strategy:
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (local runs and tests) get no pool sizing; an in-memory
    SQLite URL uses a StaticPool so every session shares one connection.
"""

from typing import Any, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from pocketbook.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Registers every model with one metadata object, which Alembic reads
    for migrations and the tests use for create_all().
    """
    pass


def _engine_options(settings: Settings) -> Dict[str, Any]:
    url = settings.database_url
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": 3600,
    }


class Database:
    """
    Owns the engine and the session factory for one application instance.

    expire_on_commit=False: records are converted to domain values after
    the transaction commits, which must not trigger lazy reloads.
    """

    def __init__(self, settings: Settings):
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url,
            echo=settings.log_level == "DEBUG",
            **_engine_options(settings),
        )
        if settings.database_url.startswith("sqlite"):
            # SQLite only enforces foreign keys when asked, per connection.
            @event.listens_for(self.engine.sync_engine, "connect")
            def _enable_foreign_keys(dbapi_connection, _record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_all(self) -> None:
        """Create every table directly (tests and local SQLite runs; production uses Alembic)."""
        from pocketbook import models  # noqa: F401  registers the tables

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        """
        What:  Gracefully closes all connections in the pool.
        When:  Called during application shutdown (lifespan handler).
        """
        await self.engine.dispose()
