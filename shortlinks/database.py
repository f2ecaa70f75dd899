"""Database engine and session factory construction.

This module builds the SQLAlchemy async engine and session factory used by the
durable record store. Nothing is created at import time; the service container
owns the engine and passes the session factory to the store explicitly.

Flow Diagram: Database Lifecycle
=================================
::
    ┌─────────────┐
    │ build_engine │
    │ (settings)   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()    │
    │ create_all   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ build_session│
    │ _factory()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Store opens  │
    │ one session  │
    │ per call     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()   │
    │ dispose      │
    └─────────────┘

How to Use
===========
**Step 1: Build on startup**::
    engine = build_engine(settings.DATABASE_URL)
    await init_db(engine)

**Step 2: Hand the factory to the store**::
    store = SQLRecordStore(build_session_factory(engine))

**Step 3: Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- Connection pooling is configured for production workloads on server databases.
- SQLite URLs (local runs, tests) skip the pool sizing options.
- Tables are created automatically on application startup.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine for a database URL.
    build_session_factory():  Creates the session factory bound to an engine.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

__all__ = ["Base", "build_engine", "build_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    options: dict = {"echo": echo}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10, pool_pre_ping=True)
    return create_async_engine(database_url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Register the tables on Base.metadata before create_all.
    import shortlinks.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
