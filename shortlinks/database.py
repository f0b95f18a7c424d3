"""Database engine and session factory for the shortlinks service.

This module builds the SQLAlchemy async engine from settings and hands out a
session factory. Nothing here is global: the application lifespan creates the
engine once at startup, wraps it in a ``LinkStore`` and disposes it on
shutdown.

Flow Diagram: Database Lifecycle
=================================
::
    ┌──────────────────┐
    │  lifespan start  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ create_engine_   │
    │ from_settings()  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ init_db()        │
    │ (create tables)  │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ create_session_  │
    │ factory()        │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ serve requests   │
    └────────┬─────────┘
             ▼
    ┌──────────────────┐
    │ close_db()       │
    │ (dispose engine) │
    └──────────────────┘

How to Use
===========
**Step 1: Build the engine**::
    engine = create_engine_from_settings(settings)

**Step 2: Create tables and a session factory**::
    await init_db(engine)
    session_factory = create_session_factory(engine)

**Step 3: Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- The configured URL is used as given; there is no DNS or fallback logic.
- Pool sizing applies to server databases only; SQLite URLs skip it.
- Sessions do not expire attributes on commit, so returned rows stay readable.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine_from_settings():  The single connection factory.
    create_session_factory():  Async sessionmaker bound to an engine.
    init_db():  Creates all tables.
    close_db():  Disposes the engine.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlinks.config import Settings

__all__ = ["Base", "create_engine_from_settings", "create_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def create_engine_from_settings(settings: Settings, **overrides: Any) -> AsyncEngine:
    options: dict[str, Any] = {"echo": settings.sql_echo}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            connect_args={"timeout": settings.DB_CONNECT_TIMEOUT_SECONDS},
        )
    options.update(overrides)
    return create_async_engine(settings.DATABASE_URL, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
