"""Database engine and session management for the authoritative store.

This module provides SQLAlchemy async engine setup and schema lifecycle
operations using PostgreSQL as the backend. Nothing here is a module-level
global: the application context builds one engine at startup and disposes it
on shutdown.

Flow Diagram — Database Lifecycle
=================================
::
    ┌─────────────┐
    │ AppContext  │
    │ startup     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │create_engine│
    │ (pooled)    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()   │
    │ (optional)  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SqlMapping  │
    │ Store calls │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ dispose on  │
    │ shutdown    │
    └─────────────┘

Key Behaviours
===============
- Connection pooling with pre-ping so stale connections are replaced.
- ``init_db`` creates the ``urls`` table when ``AUTO_CREATE_SCHEMA`` is set;
  deployments that run ``migrations/`` leave it off.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    create_engine():  Pooled async engine from settings.
    create_session_factory():  async_sessionmaker bound to an engine.
    init_db():  Creates all tables.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shorturl.config import Settings

__all__ = ["Base", "create_engine", "create_session_factory", "init_db"]


class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_timeout=settings.STORE_TIMEOUT_SECONDS,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # imported for its side effect of registering the table on Base.metadata
    import shorturl.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
