#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Database engine, session factory and unit-of-work helpers.

Service functions receive the session explicitly and only ever ``flush``;
the session owner (``get_db`` for HTTP requests, the test fixtures otherwise)
decides whether the unit of work commits or rolls back.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .config import get_settings
from .errors import StorageError

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""
    pass


# -----------------------------------------------------------------------------

def make_engine(url: str | None = None, echo: bool | None = None):
    settings = get_settings()
    db_url  = url  or settings.database_url
    db_echo = echo if echo is not None else settings.db_echo

    kwargs: dict = {}
    if "sqlite" in db_url:
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"]    = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow

    return create_async_engine(db_url, echo=db_echo, **kwargs)


# -----------------------------------------------------------------------------

_engine = None
_session_factory = None


# -----------------------------------------------------------------------------

def init_db(url: str | None = None, echo: bool | None = None) -> None:
    """Initialise the engine and session factory.  Call once at startup."""
    global _engine, _session_factory
    _engine = make_engine(url, echo)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# -----------------------------------------------------------------------------

def get_engine():
    if _engine is None:
        init_db()
    return _engine


# -----------------------------------------------------------------------------

def get_session_factory():
    if _session_factory is None:
        init_db()
    return _session_factory


# -----------------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields one unit of work per request."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# -----------------------------------------------------------------------------

async def flush(db: AsyncSession, what: str, *statements) -> None:
    """Run bulk *statements*, flush pending writes, and roll back on failure.

    Every coupled write of an operation goes through one call, so either all
    of them reach the transaction or the transaction is rolled back and a
    StorageError is raised.
    """
    try:
        for stmt in statements:
            await db.execute(stmt)
        await db.flush()
    except SQLAlchemyError as exc:
        log.error("Storage failure while %s", what, exc_info=True)
        await db.rollback()
        raise StorageError(f"Storage failure while {what}") from exc


# -----------------------------------------------------------------------------

async def create_all_tables() -> None:
    """Create all tables (dev / test only; production uses Alembic)."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# -----------------------------------------------------------------------------

async def drop_all_tables() -> None:
    """Drop all tables (dev only)."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# -----------------------------------------------------------------------------
