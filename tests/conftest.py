#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Pytest fixtures for BookWiki tests.
Uses an in-memory SQLite database so no external services are needed.
Every database starts out seeded with the default tags and permissions.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Iterable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bookwiki.core.database import Base, get_db
from bookwiki.core.security import create_access_token
from bookwiki.main import create_app
from bookwiki.models import User
from bookwiki.schemas import PageCreate, UserCreate
from bookwiki.services import pages as page_svc
from bookwiki.services import users as user_svc
from bookwiki.services.seed import seed_defaults


# -----------------------------------------------------------------------------

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


# -----------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_defaults(session)
        await session.commit()

    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session_factory(db_engine):
    """Shared sessionmaker for both client and db_session."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(db_session_factory):
    """Direct DB session for service tests and API test setup."""
    async with db_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine, db_session_factory):
    """HTTP test client wired to an isolated in-memory DB."""
    async def override_get_db():
        async with db_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# -----------------------------------------------------------------------------
# Helper functions for tests
# -----------------------------------------------------------------------------

async def make_user(db: AsyncSession, username: str, tags: Iterable[str] = (),
                    is_admin: bool = False, commit: bool = True) -> User:
    user = await user_svc.create_user(db, UserCreate(
        username=username,
        display_name=username.title(),
        is_admin=is_admin,
        tags=list(tags),
    ))
    if commit:
        await db.commit()
    return user


async def make_page(db: AsyncSession, title: str = "Page", content: str = "A",
                    author_id: str | None = None, **flags):
    return await page_svc.create_page(
        db, PageCreate(title=title, content=content, **flags), author_id,
    )


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


# -----------------------------------------------------------------------------
