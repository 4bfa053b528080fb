#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
BookWiki FastAPI application factory
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bookwiki.core.config import get_settings
from bookwiki.core.database import create_all_tables, get_session_factory, init_db
from bookwiki.core.errors import WikiError
from bookwiki.routes import comments, pages, permissions, tags, users
from bookwiki.services.seed import seed_defaults

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings = get_settings()
    init_db()
    await create_all_tables()   # safe: CREATE TABLE IF NOT EXISTS
    if settings.seed_on_startup:
        await _seed_defaults()
    log.info("%s %s started (%s)", settings.app_name, settings.app_version, settings.environment)
    yield


# -----------------------------------------------------------------------------

async def _seed_defaults() -> None:
    """Create the system tags, default permissions and grants if missing."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            await seed_defaults(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# -----------------------------------------------------------------------------

def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# -----------------------------------------------------------------------------

def create_app() -> FastAPI:
    settings = get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="A tag-permissioned wiki with page history and threaded comments.",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ──────────────────────────────────────────────────────────────

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── API routers ───────────────────────────────────────────────────────

    prefix = "/api/v1"

    app.include_router(tags.router,        prefix=prefix)
    app.include_router(permissions.router, prefix=prefix)
    app.include_router(users.router,       prefix=prefix)
    app.include_router(pages.router,       prefix=prefix)
    app.include_router(comments.router,    prefix=prefix)

    # ── Global exception handlers ─────────────────────────────────────────

    @app.exception_handler(WikiError)
    async def wiki_error(request: Request, exc: WikiError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # ── Health check ──────────────────────────────────────────────────────

    @app.get("/api/health", tags=["system"])
    async def health():
        return {"status": "ok", "version": settings.app_version, "app": settings.app_name}

    return app


# -----------------------------------------------------------------------------

app = create_app()


# -----------------------------------------------------------------------------
