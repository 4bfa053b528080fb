#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Pages router
============
GET    /api/v1/pages                                   — list pages          [view_pages]
POST   /api/v1/pages                                   — create page         [create_pages]
GET    /api/v1/pages/{page_id}                         — get page            [view_pages]
PUT    /api/v1/pages/{page_id}                         — save new content    [edit_pages]
POST   /api/v1/pages/{page_id}/rename                  — rename page         [edit_pages]
DELETE /api/v1/pages/{page_id}                         — delete page         [delete_pages]
PUT    /api/v1/pages/{page_id}/protection              — protect/unprotect   [protect_pages]
PUT    /api/v1/pages/{page_id}/comments-enabled        — toggle comments     [protect_pages]
GET    /api/v1/pages/{page_id}/history                 — revisions           [view_pages]
GET    /api/v1/pages/{page_id}/history/{rev_id}        — one revision        [view_pages]
GET    /api/v1/pages/{page_id}/history/{rev_id}/diff   — revision vs live    [view_pages]
GET    /api/v1/pages/{page_id}/export/markdown         — Markdown download   [view_pages, authenticated]

Protected pages can only be changed or deleted by callers that also hold
``protect_pages``.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import get_db
from bookwiki.core.security import get_authenticated_caller, get_caller
from bookwiki.schemas import (
    DiffResponse, FlagUpdate, OKResponse,
    PageCreate, PageRename, PageResponse,
    PageSummary, PageUpdate, RevisionResponse,
)
from bookwiki.services import pages as page_svc
from bookwiki.services.permissions import (
    CallerIdentity, is_authorized, require_permission,
)


# -----------------------------------------------------------------------------

router = APIRouter(prefix="/pages", tags=["pages"])


# -----------------------------------------------------------------------------

async def _may_touch_protected(db: AsyncSession, caller: CallerIdentity) -> bool:
    return await is_authorized(db, caller, "protect_pages")


# ── List ─────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[PageSummary])
async def list_pages(
    skip:   int             = Query(0, ge=0),
    limit:  int             = Query(100, ge=1, le=500),
    search: Optional[str]   = Query(None, max_length=256),
    caller: CallerIdentity  = Depends(get_caller),
    db: AsyncSession        = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    return await page_svc.list_pages(db, skip=skip, limit=limit, search=search)


# ── Create ────────────────────────────────────────────────────────────────────

@router.post("", response_model=PageResponse, status_code=201)
async def create_page(
    data: PageCreate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "create_pages")
    if data.is_protected:
        await require_permission(db, caller, "protect_pages")
    return await page_svc.create_page(db, data, author_id=caller.user_id)


# ── Read ──────────────────────────────────────────────────────────────────────

@router.get("/{page_id}", response_model=PageResponse)
async def get_page(
    page_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    return await page_svc.get_page(db, page_id)


# ── Update ────────────────────────────────────────────────────────────────────

@router.put("/{page_id}", response_model=PageResponse)
async def update_page(
    page_id: str,
    data: PageUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "edit_pages")
    return await page_svc.update_page(
        db, page_id, data, caller.user_id,
        allow_protected=await _may_touch_protected(db, caller),
    )


# ── Rename ────────────────────────────────────────────────────────────────────

@router.post("/{page_id}/rename", response_model=PageResponse)
async def rename_page(
    page_id: str,
    data: PageRename,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "edit_pages")
    return await page_svc.rename_page(
        db, page_id, data.new_title, caller.user_id,
        reason=data.reason,
        allow_protected=await _may_touch_protected(db, caller),
    )


# ── Delete ────────────────────────────────────────────────────────────────────

@router.delete("/{page_id}", response_model=OKResponse)
async def delete_page(
    page_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "delete_pages")
    await page_svc.delete_page(
        db, page_id,
        allow_protected=await _may_touch_protected(db, caller),
    )
    return OKResponse(message="Page deleted")


# ── Flags ─────────────────────────────────────────────────────────────────────

@router.put("/{page_id}/protection", response_model=PageResponse)
async def set_protection(
    page_id: str,
    data: FlagUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "protect_pages")
    return await page_svc.set_protection(db, page_id, data.enabled)


# -----------------------------------------------------------------------------

@router.put("/{page_id}/comments-enabled", response_model=PageResponse)
async def set_comments_enabled(
    page_id: str,
    data: FlagUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "protect_pages")
    return await page_svc.set_comments_enabled(db, page_id, data.enabled)


# ── History ───────────────────────────────────────────────────────────────────

@router.get("/{page_id}/history", response_model=list[RevisionResponse])
async def get_history(
    page_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    return await page_svc.get_history(db, page_id)


# -----------------------------------------------------------------------------

@router.get("/{page_id}/history/{revision_id}", response_model=RevisionResponse)
async def get_revision(
    page_id: str,
    revision_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    return await page_svc.get_revision(db, page_id, revision_id)


# -----------------------------------------------------------------------------

@router.get("/{page_id}/history/{revision_id}/diff", response_model=DiffResponse)
async def get_revision_diff(
    page_id: str,
    revision_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    diff = await page_svc.get_revision_diff(db, page_id, revision_id)
    return DiffResponse(page_id=page_id, revision_id=revision_id, diff=diff)


# ── Export ────────────────────────────────────────────────────────────────────

@router.get("/{page_id}/export/markdown")
async def export_markdown(
    page_id: str,
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    content, filename = await page_svc.export_markdown(db, page_id)
    return Response(
        content=content,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -----------------------------------------------------------------------------
