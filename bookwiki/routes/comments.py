#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Comments router
===============
GET    /api/v1/pages/{page_id}/comments   — flat list, oldest first   [view_pages]
POST   /api/v1/pages/{page_id}/comments   — add comment or reply      [comment_pages]
PUT    /api/v1/comments/{comment_id}      — edit                      [author | moderate_comments]
DELETE /api/v1/comments/{comment_id}      — delete with replies       [author | moderate_comments]
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import get_db
from bookwiki.core.errors import ForbiddenError
from bookwiki.core.security import get_authenticated_caller, get_caller
from bookwiki.schemas import (
    CommentCreate, CommentResponse, CommentUpdate, OKResponse,
)
from bookwiki.services import comments as comment_svc
from bookwiki.services.permissions import CallerIdentity, require_permission


# -----------------------------------------------------------------------------

router = APIRouter(tags=["comments"])


# -----------------------------------------------------------------------------

async def _modifiable(db: AsyncSession, caller: CallerIdentity, comment_id: str):
    comment = await comment_svc.get_comment(db, comment_id)
    if not await comment_svc.can_modify_comment(db, caller, comment):
        raise ForbiddenError("You can only change your own comments")
    return comment


# ── Page comments ─────────────────────────────────────────────────────────────

@router.get("/pages/{page_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    page_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "view_pages")
    return await comment_svc.list_for_page(db, page_id)


# -----------------------------------------------------------------------------

@router.post("/pages/{page_id}/comments", response_model=CommentResponse, status_code=201)
async def create_comment(
    page_id: str,
    data: CommentCreate,
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "comment_pages")
    return await comment_svc.create_comment(db, page_id, caller.user_id, data)


# ── Single comment ────────────────────────────────────────────────────────────

@router.put("/comments/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    await _modifiable(db, caller, comment_id)
    return await comment_svc.update_comment(db, comment_id, data.content)


# -----------------------------------------------------------------------------

@router.delete("/comments/{comment_id}", response_model=OKResponse)
async def delete_comment(
    comment_id: str,
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    await _modifiable(db, caller, comment_id)
    removed = await comment_svc.delete_comment(db, comment_id)
    return OKResponse(message=f"Deleted {removed} comment(s)")


# -----------------------------------------------------------------------------
