#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Tags router
===========
GET    /api/v1/tags                               — tags with their grants  [tag_management]
GET    /api/v1/tags/public                        — tag names and colors  [authenticated]
POST   /api/v1/tags                               — create tag            [tag_management]
GET    /api/v1/tags/{tag_id}                      — one tag with grants   [authenticated]
PUT    /api/v1/tags/{tag_id}                      — rename / recolor      [tag_management]
DELETE /api/v1/tags/{tag_id}                      — delete tag            [tag_management]
PUT    /api/v1/tags/{tag_id}/permissions          — replace grant set     [permission_management]
POST   /api/v1/tags/{tag_id}/permissions/{perm}   — grant permission      [permission_management]
DELETE /api/v1/tags/{tag_id}/permissions/{perm}   — revoke permission     [permission_management]
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import get_db
from bookwiki.core.security import get_authenticated_caller, get_caller
from bookwiki.models import Tag
from bookwiki.schemas import (
    OKResponse, TagCreate, TagPermissionsUpdate, TagResponse, TagUpdate,
    TagWithPermissions,
)
from bookwiki.services import tags as tag_svc
from bookwiki.services.permissions import CallerIdentity, require_permission


# -----------------------------------------------------------------------------

router = APIRouter(prefix="/tags", tags=["tags"])


# -----------------------------------------------------------------------------

def _tag_response(tag: Tag, permissions) -> TagWithPermissions:
    return TagWithPermissions(
        id=tag.id,
        name=tag.name,
        color=tag.color,
        is_system=tag.is_system,
        created_at=tag.created_at,
        permissions=sorted(permissions),
    )


# ── Tags ──────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[TagWithPermissions])
async def list_tags(
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "tag_management")
    rows = await tag_svc.list_tags_with_permissions(db)
    return [_tag_response(tag, perms) for tag, perms in rows]


# -----------------------------------------------------------------------------

@router.get("/public", response_model=list[TagResponse])
async def list_public_tags(
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    return await tag_svc.list_tags(db)


# -----------------------------------------------------------------------------

@router.post("", response_model=TagWithPermissions, status_code=201)
async def create_tag(
    data: TagCreate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "tag_management")
    tag = await tag_svc.create_tag(db, data.name, data.color)
    return _tag_response(tag, [])


# -----------------------------------------------------------------------------

@router.get("/{tag_id}", response_model=TagWithPermissions)
async def get_tag(
    tag_id: str,
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    tag = await tag_svc.get_tag(db, tag_id)
    return _tag_response(tag, await tag_svc.list_permissions_for_tag(db, tag_id))


# -----------------------------------------------------------------------------

@router.put("/{tag_id}", response_model=TagWithPermissions)
async def update_tag(
    tag_id: str,
    data: TagUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "tag_management")
    tag = await tag_svc.update_tag(db, tag_id, data.name, data.color)
    return _tag_response(tag, await tag_svc.list_permissions_for_tag(db, tag_id))


# -----------------------------------------------------------------------------

@router.delete("/{tag_id}", response_model=OKResponse)
async def delete_tag(
    tag_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "tag_management")
    await tag_svc.delete_tag(db, tag_id)
    return OKResponse(message="Tag deleted")


# ── Grants ────────────────────────────────────────────────────────────────────

@router.put("/{tag_id}/permissions", response_model=TagWithPermissions)
async def set_tag_permissions(
    tag_id: str,
    data: TagPermissionsUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    names = await tag_svc.set_tag_permissions(db, tag_id, data.permission_ids)
    return _tag_response(await tag_svc.get_tag(db, tag_id), names)


# -----------------------------------------------------------------------------

@router.post("/{tag_id}/permissions/{permission_id}", response_model=TagWithPermissions)
async def grant_permission(
    tag_id: str,
    permission_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    await tag_svc.grant_permission(db, tag_id, permission_id)
    tag = await tag_svc.get_tag(db, tag_id)
    return _tag_response(tag, await tag_svc.list_permissions_for_tag(db, tag_id))


# -----------------------------------------------------------------------------

@router.delete("/{tag_id}/permissions/{permission_id}", response_model=TagWithPermissions)
async def revoke_permission(
    tag_id: str,
    permission_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    await tag_svc.revoke_permission(db, tag_id, permission_id)
    tag = await tag_svc.get_tag(db, tag_id)
    return _tag_response(tag, await tag_svc.list_permissions_for_tag(db, tag_id))


# -----------------------------------------------------------------------------
