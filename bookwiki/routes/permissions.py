#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Permissions router
==================
GET    /api/v1/permissions                    — with tag counts      [authenticated]
POST   /api/v1/permissions                    — create      [permission_management]
PATCH  /api/v1/permissions/{permission_id}    — update      [permission_management]
DELETE /api/v1/permissions/{permission_id}    — delete      [permission_management]
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import get_db
from bookwiki.core.security import get_authenticated_caller, get_caller
from bookwiki.schemas import (
    OKResponse, PermissionCreate, PermissionResponse, PermissionUpdate,
)
from bookwiki.services import tags as tag_svc
from bookwiki.services.permissions import CallerIdentity, require_permission


# -----------------------------------------------------------------------------

router = APIRouter(prefix="/permissions", tags=["permissions"])


# -----------------------------------------------------------------------------

@router.get("", response_model=list[PermissionResponse])
async def list_permissions(
    caller: CallerIdentity = Depends(get_authenticated_caller),
    db: AsyncSession       = Depends(get_db),
):
    rows = await tag_svc.list_permissions(db)
    return [
        PermissionResponse(
            id=perm.id,
            name=perm.name,
            description=perm.description,
            category=perm.category,
            tag_count=count,
        )
        for perm, count in rows
    ]


# -----------------------------------------------------------------------------

@router.post("", response_model=PermissionResponse, status_code=201)
async def create_permission(
    data: PermissionCreate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    perm = await tag_svc.create_permission(db, data.name, data.description, data.category)
    return PermissionResponse.model_validate(perm)


# -----------------------------------------------------------------------------

@router.patch("/{permission_id}", response_model=PermissionResponse)
async def update_permission(
    permission_id: str,
    data: PermissionUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    perm = await tag_svc.update_permission(
        db, permission_id,
        name=data.name,
        description=data.description,
        category=data.category,
    )
    return PermissionResponse.model_validate(perm)


# -----------------------------------------------------------------------------

@router.delete("/{permission_id}", response_model=OKResponse)
async def delete_permission(
    permission_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "permission_management")
    await tag_svc.delete_permission(db, permission_id)
    return OKResponse(message="Permission deleted")


# -----------------------------------------------------------------------------
