#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Users router
============
GET    /api/v1/me                        — the caller, its tags and permissions
GET    /api/v1/users                     — list users         [user_management]
POST   /api/v1/users                     — create user        [user_management]
GET    /api/v1/users/{user_id}           — one user           [user_management]
PUT    /api/v1/users/{user_id}/tags      — replace tag set    [user_management]
PATCH  /api/v1/users/{user_id}/admin     — set admin flag     [admin]
DELETE /api/v1/users/{user_id}           — delete user        [user_management]
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import get_db
from bookwiki.core.errors import ForbiddenError
from bookwiki.core.security import get_caller
from bookwiki.models import User
from bookwiki.schemas import (
    CallerResponse, FlagUpdate, OKResponse,
    UserCreate, UserResponse, UserTagsUpdate,
)
from bookwiki.services import users as user_svc
from bookwiki.services.permissions import (
    CallerIdentity, require_permission, resolve_permissions,
)


# -----------------------------------------------------------------------------

router = APIRouter(tags=["users"])


# -----------------------------------------------------------------------------

async def _user_response(db: AsyncSession, user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        display_name=user.display_name,
        is_admin=user.is_admin,
        tags=await user_svc.get_user_tag_names(db, user.id),
        created_at=user.created_at,
    )


# ── Me ────────────────────────────────────────────────────────────────────────

@router.get("/me", response_model=CallerResponse)
async def me(
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    return CallerResponse(
        user_id=caller.user_id,
        is_admin=caller.is_admin,
        tags=sorted(caller.tag_names),
        permissions=sorted(await resolve_permissions(db, caller)),
    )


# ── Users ─────────────────────────────────────────────────────────────────────

@router.get("/users", response_model=list[UserResponse])
async def list_users(
    skip:  int             = Query(0, ge=0),
    limit: int             = Query(100, ge=1, le=500),
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "user_management")
    users = await user_svc.list_users(db, skip=skip, limit=limit)
    return [await _user_response(db, u) for u in users]


# -----------------------------------------------------------------------------

@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "user_management")
    if data.is_admin and not caller.is_admin:
        raise ForbiddenError("Only administrators can create administrators")
    user = await user_svc.create_user(db, data)
    return await _user_response(db, user)


# -----------------------------------------------------------------------------

@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "user_management")
    return await _user_response(db, await user_svc.get_user_by_id(db, user_id))


# -----------------------------------------------------------------------------

@router.put("/users/{user_id}/tags", response_model=UserResponse)
async def set_user_tags(
    user_id: str,
    data: UserTagsUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "user_management")
    await user_svc.set_user_tags(db, user_id, data.tags)
    return await _user_response(db, await user_svc.get_user_by_id(db, user_id))


# -----------------------------------------------------------------------------

@router.patch("/users/{user_id}/admin", response_model=UserResponse)
async def set_admin(
    user_id: str,
    data: FlagUpdate,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    if not caller.is_admin:
        raise ForbiddenError("Admin access required")
    user = await user_svc.set_admin(db, user_id, data.enabled)
    return await _user_response(db, user)


# -----------------------------------------------------------------------------

@router.delete("/users/{user_id}", response_model=OKResponse)
async def delete_user(
    user_id: str,
    caller: CallerIdentity = Depends(get_caller),
    db: AsyncSession       = Depends(get_db),
):
    await require_permission(db, caller, "user_management")
    if user_id == caller.user_id:
        raise ForbiddenError("You cannot delete your own account")
    await user_svc.delete_user(db, user_id)
    return OKResponse(message="User deleted")


# -----------------------------------------------------------------------------
