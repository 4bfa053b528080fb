#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Pydantic v2 schemas for request validation and response serialisation.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Shared
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class OKResponse(BaseModel):
    ok: bool = True
    message: str = "success"


# -----------------------------------------------------------------------------

def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tags & permissions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    color: str = Field(default="#3B82F6", pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        return _not_blank(v)


# -----------------------------------------------------------------------------

class TagUpdate(TagCreate):
    pass


# -----------------------------------------------------------------------------

class TagResponse(BaseModel):
    id: str
    name: str
    color: str
    is_system: bool
    created_at: datetime

    model_config = {"from_attributes": True}


# -----------------------------------------------------------------------------

class TagWithPermissions(TagResponse):
    permissions: list[str] = []


# -----------------------------------------------------------------------------

class TagPermissionsUpdate(BaseModel):
    """Replace a tag's grant set."""
    permission_ids: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------

class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z][a-z0-9_]*$")
    description: str = Field(default="", max_length=255)
    category: str = Field(default="general", min_length=1, max_length=32)


# -----------------------------------------------------------------------------

class PermissionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=64, pattern=r"^[a-z][a-z0-9_]*$")
    description: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=32)


# -----------------------------------------------------------------------------

class PermissionResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    tag_count: Optional[int] = None

    model_config = {"from_attributes": True}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class UserCreate(BaseModel):
    username: str = Field(..., min_length=2, max_length=64, pattern=r"^[a-zA-Z0-9_.-]+$")
    display_name: str = Field(default="", max_length=128)
    is_admin: bool = False
    tags: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------

class UserTagsUpdate(BaseModel):
    tags: list[str] = Field(default_factory=list)


# -----------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: str
    username: str
    display_name: str
    is_admin: bool
    tags: list[str]
    created_at: datetime


# -----------------------------------------------------------------------------

class CallerResponse(BaseModel):
    """The caller as the permission resolver sees it."""
    user_id: Optional[str]
    is_admin: bool
    tags: list[str]
    permissions: list[str]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Pages
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class PageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=512)
    content: str = Field(..., max_length=10_000_000)
    is_protected: bool = False
    comments_enabled: bool = False
    icon: Optional[str] = Field(None, max_length=64)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return _not_blank(v)


# -----------------------------------------------------------------------------

class PageUpdate(BaseModel):
    content: str = Field(..., max_length=10_000_000)
    icon: Optional[str] = Field(None, max_length=64)
    reason: Optional[str] = Field(None, max_length=512)


# -----------------------------------------------------------------------------

class PageRename(BaseModel):
    new_title: str = Field(..., min_length=1, max_length=512)
    reason: Optional[str] = Field(None, max_length=512)

    @field_validator("new_title")
    @classmethod
    def new_title_not_blank(cls, v: str) -> str:
        return _not_blank(v)


# -----------------------------------------------------------------------------

class FlagUpdate(BaseModel):
    enabled: bool


# -----------------------------------------------------------------------------

class PageResponse(BaseModel):
    id: str
    title: str
    content: str
    author_id: Optional[str]
    is_protected: bool
    comments_enabled: bool
    icon: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# -----------------------------------------------------------------------------

class PageSummary(BaseModel):
    """Listing item without the content body."""
    id: str
    title: str
    icon: Optional[str]
    is_protected: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


# -----------------------------------------------------------------------------

class RevisionResponse(BaseModel):
    id: str
    page_id: str
    title: str
    content: str
    changed_by: Optional[str]
    reason: Optional[str]
    changed_at: datetime

    model_config = {"from_attributes": True}


# -----------------------------------------------------------------------------

class DiffResponse(BaseModel):
    page_id: str
    revision_id: str
    diff: list[dict]   # list of {type: "equal"|"insert"|"delete", lines: [...]}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Comments
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=20_000)
    parent_id: Optional[str] = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _not_blank(v)


# -----------------------------------------------------------------------------

class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=20_000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return _not_blank(v)


# -----------------------------------------------------------------------------

class CommentResponse(BaseModel):
    id: str
    page_id: str
    user_id: Optional[str]
    content: str
    parent_id: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
