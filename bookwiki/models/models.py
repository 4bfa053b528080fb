#!/usr/bin/env python
#
#
# ----------------------------------------------------------------------------
"""
ORM Models for BookWiki
=======================

Tables
------
users              — authors; no credentials are stored here
tags               — named role labels
permissions        — named capabilities
tag_permissions    — tag grants permission (unique pair)
user_tags          — user carries tag (unique pair)
wiki_pages         — live page state
wiki_page_history  — append-only snapshots of a page before each change
comments           — threaded remarks on a page

All primary keys are UUIDs.  Timestamps stored in UTC.

Foreign keys declare ON DELETE CASCADE for engines that enforce them, but the
service layer deletes dependents itself and never relies on them.
"""
# ----------------------------------------------------------------------------

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from bookwiki.core.database import Base


# ----------------------------------------------------------------------------

def _uuid_col(primary_key=False, nullable=False, **kw):
    """UUID column stored as String(36) for SQLite and PostgreSQL alike."""
    return mapped_column(
        String(36),
        primary_key=primary_key,
        nullable=nullable,
        default=lambda: str(uuid.uuid4()),
        **kw,
    )


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# users
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class User(Base):
    __tablename__ = "users"

    id:           Mapped[str]      = _uuid_col(primary_key=True)
    username:     Mapped[str]      = mapped_column(String(64), unique=True, nullable=False, index=True)
    display_name: Mapped[str]      = mapped_column(String(128), nullable=False, default="")
    is_admin:     Mapped[bool]     = mapped_column(Boolean, default=False, nullable=False)
    created_at:   Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# tags / permissions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Tag(Base):
    """
    A role label.  Users carry tags; tags grant permissions.  System tags are
    seeded at startup and may be recoloured but never renamed or deleted.
    """
    __tablename__ = "tags"

    id:         Mapped[str]      = _uuid_col(primary_key=True)
    name:       Mapped[str]      = mapped_column(String(64), unique=True, nullable=False, index=True)
    color:      Mapped[str]      = mapped_column(String(16), nullable=False, default="#3B82F6")
    is_system:  Mapped[bool]     = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ----------------------------------------------------------------------------

class Permission(Base):
    __tablename__ = "permissions"

    id:          Mapped[str]      = _uuid_col(primary_key=True)
    name:        Mapped[str]      = mapped_column(String(64), unique=True, nullable=False, index=True)
    description: Mapped[str]      = mapped_column(String(255), nullable=False, default="")
    category:    Mapped[str]      = mapped_column(String(32), nullable=False, default="general")
    created_at:  Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ----------------------------------------------------------------------------

class TagPermission(Base):
    __tablename__ = "tag_permissions"
    __table_args__ = (
        UniqueConstraint("tag_id", "permission_id", name="uq_tag_permissions_pair"),
    )

    id:            Mapped[str] = _uuid_col(primary_key=True)
    tag_id:        Mapped[str] = mapped_column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id: Mapped[str] = mapped_column(String(36), ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at:    Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# ----------------------------------------------------------------------------

class UserTag(Base):
    __tablename__ = "user_tags"
    __table_args__ = (
        UniqueConstraint("user_id", "tag_id", name="uq_user_tags_pair"),
    )

    id:      Mapped[str] = _uuid_col(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id:  Mapped[str] = mapped_column(String(36), ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# wiki_pages
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class WikiPage(Base):
    __tablename__ = "wiki_pages"

    id:               Mapped[str]        = _uuid_col(primary_key=True)
    title:            Mapped[str]        = mapped_column(String(512), nullable=False, index=True)
    content:          Mapped[str]        = mapped_column(Text, nullable=False, default="")
    author_id:        Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    is_protected:     Mapped[bool]       = mapped_column(Boolean, default=False, nullable=False)
    comments_enabled: Mapped[bool]       = mapped_column(Boolean, default=False, nullable=False)
    icon:             Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at:       Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at:       Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=utcnow)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# wiki_page_history  (append-only)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class WikiPageRevision(Base):
    """Title and content of a page as they were *before* one change."""
    __tablename__ = "wiki_page_history"
    __table_args__ = (
        UniqueConstraint("page_id", "seq", name="uq_wiki_page_history_page_seq"),
        Index("ix_wiki_page_history_page_latest", "page_id", "seq"),
    )

    id:         Mapped[str]        = _uuid_col(primary_key=True)
    page_id:    Mapped[str]        = mapped_column(String(36), ForeignKey("wiki_pages.id", ondelete="CASCADE"), nullable=False, index=True)
    # Per-page insertion counter; orders revisions saved within the same instant
    seq:        Mapped[int]        = mapped_column(Integer, nullable=False)
    title:      Mapped[str]        = mapped_column(String(512), nullable=False)
    content:    Mapped[str]        = mapped_column(Text, nullable=False, default="")
    changed_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    reason:     Mapped[str | None] = mapped_column(String(512), nullable=True)
    changed_at: Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=utcnow)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# comments
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_page_created", "page_id", "created_at"),
    )

    id:         Mapped[str]        = _uuid_col(primary_key=True)
    page_id:    Mapped[str]        = mapped_column(String(36), ForeignKey("wiki_pages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id:    Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    content:    Mapped[str]        = mapped_column(Text, nullable=False)
    parent_id:  Mapped[str | None] = mapped_column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at: Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime]   = mapped_column(DateTime(timezone=True), default=utcnow)

