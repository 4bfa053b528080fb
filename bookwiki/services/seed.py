#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Default tags, permissions and grants.

``seed_defaults`` only adds what is missing, so it is safe to run at every
startup.  Grants are added to a tag only when that tag has none yet, so an
administrator's later edits to a system tag's grants are left alone.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import flush
from bookwiki.models import Permission, Tag, TagPermission
from bookwiki.services.tags import (
    ADMINISTRATOR_TAG, CONTRIBUTOR_TAG, GUEST_TAG, VISITOR_TAG,
)

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

DEFAULT_TAGS = [
    (ADMINISTRATOR_TAG, "#DC2626"),
    (CONTRIBUTOR_TAG,   "#2563EB"),
    (VISITOR_TAG,       "#6B7280"),
    (GUEST_TAG,         "#94A3B8"),
]

DEFAULT_PERMISSIONS = [
    # admin
    ("admin_panel_access",    "Access to the administration panel", "admin"),
    ("user_management",       "User management",                    "admin"),
    ("tag_management",        "Tag management",                     "admin"),
    ("permission_management", "Permission management",              "admin"),
    ("database_management",   "Database management",                "admin"),
    ("view_activity_admin",   "View activity (admin)",              "admin"),
    # pages
    ("view_pages",            "View pages",                         "pages"),
    ("create_pages",          "Create pages",                       "pages"),
    ("edit_pages",            "Edit pages",                         "pages"),
    ("delete_pages",          "Delete pages",                       "pages"),
    ("protect_pages",         "Protect/unprotect pages",            "pages"),
    ("reorder_pages",         "Reorder pages",                      "pages"),
    # comments
    ("comment_pages",         "Comment on pages",                   "comments"),
    ("moderate_comments",     "Edit or delete any comment",         "comments"),
    # user
    ("edit_own_profile",      "Edit own profile",                   "user"),
    ("change_avatar",         "Change avatar",                      "user"),
    ("view_activity",         "View activity",                      "user"),
]

_PROFILE = ["edit_own_profile", "change_avatar", "view_activity"]

DEFAULT_GRANTS = {
    CONTRIBUTOR_TAG: ["view_pages", "create_pages", "edit_pages", "comment_pages", *_PROFILE],
    VISITOR_TAG:     ["view_pages", "comment_pages", *_PROFILE],
    GUEST_TAG:       ["view_pages"],
}


# -----------------------------------------------------------------------------

async def seed_defaults(db: AsyncSession) -> None:
    result = await db.execute(select(Tag))
    tags = {t.name: t for t in result.scalars().all()}
    for name, color in DEFAULT_TAGS:
        if name in tags:
            tags[name].is_system = True
            continue
        tag = Tag(name=name, color=color, is_system=True)
        db.add(tag)
        tags[name] = tag
        log.info("Seeding tag %r", name)

    result = await db.execute(select(Permission))
    perms = {p.name: p for p in result.scalars().all()}
    for name, description, category in DEFAULT_PERMISSIONS:
        if name not in perms:
            perm = Permission(name=name, description=description, category=category)
            db.add(perm)
            perms[name] = perm
            log.info("Seeding permission %r", name)

    await flush(db, "seeding tags and permissions")

    grants = dict(DEFAULT_GRANTS)
    grants[ADMINISTRATOR_TAG] = [name for name, _, _ in DEFAULT_PERMISSIONS]

    for tag_name, perm_names in grants.items():
        tag = tags[tag_name]
        existing = await db.execute(
            select(func.count()).select_from(TagPermission).where(TagPermission.tag_id == tag.id)
        )
        if existing.scalar_one():
            continue
        for perm_name in perm_names:
            db.add(TagPermission(tag_id=tag.id, permission_id=perms[perm_name].id))
        log.info("Seeding %d grant(s) for tag %r", len(perm_names), tag_name)

    await flush(db, "seeding default grants")


# -----------------------------------------------------------------------------
