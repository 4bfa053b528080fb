#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Tag & permission registry
=========================
Authoritative store of tags, permissions and the grants between them.

Tag and permission names are unique and matched exactly (case-sensitive).
Grants are idempotent: granting twice or revoking something never granted
both succeed without a write.  Deleting a tag or a permission removes its
grant rows (and, for tags, its user assignments) in the same flush.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import flush
from bookwiki.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from bookwiki.models import Permission, Tag, TagPermission, UserTag

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

ADMINISTRATOR_TAG = "Administrator"
CONTRIBUTOR_TAG   = "Contributor"
VISITOR_TAG       = "Visitor"
GUEST_TAG         = "Unauthenticated User"

SYSTEM_TAGS = (ADMINISTRATOR_TAG, CONTRIBUTOR_TAG, VISITOR_TAG, GUEST_TAG)


# -----------------------------------------------------------------------------

def _clean_name(name: str, what: str) -> str:
    if name is None or not name.strip():
        raise ValidationError(f"{what} name must not be blank")
    return name


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Tags
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def get_tag(db: AsyncSession, tag_id: str) -> Tag:
    tag = await db.get(Tag, tag_id)
    if not tag:
        raise NotFoundError(f"Tag '{tag_id}' not found")
    return tag


# -----------------------------------------------------------------------------

async def get_tag_by_name(db: AsyncSession, name: str) -> Optional[Tag]:
    result = await db.execute(select(Tag).where(Tag.name == name))
    return result.scalar_one_or_none()


# -----------------------------------------------------------------------------

async def list_tags(db: AsyncSession) -> list[Tag]:
    result = await db.execute(select(Tag).order_by(Tag.name))
    return list(result.scalars().all())


# -----------------------------------------------------------------------------

async def create_tag(
    db: AsyncSession,
    name: str,
    color: str = "#3B82F6",
    *,
    is_system: bool = False,
) -> Tag:
    name = _clean_name(name, "Tag")
    if await get_tag_by_name(db, name):
        raise ConflictError(f"A tag named '{name}' already exists")

    tag = Tag(name=name, color=color, is_system=is_system)
    db.add(tag)
    await flush(db, f"creating tag '{name}'")
    log.info("Created tag %r (%s)", name, tag.id)
    return tag


# -----------------------------------------------------------------------------

async def update_tag(db: AsyncSession, tag_id: str, name: str, color: str) -> Tag:
    tag = await get_tag(db, tag_id)
    name = _clean_name(name, "Tag")

    if name != tag.name:
        if tag.is_system:
            raise ForbiddenError(f"The '{tag.name}' tag is a system tag and cannot be renamed")
        other = await get_tag_by_name(db, name)
        if other and other.id != tag.id:
            raise ConflictError(f"A tag named '{name}' already exists")
        log.info("Renaming tag %r to %r", tag.name, name)

    tag.name  = name
    tag.color = color
    await flush(db, f"updating tag '{name}'")
    return tag


# -----------------------------------------------------------------------------

async def delete_tag(db: AsyncSession, tag_id: str) -> None:
    """Delete a tag together with its grants and user assignments.

    Identities that still carry the tag's name keep working; the name simply
    stops resolving.
    """
    tag = await get_tag(db, tag_id)
    if tag.is_system:
        raise ForbiddenError(f"The '{tag.name}' tag is a system tag and cannot be deleted")

    name = tag.name
    await flush(
        db, f"deleting tag '{name}'",
        delete(TagPermission).where(TagPermission.tag_id == tag_id),
        delete(UserTag).where(UserTag.tag_id == tag_id),
        delete(Tag).where(Tag.id == tag_id),
    )
    log.info("Deleted tag %r (%s)", name, tag_id)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Permissions
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def get_permission(db: AsyncSession, permission_id: str) -> Permission:
    perm = await db.get(Permission, permission_id)
    if not perm:
        raise NotFoundError(f"Permission '{permission_id}' not found")
    return perm


# -----------------------------------------------------------------------------

async def get_permission_by_name(db: AsyncSession, name: str) -> Optional[Permission]:
    result = await db.execute(select(Permission).where(Permission.name == name))
    return result.scalar_one_or_none()


# -----------------------------------------------------------------------------

async def list_permissions(db: AsyncSession) -> list[tuple[Permission, int]]:
    """All permissions with the number of tags granting each."""
    q = (
        select(Permission, func.count(TagPermission.id))
        .outerjoin(TagPermission, TagPermission.permission_id == Permission.id)
        .group_by(Permission.id)
        .order_by(Permission.category, Permission.name)
    )
    result = await db.execute(q)
    return [(perm, count) for perm, count in result.all()]


# -----------------------------------------------------------------------------

async def create_permission(
    db: AsyncSession,
    name: str,
    description: str = "",
    category: str = "general",
) -> Permission:
    name = _clean_name(name, "Permission")
    if await get_permission_by_name(db, name):
        raise ConflictError(f"A permission named '{name}' already exists")

    perm = Permission(name=name, description=description, category=category or "general")
    db.add(perm)
    await flush(db, f"creating permission '{name}'")
    log.info("Created permission %r in category %r", name, perm.category)
    return perm


# -----------------------------------------------------------------------------

async def update_permission(
    db: AsyncSession,
    permission_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
) -> Permission:
    perm = await get_permission(db, permission_id)

    if name is not None and name != perm.name:
        name = _clean_name(name, "Permission")
        other = await get_permission_by_name(db, name)
        if other and other.id != perm.id:
            raise ConflictError(f"A permission named '{name}' already exists")
        perm.name = name
    if description is not None:
        perm.description = description
    if category is not None:
        perm.category = category

    await flush(db, f"updating permission '{perm.name}'")
    return perm


# -----------------------------------------------------------------------------

async def delete_permission(db: AsyncSession, permission_id: str) -> None:
    perm = await get_permission(db, permission_id)
    name = perm.name
    await flush(
        db, f"deleting permission '{name}'",
        delete(TagPermission).where(TagPermission.permission_id == permission_id),
        delete(Permission).where(Permission.id == permission_id),
    )
    log.info("Deleted permission %r", name)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Grants
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def _grant_row(db: AsyncSession, tag_id: str, permission_id: str) -> Optional[TagPermission]:
    result = await db.execute(
        select(TagPermission).where(
            TagPermission.tag_id == tag_id,
            TagPermission.permission_id == permission_id,
        )
    )
    return result.scalar_one_or_none()


# -----------------------------------------------------------------------------

async def grant_permission(db: AsyncSession, tag_id: str, permission_id: str) -> None:
    tag  = await get_tag(db, tag_id)
    perm = await get_permission(db, permission_id)
    if await _grant_row(db, tag_id, permission_id):
        return

    db.add(TagPermission(tag_id=tag_id, permission_id=permission_id))
    await flush(db, f"granting '{perm.name}' to tag '{tag.name}'")
    log.info("Granted %r to tag %r", perm.name, tag.name)


# -----------------------------------------------------------------------------

async def revoke_permission(db: AsyncSession, tag_id: str, permission_id: str) -> None:
    tag  = await get_tag(db, tag_id)
    perm = await get_permission(db, permission_id)
    row = await _grant_row(db, tag_id, permission_id)
    if row is None:
        return

    await db.delete(row)
    await flush(db, f"revoking '{perm.name}' from tag '{tag.name}'")
    log.info("Revoked %r from tag %r", perm.name, tag.name)


# -----------------------------------------------------------------------------

async def set_tag_permissions(
    db: AsyncSession,
    tag_id: str,
    permission_ids: Iterable[str],
) -> set[str]:
    """Replace the tag's grant set; returns the resulting permission names."""
    tag = await get_tag(db, tag_id)
    wanted = set(permission_ids)

    if wanted:
        result = await db.execute(select(Permission.id).where(Permission.id.in_(wanted)))
        missing = wanted - set(result.scalars().all())
        if missing:
            raise NotFoundError(f"Unknown permission id(s): {', '.join(sorted(missing))}")

    result = await db.execute(
        select(TagPermission.permission_id).where(TagPermission.tag_id == tag_id)
    )
    current = set(result.scalars().all())

    for permission_id in wanted - current:
        db.add(TagPermission(tag_id=tag_id, permission_id=permission_id))
    await flush(
        db, f"replacing permissions of tag '{tag.name}'",
        delete(TagPermission).where(
            TagPermission.tag_id == tag_id,
            TagPermission.permission_id.not_in(wanted),
        ),
    )
    log.info("Tag %r now grants %d permission(s)", tag.name, len(wanted))
    return await list_permissions_for_tag(db, tag_id)


# -----------------------------------------------------------------------------

async def list_permissions_for_tag(db: AsyncSession, tag_id: str) -> set[str]:
    await get_tag(db, tag_id)
    result = await db.execute(
        select(Permission.name)
        .join(TagPermission, TagPermission.permission_id == Permission.id)
        .where(TagPermission.tag_id == tag_id)
    )
    return set(result.scalars().all())


# -----------------------------------------------------------------------------

async def list_tags_with_permissions(db: AsyncSession) -> list[tuple[Tag, list[str]]]:
    q = (
        select(Tag, Permission.name)
        .outerjoin(TagPermission, TagPermission.tag_id == Tag.id)
        .outerjoin(Permission, Permission.id == TagPermission.permission_id)
        .order_by(Tag.name, Permission.category, Permission.name)
    )
    result = await db.execute(q)

    grouped: dict[str, tuple[Tag, list[str]]] = {}
    for tag, perm_name in result.all():
        entry = grouped.setdefault(tag.id, (tag, []))
        if perm_name is not None:
            entry[1].append(perm_name)
    return list(grouped.values())


# -----------------------------------------------------------------------------
