#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Permission resolver
===================
Answers "may this caller do X?" from the caller's tag names and the current
state of the tag/permission registry.

A caller is described by a ``CallerIdentity``.  Administrators hold every
permission.  Everyone else holds the union of the permissions granted by the
tags whose names they carry; names that no longer match a tag are dropped.
Nothing is cached.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.errors import ForbiddenError, NotFoundError
from bookwiki.models import Permission, Tag, TagPermission, User, UserTag
from bookwiki.services.tags import GUEST_TAG

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class CallerIdentity:
    user_id:   Optional[str]
    is_admin:  bool = False
    tag_names: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if not isinstance(self.tag_names, frozenset):
            object.__setattr__(self, "tag_names", frozenset(self.tag_names))

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


# -----------------------------------------------------------------------------

def make_identity(
    user_id: Optional[str],
    is_admin: bool = False,
    tag_names: Iterable[str] = (),
) -> CallerIdentity:
    return CallerIdentity(user_id=user_id, is_admin=is_admin, tag_names=frozenset(tag_names))


# -----------------------------------------------------------------------------

def anonymous_identity() -> CallerIdentity:
    """Identity used for requests without credentials."""
    return CallerIdentity(user_id=None, is_admin=False, tag_names=frozenset({GUEST_TAG}))


# -----------------------------------------------------------------------------

async def identity_for_user(db: AsyncSession, user_id: str) -> CallerIdentity:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User '{user_id}' not found")

    result = await db.execute(
        select(Tag.name)
        .join(UserTag, UserTag.tag_id == Tag.id)
        .where(UserTag.user_id == user_id)
    )
    return make_identity(user.id, user.is_admin, result.scalars().all())


# -----------------------------------------------------------------------------

async def resolve_permissions(db: AsyncSession, identity: CallerIdentity) -> set[str]:
    """Effective permission names for *identity*."""
    if identity.is_admin:
        result = await db.execute(select(Permission.name))
        return set(result.scalars().all())

    if not identity.tag_names:
        return set()

    result = await db.execute(
        select(Tag.id, Tag.name).where(Tag.name.in_(identity.tag_names))
    )
    tags = {name: tag_id for tag_id, name in result.all()}

    dropped = identity.tag_names - tags.keys()
    if dropped:
        log.debug(
            "Ignoring unknown tag name(s) %s for caller %s",
            sorted(dropped), identity.user_id or "<anonymous>",
        )
    if not tags:
        return set()

    result = await db.execute(
        select(Permission.name)
        .join(TagPermission, TagPermission.permission_id == Permission.id)
        .where(TagPermission.tag_id.in_(tags.values()))
    )
    return set(result.scalars().all())


# -----------------------------------------------------------------------------

async def is_authorized(db: AsyncSession, identity: CallerIdentity, permission_name: str) -> bool:
    if identity.is_admin:
        return True
    return permission_name in await resolve_permissions(db, identity)


# -----------------------------------------------------------------------------

async def require_permission(db: AsyncSession, identity: CallerIdentity, permission_name: str) -> None:
    if not await is_authorized(db, identity, permission_name):
        log.info(
            "Denied %r to caller %s",
            permission_name, identity.user_id or "<anonymous>",
        )
        raise ForbiddenError(f"Permission '{permission_name}' required")


# -----------------------------------------------------------------------------
