#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
User service: create users and manage their admin flag and tags.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import flush
from bookwiki.core.errors import ConflictError, NotFoundError
from bookwiki.models import Comment, Tag, User, UserTag, WikiPage, WikiPageRevision
from bookwiki.schemas import UserCreate

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

async def _tag_ids_for(db: AsyncSession, tag_names: Iterable[str]) -> list[str]:
    names = list(dict.fromkeys(tag_names))
    if not names:
        return []
    result = await db.execute(select(Tag.id, Tag.name).where(Tag.name.in_(names)))
    found = {name: tag_id for tag_id, name in result.all()}
    missing = [n for n in names if n not in found]
    if missing:
        raise NotFoundError(f"Unknown tag(s): {', '.join(missing)}")
    return [found[n] for n in names]


# -----------------------------------------------------------------------------

async def create_user(db: AsyncSession, data: UserCreate) -> User:
    existing = await db.execute(select(User).where(User.username == data.username))
    if existing.scalar_one_or_none():
        raise ConflictError("Username already taken")

    tag_ids = await _tag_ids_for(db, data.tags)

    user = User(
        username=data.username,
        display_name=data.display_name or data.username,
        is_admin=data.is_admin,
    )
    db.add(user)
    await flush(db, f"creating user '{data.username}'")

    for tag_id in tag_ids:
        db.add(UserTag(user_id=user.id, tag_id=tag_id))
    await flush(db, f"tagging user '{data.username}'")

    log.info("Created user %r with tags %s", user.username, list(data.tags))
    return user


# -----------------------------------------------------------------------------

async def get_user_by_id(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


# -----------------------------------------------------------------------------

async def get_user_by_username(db: AsyncSession, username: str) -> User:
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return user


# -----------------------------------------------------------------------------

async def list_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> list[User]:
    result = await db.execute(select(User).order_by(User.username).offset(skip).limit(limit))
    return list(result.scalars().all())


# -----------------------------------------------------------------------------

async def set_admin(db: AsyncSession, user_id: str, is_admin: bool) -> User:
    user = await get_user_by_id(db, user_id)
    user.is_admin = is_admin
    await flush(db, f"setting admin flag of '{user.username}'")
    log.info("User %r is_admin=%s", user.username, is_admin)
    return user


# -----------------------------------------------------------------------------

async def get_user_tag_names(db: AsyncSession, user_id: str) -> list[str]:
    await get_user_by_id(db, user_id)
    result = await db.execute(
        select(Tag.name)
        .join(UserTag, UserTag.tag_id == Tag.id)
        .where(UserTag.user_id == user_id)
        .order_by(Tag.name)
    )
    return list(result.scalars().all())


# -----------------------------------------------------------------------------

async def set_user_tags(db: AsyncSession, user_id: str, tag_names: Iterable[str]) -> list[str]:
    """Replace the user's tag set.  Every name must match an existing tag."""
    user = await get_user_by_id(db, user_id)
    wanted = set(await _tag_ids_for(db, tag_names))

    result = await db.execute(select(UserTag.tag_id).where(UserTag.user_id == user_id))
    current = set(result.scalars().all())

    for tag_id in wanted - current:
        db.add(UserTag(user_id=user_id, tag_id=tag_id))
    await flush(
        db, f"replacing tags of '{user.username}'",
        delete(UserTag).where(
            UserTag.user_id == user_id,
            UserTag.tag_id.not_in(wanted),
        ),
    )
    names = await get_user_tag_names(db, user_id)
    log.info("User %r now carries tags %s", user.username, names)
    return names


# -----------------------------------------------------------------------------

async def delete_user(db: AsyncSession, user_id: str) -> None:
    """Delete a user.  Pages, revisions and comments they wrote are kept
    with the author reference cleared."""
    user = await get_user_by_id(db, user_id)
    username = user.username
    await flush(
        db, f"deleting user '{username}'",
        delete(UserTag).where(UserTag.user_id == user_id),
        update(WikiPage).where(WikiPage.author_id == user_id).values(author_id=None),
        update(WikiPageRevision).where(WikiPageRevision.changed_by == user_id).values(changed_by=None),
        update(Comment).where(Comment.user_id == user_id).values(user_id=None),
        delete(User).where(User.id == user_id),
    )
    log.info("Deleted user %r", username)


# -----------------------------------------------------------------------------
