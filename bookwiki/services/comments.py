#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Comment service: threaded comments on wiki pages.

Replies point at their parent through ``parent_id``; a parent is always on
the same page as its replies.  Deleting a comment deletes every reply below
it.  Comments are returned as a flat, oldest-first list; nesting is left to
the reader.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import flush
from bookwiki.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from bookwiki.models import Comment, utcnow
from bookwiki.schemas import CommentCreate
from bookwiki.services.pages import get_page
from bookwiki.services.permissions import CallerIdentity, is_authorized

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

def _check_content(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise ValidationError("Comment content must not be blank")
    return content


# -----------------------------------------------------------------------------

async def get_comment(db: AsyncSession, comment_id: str) -> Comment:
    comment = await db.get(Comment, comment_id)
    if not comment:
        raise NotFoundError(f"Comment '{comment_id}' not found")
    return comment


# -----------------------------------------------------------------------------

async def create_comment(
    db: AsyncSession,
    page_id: str,
    user_id: Optional[str],
    data: CommentCreate,
) -> Comment:
    page = await get_page(db, page_id)
    content = _check_content(data.content)

    if data.parent_id:
        parent = await get_comment(db, data.parent_id)
        if parent.page_id != page.id:
            raise ConflictError("Parent comment belongs to a different page")

    if not page.comments_enabled:
        raise ForbiddenError(f"Comments are disabled on page '{page.title}'")

    now = utcnow()
    comment = Comment(
        page_id=page.id,
        user_id=user_id,
        content=content,
        parent_id=data.parent_id or None,
        created_at=now,
        updated_at=now,
    )
    db.add(comment)
    await flush(db, f"adding comment to '{page.title}'")
    log.info("Comment %s added to page %r by %s", comment.id, page.title, user_id)
    return comment


# -----------------------------------------------------------------------------

async def update_comment(db: AsyncSession, comment_id: str, content: str) -> Comment:
    comment = await get_comment(db, comment_id)
    comment.content = _check_content(content)
    comment.updated_at = utcnow()
    await flush(db, f"updating comment {comment_id}")
    return comment


# -----------------------------------------------------------------------------

async def _subtree_ids(db: AsyncSession, root_id: str) -> list[str]:
    ids = [root_id]
    seen = {root_id}
    frontier = [root_id]
    while frontier:
        result = await db.execute(select(Comment.id).where(Comment.parent_id.in_(frontier)))
        frontier = [cid for cid in result.scalars().all() if cid not in seen]
        seen.update(frontier)
        ids.extend(frontier)
    return ids


# -----------------------------------------------------------------------------

async def delete_comment(db: AsyncSession, comment_id: str) -> int:
    """Delete a comment and all replies below it; returns how many went."""
    await get_comment(db, comment_id)
    ids = await _subtree_ids(db, comment_id)
    await flush(
        db, f"deleting comment {comment_id}",
        delete(Comment).where(Comment.id.in_(ids)),
    )
    log.info("Deleted comment %s with %d repl(ies)", comment_id, len(ids) - 1)
    return len(ids)


# -----------------------------------------------------------------------------

async def list_for_page(db: AsyncSession, page_id: str) -> list[Comment]:
    await get_page(db, page_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.page_id == page_id)
        .order_by(Comment.created_at, Comment.id)
    )
    return list(result.scalars().all())


# -----------------------------------------------------------------------------

async def count_for_page(db: AsyncSession, page_id: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Comment).where(Comment.page_id == page_id)
    )
    return result.scalar_one()


# -----------------------------------------------------------------------------

async def can_modify_comment(db: AsyncSession, identity: CallerIdentity, comment: Comment) -> bool:
    """Authors may change their own comments; moderators may change any."""
    if identity.user_id is not None and comment.user_id == identity.user_id:
        return True
    return await is_authorized(db, identity, "moderate_comments")


# -----------------------------------------------------------------------------
