#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Page service
============
Create / read / update / rename / delete for wiki pages, with history.

The live page row holds the current title and content.  Before any change to
either, a WikiPageRevision row is appended holding the values as they were,
in the same unit of work as the change itself.  Revisions are never edited
and only ever removed together with their page.

Diffs use Python's difflib SequenceMatcher.
Pages can be exported as a Markdown document.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import difflib
import logging
import re
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bookwiki.core.database import flush
from bookwiki.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from bookwiki.models import Comment, WikiPage, WikiPageRevision, utcnow
from bookwiki.schemas import PageCreate, PageUpdate

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _check_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Page title must not be blank")
    return title


async def _title_taken(db: AsyncSession, title: str, exclude_id: Optional[str] = None) -> bool:
    q = select(WikiPage.id).where(WikiPage.title == title)
    if exclude_id:
        q = q.where(WikiPage.id != exclude_id)
    result = await db.execute(q.limit(1))
    return result.scalar_one_or_none() is not None


def _check_writable(page: WikiPage, allow_protected: bool) -> None:
    if page.is_protected and not allow_protected:
        raise ForbiddenError(f"Page '{page.title}' is protected")


async def _next_seq(db: AsyncSession, page_id: str) -> int:
    result = await db.execute(
        select(func.max(WikiPageRevision.seq)).where(WikiPageRevision.page_id == page_id)
    )
    current = result.scalar_one_or_none()
    return (current or 0) + 1


async def _snapshot(
    db: AsyncSession,
    page: WikiPage,
    editor_id: Optional[str],
    reason: Optional[str],
) -> WikiPageRevision:
    """Queue a revision holding the page's title and content as they are now."""
    revision = WikiPageRevision(
        page_id=page.id,
        seq=await _next_seq(db, page.id),
        title=page.title,
        content=page.content,
        changed_by=editor_id,
        reason=reason.strip() if reason and reason.strip() else None,
        changed_at=utcnow(),
    )
    db.add(revision)
    return revision


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Reads
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def get_page(db: AsyncSession, page_id: str) -> WikiPage:
    page = await db.get(WikiPage, page_id)
    if not page:
        raise NotFoundError(f"Page '{page_id}' not found")
    return page


# -----------------------------------------------------------------------------

async def get_page_by_title(db: AsyncSession, title: str) -> WikiPage:
    result = await db.execute(select(WikiPage).where(WikiPage.title == title))
    page = result.scalar_one_or_none()
    if not page:
        raise NotFoundError(f"Page '{title}' not found")
    return page


# -----------------------------------------------------------------------------

async def list_pages(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    search: Optional[str] = None,
) -> list[WikiPage]:
    """Pages, most recently updated first.  *search* matches title or content."""
    q = select(WikiPage)
    if search:
        q = q.where(
            WikiPage.title.ilike(f"%{search}%") |
            WikiPage.content.ilike(f"%{search}%")
        )
    q = q.order_by(WikiPage.updated_at.desc(), WikiPage.title).offset(skip).limit(limit)
    result = await db.execute(q)
    return list(result.scalars().all())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Writes
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def create_page(
    db: AsyncSession,
    data: PageCreate,
    author_id: Optional[str] = None,
) -> WikiPage:
    title = _check_title(data.title)
    if await _title_taken(db, title):
        raise ConflictError(f"A page titled '{title}' already exists")

    now = utcnow()
    page = WikiPage(
        title=title,
        content=data.content,
        author_id=author_id,
        is_protected=data.is_protected,
        comments_enabled=data.comments_enabled,
        icon=data.icon,
        created_at=now,
        updated_at=now,
    )
    db.add(page)
    await flush(db, f"creating page '{title}'")
    log.info("Created page %r (%s)", title, page.id)
    return page


# -----------------------------------------------------------------------------

async def update_page(
    db: AsyncSession,
    page_id: str,
    data: PageUpdate,
    editor_id: Optional[str] = None,
    *,
    allow_protected: bool = False,
) -> WikiPage:
    page = await get_page(db, page_id)
    _check_writable(page, allow_protected)

    await _snapshot(db, page, editor_id, data.reason)
    page.content = data.content
    if data.icon is not None:
        page.icon = data.icon
    page.updated_at = utcnow()

    await flush(db, f"updating page '{page.title}'")
    log.info("Updated page %r by %s", page.title, editor_id)
    return page


# -----------------------------------------------------------------------------

async def rename_page(
    db: AsyncSession,
    page_id: str,
    new_title: str,
    editor_id: Optional[str] = None,
    *,
    reason: Optional[str] = None,
    allow_protected: bool = False,
) -> WikiPage:
    page = await get_page(db, page_id)
    new_title = _check_title(new_title)
    _check_writable(page, allow_protected)

    if new_title == page.title:
        return page
    if await _title_taken(db, new_title, exclude_id=page.id):
        raise ConflictError(f"A page titled '{new_title}' already exists")

    old_title = page.title
    await _snapshot(db, page, editor_id, reason)
    page.title = new_title
    page.updated_at = utcnow()

    await flush(db, f"renaming page '{old_title}'")
    log.info("Renamed page %r to %r", old_title, new_title)
    return page


# -----------------------------------------------------------------------------

async def delete_page(
    db: AsyncSession,
    page_id: str,
    *,
    allow_protected: bool = False,
) -> None:
    """Delete a page with all of its comments and revisions."""
    page = await get_page(db, page_id)
    _check_writable(page, allow_protected)

    title = page.title
    await flush(
        db, f"deleting page '{title}'",
        delete(Comment).where(Comment.page_id == page_id),
        delete(WikiPageRevision).where(WikiPageRevision.page_id == page_id),
        delete(WikiPage).where(WikiPage.id == page_id),
    )
    log.info("Deleted page %r (%s)", title, page_id)


# -----------------------------------------------------------------------------

async def set_protection(db: AsyncSession, page_id: str, flag: bool) -> WikiPage:
    page = await get_page(db, page_id)
    page.is_protected = flag
    await flush(db, f"setting protection of '{page.title}'")
    log.info("Page %r is_protected=%s", page.title, flag)
    return page


# -----------------------------------------------------------------------------

async def set_comments_enabled(db: AsyncSession, page_id: str, flag: bool) -> WikiPage:
    page = await get_page(db, page_id)
    page.comments_enabled = flag
    await flush(db, f"toggling comments of '{page.title}'")
    log.info("Page %r comments_enabled=%s", page.title, flag)
    return page


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# History
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

async def get_history(db: AsyncSession, page_id: str) -> list[WikiPageRevision]:
    """Revisions of a page, most recent first."""
    await get_page(db, page_id)
    result = await db.execute(
        select(WikiPageRevision)
        .where(WikiPageRevision.page_id == page_id)
        .order_by(WikiPageRevision.seq.desc())
    )
    return list(result.scalars().all())


# -----------------------------------------------------------------------------

async def get_revision(db: AsyncSession, page_id: str, revision_id: str) -> WikiPageRevision:
    result = await db.execute(
        select(WikiPageRevision).where(
            WikiPageRevision.id == revision_id,
            WikiPageRevision.page_id == page_id,
        )
    )
    revision = result.scalar_one_or_none()
    if not revision:
        raise NotFoundError(f"Revision '{revision_id}' not found")
    return revision


# -----------------------------------------------------------------------------

async def get_revision_diff(db: AsyncSession, page_id: str, revision_id: str) -> list[dict]:
    """
    Return a structured diff from a stored revision to the live content.
    Each item: {"type": "equal"|"insert"|"delete", "lines": ["..."]}
    """
    page = await get_page(db, page_id)
    revision = await get_revision(db, page_id, revision_id)

    a_lines = revision.content.splitlines(keepends=True)
    b_lines = page.content.splitlines(keepends=True)

    diff_groups = []
    matcher = difflib.SequenceMatcher(None, a_lines, b_lines)

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            diff_groups.append({"type": "equal",  "lines": a_lines[i1:i2]})
        elif tag == "replace":
            diff_groups.append({"type": "delete", "lines": a_lines[i1:i2]})
            diff_groups.append({"type": "insert", "lines": b_lines[j1:j2]})
        elif tag == "delete":
            diff_groups.append({"type": "delete", "lines": a_lines[i1:i2]})
        elif tag == "insert":
            diff_groups.append({"type": "insert", "lines": b_lines[j1:j2]})

    return diff_groups


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Export
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _export_filename(title: str, ext: str) -> str:
    stem = re.sub(r"[^a-z0-9]+", "_", title.lower(), flags=re.ASCII)
    return f"{stem or 'page'}.{ext}"


# -----------------------------------------------------------------------------

async def export_markdown(db: AsyncSession, page_id: str) -> tuple[str, str]:
    """Return ``(content, filename)`` for a Markdown download of the page."""
    page = await get_page(db, page_id)
    content = (
        f"# {page.title}\n\n"
        f"{page.content}\n\n"
        "---\n"
        "*Exported from BookWiki*\n"
        f"*Last updated: {page.updated_at.isoformat()}*\n"
    )
    return content, _export_filename(page.title, "md")


# -----------------------------------------------------------------------------
