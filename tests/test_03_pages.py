#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""Tests for the page store: updates, renames, history, diffs and deletion."""
# -----------------------------------------------------------------------------

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from bookwiki.core.errors import (
    ConflictError, ForbiddenError, NotFoundError, StorageError, ValidationError,
)
from bookwiki.models import Comment, WikiPage, WikiPageRevision
from bookwiki.schemas import CommentCreate, PageUpdate
from bookwiki.services import comments as comment_svc
from bookwiki.services import pages as page_svc
from tests.conftest import make_page, make_user


# -----------------------------------------------------------------------------

async def _count(db, model, page_id):
    result = await db.execute(
        select(func.count()).select_from(model).where(model.page_id == page_id)
    )
    return result.scalar_one()


# ── Create ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_page_writes_no_history(db_session):
    page = await make_page(db_session, "Intro", "Hello")
    assert page.id
    assert page.content == "Hello"
    assert not page.is_protected
    assert not page.comments_enabled
    assert await page_svc.get_history(db_session, page.id) == []


@pytest.mark.asyncio
async def test_create_duplicate_title(db_session):
    await make_page(db_session, "Intro", "Hello")
    with pytest.raises(ConflictError):
        await make_page(db_session, "Intro", "Other")


@pytest.mark.asyncio
async def test_get_page_by_title(db_session):
    page = await make_page(db_session, "Intro", "Hello")
    assert (await page_svc.get_page_by_title(db_session, "Intro")).id == page.id
    with pytest.raises(NotFoundError):
        await page_svc.get_page_by_title(db_session, "intro")


@pytest.mark.asyncio
async def test_list_pages_most_recent_first(db_session):
    first = await make_page(db_session, "First", "1")
    second = await make_page(db_session, "Second", "2")
    await page_svc.update_page(db_session, first.id, PageUpdate(content="1b"))

    pages = await page_svc.list_pages(db_session)
    assert [p.id for p in pages] == [first.id, second.id]

    found = await page_svc.list_pages(db_session, search="2")
    assert [p.id for p in found] == [second.id]


# ── Update & history ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_history_scenario(db_session):
    editor = await make_user(db_session, "editor", commit=False)
    page = await make_page(db_session, "P", "A")

    await page_svc.update_page(db_session, page.id, PageUpdate(content="B"), editor.id)
    await page_svc.update_page(db_session, page.id, PageUpdate(content="C"), editor.id)

    history = await page_svc.get_history(db_session, page.id)
    assert [r.content for r in history] == ["B", "A"]
    assert all(r.changed_by == editor.id for r in history)
    assert (await page_svc.get_page(db_session, page.id)).content == "C"


@pytest.mark.asyncio
async def test_update_appends_exactly_one_revision(db_session):
    page = await make_page(db_session, "P", "before")
    before = len(await page_svc.get_history(db_session, page.id))

    updated = await page_svc.update_page(
        db_session, page.id, PageUpdate(content="after", icon="book", reason="typo"),
    )

    history = await page_svc.get_history(db_session, page.id)
    assert len(history) == before + 1
    assert history[0].content == "before"
    assert history[0].title == "P"
    assert history[0].reason == "typo"
    assert updated.content == "after"
    assert updated.icon == "book"


@pytest.mark.asyncio
async def test_update_same_content_still_recorded(db_session):
    page = await make_page(db_session, "P", "same")
    await page_svc.update_page(db_session, page.id, PageUpdate(content="same"))
    assert len(await page_svc.get_history(db_session, page.id)) == 1


@pytest.mark.asyncio
async def test_update_missing_page(db_session):
    with pytest.raises(NotFoundError):
        await page_svc.update_page(db_session, "no-such-page", PageUpdate(content="x"))
    rows = await db_session.execute(select(func.count()).select_from(WikiPageRevision))
    assert rows.scalar_one() == 0


@pytest.mark.asyncio
async def test_update_protected_page(db_session):
    page = await make_page(db_session, "P", "A", is_protected=True)

    with pytest.raises(ForbiddenError):
        await page_svc.update_page(db_session, page.id, PageUpdate(content="B"))
    assert await page_svc.get_history(db_session, page.id) == []
    assert (await page_svc.get_page(db_session, page.id)).content == "A"

    await page_svc.update_page(db_session, page.id, PageUpdate(content="B"), allow_protected=True)
    assert (await page_svc.get_page(db_session, page.id)).content == "B"


@pytest.mark.asyncio
async def test_history_of_missing_page(db_session):
    with pytest.raises(NotFoundError):
        await page_svc.get_history(db_session, "no-such-page")


@pytest.mark.asyncio
async def test_history_ordering_uses_insertion_order_on_ties(db_session):
    page = await make_page(db_session, "P", "v0")
    for i in range(1, 4):
        await page_svc.update_page(db_session, page.id, PageUpdate(content=f"v{i}"))

    history = await page_svc.get_history(db_session, page.id)
    stamp = history[0].changed_at
    for rev in history:
        rev.changed_at = stamp
    await db_session.flush()

    history = await page_svc.get_history(db_session, page.id)
    assert [r.content for r in history] == ["v2", "v1", "v0"]


@pytest.mark.asyncio
async def test_history_ordering_ignores_clock_steps(db_session):
    page = await make_page(db_session, "P", "v0")
    for i in range(1, 4):
        await page_svc.update_page(db_session, page.id, PageUpdate(content=f"v{i}"))

    # the clock went backwards between edits: newer revisions carry older stamps
    history = await page_svc.get_history(db_session, page.id)
    base = history[-1].changed_at
    for offset, rev in enumerate(history):
        rev.changed_at = base - timedelta(minutes=len(history) - offset)
    await db_session.flush()

    history = await page_svc.get_history(db_session, page.id)
    assert [r.content for r in history] == ["v2", "v1", "v0"]


@pytest.mark.asyncio
async def test_storage_failure_leaves_page_and_history_untouched(db_session, monkeypatch):
    page = await make_page(db_session, "P", "A")
    await page_svc.update_page(db_session, page.id, PageUpdate(content="B"))
    await db_session.commit()
    page_id = page.id

    async def broken_flush(*args, **kwargs):
        raise OperationalError("UPDATE wiki_pages", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "flush", broken_flush)
    with pytest.raises(StorageError):
        await page_svc.update_page(db_session, page_id, PageUpdate(content="C"))
    monkeypatch.undo()

    content = await db_session.execute(select(WikiPage.content).where(WikiPage.id == page_id))
    assert content.scalar_one() == "B"
    assert await _count(db_session, WikiPageRevision, page_id) == 1
    history = await page_svc.get_history(db_session, page_id)
    assert [r.content for r in history] == ["A"]


# ── Rename ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_rename_records_previous_title(db_session):
    page = await make_page(db_session, "Old", "body")
    renamed = await page_svc.rename_page(db_session, page.id, "New", reason="clearer")

    assert renamed.title == "New"
    history = await page_svc.get_history(db_session, page.id)
    assert len(history) == 1
    assert history[0].title == "Old"
    assert history[0].content == "body"
    assert history[0].reason == "clearer"


@pytest.mark.asyncio
async def test_rename_to_same_title_is_noop(db_session):
    page = await make_page(db_session, "Same", "body")
    await page_svc.rename_page(db_session, page.id, "Same")
    assert await page_svc.get_history(db_session, page.id) == []


@pytest.mark.asyncio
async def test_rename_conflict(db_session):
    await make_page(db_session, "Taken", "x")
    page = await make_page(db_session, "Mine", "y")
    with pytest.raises(ConflictError):
        await page_svc.rename_page(db_session, page.id, "Taken")
    assert await page_svc.get_history(db_session, page.id) == []


@pytest.mark.asyncio
async def test_rename_blank_title(db_session):
    page = await make_page(db_session, "Mine", "y")
    with pytest.raises(ValidationError):
        await page_svc.rename_page(db_session, page.id, "   ")


@pytest.mark.asyncio
async def test_rename_protected_page(db_session):
    page = await make_page(db_session, "Locked", "y", is_protected=True)
    with pytest.raises(ForbiddenError):
        await page_svc.rename_page(db_session, page.id, "Unlocked")


# ── Revisions & diff ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_get_revision_and_diff(db_session):
    page = await make_page(db_session, "P", "line one\nline two\n")
    await page_svc.update_page(db_session, page.id, PageUpdate(content="line one\nline 2\n"))
    rev = (await page_svc.get_history(db_session, page.id))[0]

    assert (await page_svc.get_revision(db_session, page.id, rev.id)).content == "line one\nline two\n"

    diff = await page_svc.get_revision_diff(db_session, page.id, rev.id)
    assert diff[0] == {"type": "equal", "lines": ["line one\n"]}
    assert {"type": "delete", "lines": ["line two\n"]} in diff
    assert {"type": "insert", "lines": ["line 2\n"]} in diff


@pytest.mark.asyncio
async def test_revision_of_other_page(db_session):
    a = await make_page(db_session, "A", "a")
    b = await make_page(db_session, "B", "b")
    await page_svc.update_page(db_session, a.id, PageUpdate(content="a2"))
    rev = (await page_svc.get_history(db_session, a.id))[0]
    with pytest.raises(NotFoundError):
        await page_svc.get_revision(db_session, b.id, rev.id)


# ── Flags ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_flags_do_not_write_history(db_session):
    page = await make_page(db_session, "P", "A")
    await page_svc.set_protection(db_session, page.id, True)
    await page_svc.set_comments_enabled(db_session, page.id, True)

    page = await page_svc.get_page(db_session, page.id)
    assert page.is_protected
    assert page.comments_enabled
    assert await page_svc.get_history(db_session, page.id) == []


# ── Delete ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_delete_page_cascades(db_session):
    user = await make_user(db_session, "talker", commit=False)
    page = await make_page(db_session, "Doomed", "A", comments_enabled=True)
    other = await make_page(db_session, "Survivor", "S", comments_enabled=True)
    await page_svc.update_page(db_session, page.id, PageUpdate(content="B"))
    top = await comment_svc.create_comment(db_session, page.id, user.id, CommentCreate(content="top"))
    await comment_svc.create_comment(db_session, page.id, user.id, CommentCreate(content="reply", parent_id=top.id))
    await comment_svc.create_comment(db_session, other.id, user.id, CommentCreate(content="elsewhere"))

    await page_svc.delete_page(db_session, page.id)

    assert await _count(db_session, WikiPageRevision, page.id) == 0
    assert await _count(db_session, Comment, page.id) == 0
    assert await _count(db_session, Comment, other.id) == 1
    with pytest.raises(NotFoundError):
        await page_svc.get_history(db_session, page.id)
    with pytest.raises(NotFoundError):
        await comment_svc.list_for_page(db_session, page.id)


@pytest.mark.asyncio
async def test_delete_protected_page(db_session):
    page = await make_page(db_session, "Locked", "y", is_protected=True)
    with pytest.raises(ForbiddenError):
        await page_svc.delete_page(db_session, page.id)
    await page_svc.delete_page(db_session, page.id, allow_protected=True)
    with pytest.raises(NotFoundError):
        await page_svc.get_page(db_session, page.id)


# ── Export ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_export_markdown(db_session):
    page = await make_page(db_session, "Getting Started: v2!", "Body text")

    content, filename = await page_svc.export_markdown(db_session, page.id)

    assert filename == "getting_started_v2_.md"
    assert content.startswith("# Getting Started: v2!\n\nBody text\n")
    assert f"*Last updated: {page.updated_at.isoformat()}*" in content


@pytest.mark.asyncio
async def test_export_markdown_missing_page(db_session):
    with pytest.raises(NotFoundError):
        await page_svc.export_markdown(db_session, "no-such-page")
