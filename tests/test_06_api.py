#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""HTTP API tests: permission checks, error mapping and the main flows."""
# -----------------------------------------------------------------------------

from __future__ import annotations

import pytest

from bookwiki.core.security import create_access_token
from bookwiki.services.seed import DEFAULT_PERMISSIONS
from tests.conftest import auth_headers, make_user


# -----------------------------------------------------------------------------

async def _users(db_session):
    admin = await make_user(db_session, "admin", is_admin=True)
    writer = await make_user(db_session, "writer", tags=["Contributor"])
    reader = await make_user(db_session, "reader", tags=["Visitor"])
    return auth_headers(admin), auth_headers(writer), auth_headers(reader)


async def _create_page(client, headers, title="Intro", content="A", **extra):
    resp = await client.post("/api/v1/pages", json={
        "title": title, "content": content, **extra,
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── System ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_me_anonymous(client):
    resp = await client.get("/api/v1/me")
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] is None
    assert data["tags"] == ["Unauthenticated User"]
    assert data["permissions"] == ["view_pages"]


@pytest.mark.asyncio
async def test_me_contributor(client, db_session):
    _, writer, _ = await _users(db_session)
    resp = await client.get("/api/v1/me", headers=writer)
    data = resp.json()
    assert data["tags"] == ["Contributor"]
    assert "create_pages" in data["permissions"]
    assert "delete_pages" not in data["permissions"]


@pytest.mark.asyncio
async def test_bad_token(client):
    resp = await client.get("/api/v1/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_for_unknown_user(client):
    token = create_access_token("no-such-user")
    resp = await client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# ── Pages ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_anonymous_can_read_but_not_write(client, db_session):
    admin, _, _ = await _users(db_session)
    page = await _create_page(client, admin)

    resp = await client.get(f"/api/v1/pages/{page['id']}")
    assert resp.status_code == 200
    resp = await client.post("/api/v1/pages", json={"title": "X", "content": "y"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_contributor_edits_and_history(client, db_session):
    _, writer, _ = await _users(db_session)
    page = await _create_page(client, writer, "P", "A")

    for content in ("B", "C"):
        resp = await client.put(f"/api/v1/pages/{page['id']}", json={"content": content}, headers=writer)
        assert resp.status_code == 200, resp.text
    assert resp.json()["content"] == "C"

    resp = await client.get(f"/api/v1/pages/{page['id']}/history")
    assert resp.status_code == 200
    history = resp.json()
    assert [r["content"] for r in history] == ["B", "A"]

    resp = await client.get(f"/api/v1/pages/{page['id']}/history/{history[1]['id']}/diff")
    assert resp.status_code == 200
    assert {"type": "insert", "lines": ["C"]} in resp.json()["diff"]


@pytest.mark.asyncio
async def test_contributor_cannot_delete(client, db_session):
    admin, writer, _ = await _users(db_session)
    page = await _create_page(client, writer)

    resp = await client.delete(f"/api/v1/pages/{page['id']}", headers=writer)
    assert resp.status_code == 403
    resp = await client.delete(f"/api/v1/pages/{page['id']}", headers=admin)
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/pages/{page['id']}/history")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_protected_page_needs_protect_pages(client, db_session):
    admin, writer, _ = await _users(db_session)
    page = await _create_page(client, writer)

    resp = await client.put(f"/api/v1/pages/{page['id']}/protection", json={"enabled": True}, headers=writer)
    assert resp.status_code == 403
    resp = await client.put(f"/api/v1/pages/{page['id']}/protection", json={"enabled": True}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["is_protected"] is True

    resp = await client.put(f"/api/v1/pages/{page['id']}", json={"content": "B"}, headers=writer)
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/pages/{page['id']}/history")
    assert resp.json() == []

    resp = await client.put(f"/api/v1/pages/{page['id']}", json={"content": "B"}, headers=admin)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_rename_via_api(client, db_session):
    _, writer, _ = await _users(db_session)
    await _create_page(client, writer, "Taken")
    page = await _create_page(client, writer, "Mine")

    resp = await client.post(f"/api/v1/pages/{page['id']}/rename", json={"new_title": "Taken"}, headers=writer)
    assert resp.status_code == 409
    resp = await client.post(f"/api/v1/pages/{page['id']}/rename", json={"new_title": "Ours"}, headers=writer)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Ours"


@pytest.mark.asyncio
async def test_missing_page_is_404(client):
    resp = await client.get("/api/v1/pages/no-such-page")
    assert resp.status_code == 404
    assert "detail" in resp.json()


@pytest.mark.asyncio
async def test_blank_title_rejected(client, db_session):
    _, writer, _ = await _users(db_session)
    resp = await client.post("/api/v1/pages", json={"title": "   ", "content": "x"}, headers=writer)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_comment_toggle_needs_protect_pages(client, db_session):
    admin, writer, _ = await _users(db_session)
    page = await _create_page(client, writer, comments_enabled=True)
    url = f"/api/v1/pages/{page['id']}/comments-enabled"

    resp = await client.put(url, json={"enabled": False}, headers=writer)
    assert resp.status_code == 403
    resp = await client.get(f"/api/v1/pages/{page['id']}")
    assert resp.json()["comments_enabled"] is True

    resp = await client.put(url, json={"enabled": False}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["comments_enabled"] is False


@pytest.mark.asyncio
async def test_export_markdown(client, db_session):
    _, writer, reader = await _users(db_session)
    page = await _create_page(client, writer, "Release Notes", "Fixed things")
    url = f"/api/v1/pages/{page['id']}/export/markdown"

    resp = await client.get(url)
    assert resp.status_code == 401

    resp = await client.get(url, headers=reader)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/markdown")
    assert resp.headers["content-disposition"] == 'attachment; filename="release_notes.md"'
    assert resp.text.startswith("# Release Notes\n\nFixed things\n")


# ── Comments ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_comment_flow(client, db_session):
    admin, writer, reader = await _users(db_session)
    page = await _create_page(client, writer, comments_enabled=True)
    url = f"/api/v1/pages/{page['id']}/comments"

    resp = await client.post(url, json={"content": "hello"})
    assert resp.status_code == 401

    resp = await client.post(url, json={"content": "hello"}, headers=reader)
    assert resp.status_code == 201, resp.text
    top = resp.json()
    resp = await client.post(url, json={"content": "reply", "parent_id": top["id"]}, headers=writer)
    assert resp.status_code == 201
    assert resp.json()["parent_id"] == top["id"]

    # only the author or a moderator may edit
    resp = await client.put(f"/api/v1/comments/{top['id']}", json={"content": "edited"}, headers=writer)
    assert resp.status_code == 403
    resp = await client.put(f"/api/v1/comments/{top['id']}", json={"content": "edited"}, headers=reader)
    assert resp.status_code == 200
    assert resp.json()["content"] == "edited"

    resp = await client.delete(f"/api/v1/comments/{top['id']}", headers=admin)
    assert resp.status_code == 200
    resp = await client.get(url)
    assert resp.json() == []


@pytest.mark.asyncio
async def test_comments_disabled_is_403(client, db_session):
    _, writer, _ = await _users(db_session)
    page = await _create_page(client, writer)
    resp = await client.post(f"/api/v1/pages/{page['id']}/comments", json={"content": "x"}, headers=writer)
    assert resp.status_code == 403


# ── Tags, permissions & users ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_tag_management(client, db_session):
    admin, writer, _ = await _users(db_session)

    resp = await client.post("/api/v1/tags", json={"name": "Editors", "color": "#10B981"}, headers=writer)
    assert resp.status_code == 403
    resp = await client.post("/api/v1/tags", json={"name": "Editors", "color": "#10B981"}, headers=admin)
    assert resp.status_code == 201
    tag = resp.json()
    resp = await client.post("/api/v1/tags", json={"name": "Editors"}, headers=admin)
    assert resp.status_code == 409
    resp = await client.post("/api/v1/tags", json={"name": "Bad", "color": "red"}, headers=admin)
    assert resp.status_code == 422

    perms = {p["name"]: p for p in (await client.get("/api/v1/permissions", headers=admin)).json()}
    delete_pages = perms["delete_pages"]["id"]

    resp = await client.post(f"/api/v1/tags/{tag['id']}/permissions/{delete_pages}", headers=admin)
    assert resp.status_code == 200
    assert resp.json()["permissions"] == ["delete_pages"]

    resp = await client.delete(f"/api/v1/tags/{tag['id']}", headers=admin)
    assert resp.status_code == 200
    resp = await client.get(f"/api/v1/tags/{tag['id']}", headers=admin)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_system_tag_delete_is_403(client, db_session):
    admin, _, _ = await _users(db_session)
    tags = {t["name"]: t for t in (await client.get("/api/v1/tags", headers=admin)).json()}
    resp = await client.delete(f"/api/v1/tags/{tags['Visitor']['id']}", headers=admin)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_grant_through_tag_reaches_user(client, db_session):
    admin, _, _ = await _users(db_session)

    resp = await client.post("/api/v1/users", json={"username": "dora", "tags": ["Visitor"]}, headers=admin)
    assert resp.status_code == 201, resp.text
    dora = resp.json()
    headers = {"Authorization": f"Bearer {create_access_token(dora['id'])}"}

    resp = await client.post("/api/v1/pages", json={"title": "X", "content": "y"}, headers=headers)
    assert resp.status_code == 403

    resp = await client.put(f"/api/v1/users/{dora['id']}/tags", json={"tags": ["Contributor"]}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["tags"] == ["Contributor"]

    resp = await client.post("/api/v1/pages", json={"title": "X", "content": "y"}, headers=headers)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_user_management_requires_permission(client, db_session):
    admin, writer, _ = await _users(db_session)
    resp = await client.get("/api/v1/users", headers=writer)
    assert resp.status_code == 403
    resp = await client.get("/api/v1/users", headers=admin)
    assert resp.status_code == 200
    assert [u["username"] for u in resp.json()] == ["admin", "reader", "writer"]


@pytest.mark.asyncio
async def test_permission_crud(client, db_session):
    admin, _, _ = await _users(db_session)
    resp = await client.post("/api/v1/permissions", json={
        "name": "export_pages", "description": "Export", "category": "pages",
    }, headers=admin)
    assert resp.status_code == 201
    perm = resp.json()

    resp = await client.patch(f"/api/v1/permissions/{perm['id']}", json={"description": "Export all"}, headers=admin)
    assert resp.status_code == 200
    assert resp.json()["description"] == "Export all"

    resp = await client.delete(f"/api/v1/permissions/{perm['id']}", headers=admin)
    assert resp.status_code == 200
    names = [p["name"] for p in (await client.get("/api/v1/permissions", headers=admin)).json()]
    assert "export_pages" not in names


@pytest.mark.asyncio
async def test_tag_and_permission_reads_need_a_user(client, db_session):
    _, writer, _ = await _users(db_session)

    for url in ("/api/v1/tags", "/api/v1/tags/public", "/api/v1/permissions"):
        resp = await client.get(url)
        assert resp.status_code == 401, url

    resp = await client.get("/api/v1/tags", headers=writer)
    assert resp.status_code == 403
    resp = await client.get("/api/v1/tags/public", headers=writer)
    assert resp.status_code == 200
    public = {t["name"]: t for t in resp.json()}
    assert "permissions" not in public["Contributor"]

    resp = await client.get(f"/api/v1/tags/{public['Contributor']['id']}")
    assert resp.status_code == 401
    resp = await client.get(f"/api/v1/tags/{public['Contributor']['id']}", headers=writer)
    assert resp.status_code == 200
    assert "edit_pages" in resp.json()["permissions"]

    resp = await client.get("/api/v1/permissions", headers=writer)
    assert resp.status_code == 200
    assert len(resp.json()) == len(DEFAULT_PERMISSIONS)
