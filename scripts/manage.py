#!/usr/bin/env python
"""
Administrative commands for BookWiki.

Usage:
    .venv/bin/python scripts/manage.py seed
    .venv/bin/python scripts/manage.py reset --yes
    .venv/bin/python scripts/manage.py users
    .venv/bin/python scripts/manage.py create-user <username> [--admin] [--tag NAME ...]
    .venv/bin/python scripts/manage.py token <username>

The API verifies bearer tokens but never issues them; ``token`` prints one
for an existing user, signed with the configured SECRET_KEY.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure bookwiki is importable when run from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from bookwiki.core.config import get_settings
from bookwiki.core.database import (
    create_all_tables, drop_all_tables, get_session_factory, init_db,
)
from bookwiki.core.errors import WikiError
from bookwiki.core.security import create_access_token
from bookwiki.schemas import UserCreate
from bookwiki.services import users as user_svc
from bookwiki.services.seed import seed_defaults


# ── Commands ──────────────────────────────────────────────────────────────────

async def cmd_seed(db, args) -> None:
    await seed_defaults(db)
    print("Default tags and permissions are in place")


async def cmd_users(db, args) -> None:
    for u in await user_svc.list_users(db, limit=10_000):
        tags = ", ".join(await user_svc.get_user_tag_names(db, u.id)) or "-"
        print(f"  id={u.id} username={u.username} is_admin={u.is_admin} tags={tags}")


async def cmd_create_user(db, args) -> None:
    user = await user_svc.create_user(db, UserCreate(
        username=args.username,
        display_name=args.display_name or "",
        is_admin=args.admin,
        tags=args.tag,
    ))
    print(f"Created {user.username} ({user.id})")


async def cmd_token(db, args) -> None:
    user = await user_svc.get_user_by_username(db, args.username)
    print(create_access_token(user.id))


COMMANDS = {
    "seed":        cmd_seed,
    "reset":       cmd_seed,
    "users":       cmd_users,
    "create-user": cmd_create_user,
    "token":       cmd_token,
}


# ── Entry point ───────────────────────────────────────────────────────────────

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BookWiki administration")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("seed",  help="Create default tags, permissions and grants")
    sub.add_parser("users", help="List users with their tags")

    p = sub.add_parser("reset", help="Drop every table, recreate and reseed")
    p.add_argument("--yes", action="store_true", help="Confirm that all data is lost")

    p = sub.add_parser("create-user", help="Create a user")
    p.add_argument("username")
    p.add_argument("--display-name", default=None)
    p.add_argument("--admin", action="store_true", help="Make the user an administrator")
    p.add_argument("--tag", action="append", default=[], help="Tag name (repeatable)")

    p = sub.add_parser("token", help="Print a bearer token for a user")
    p.add_argument("username")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    s = get_settings()
    init_db(s.database_url)
    if args.command == "reset":
        if not args.yes:
            print("error: reset drops all data; pass --yes", file=sys.stderr)
            return 1
        await drop_all_tables()
    await create_all_tables()

    factory = get_session_factory()
    async with factory() as db:
        try:
            await COMMANDS[args.command](db, args)
            await db.commit()
        except WikiError as exc:
            await db.rollback()
            print(f"error: {exc.detail}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(parse_args())))
