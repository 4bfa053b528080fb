#!/usr/bin/env python
#
#
# ----------------------------------------------------------------------------
"""
Security utilities
==================
- JWT access token creation/verification
- FastAPI dependency turning the bearer token into a CallerIdentity

Tokens are issued by whatever fronts the wiki (an SSO gateway, the admin
CLI, the tests); this module only verifies them.  The token subject is a
user id.  Requests without a token act as the anonymous caller.
"""
# ----------------------------------------------------------------------------

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import get_db
from .errors import NotFoundError
from bookwiki.services.permissions import (
    CallerIdentity, anonymous_identity, identity_for_user,
)

log = logging.getLogger(__name__)


# ----------------------------------------------------------------------------
# JWT tokens
# ----------------------------------------------------------------------------

_bearer_optional = HTTPBearer(auto_error=False)


# ----------------------------------------------------------------------------

def create_access_token(subject: str, extra: dict | None = None) -> str:
    s = get_settings()
    expire = datetime.now(tz=timezone.utc) + timedelta(minutes=s.access_token_expire_minutes)
    payload: dict[str, Any] = {
        "sub": str(subject),
        "exp": expire,
        "type": "access",
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, s.secret_key, algorithm=s.algorithm)


# ----------------------------------------------------------------------------

def decode_token(token: str) -> dict[str, Any]:
    s = get_settings()
    try:
        payload = jwt.decode(token, s.secret_key, algorithms=[s.algorithm])
    except JWTError:
        raise _credentials_error()
    if payload.get("sub") is None or payload.get("type") != "access":
        raise _credentials_error()
    return payload


# -----------------------------------------------------------------------------

def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# ----------------------------------------------------------------------------
# FastAPI dependencies
# ----------------------------------------------------------------------------

async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_optional),
    db: AsyncSession = Depends(get_db),
) -> CallerIdentity:
    """The CallerIdentity for this request; anonymous when no token is sent."""
    if credentials is None:
        return anonymous_identity()

    payload = decode_token(credentials.credentials)
    try:
        return await identity_for_user(db, payload["sub"])
    except NotFoundError:
        log.info("Token subject %s no longer exists", payload["sub"])
        raise _credentials_error()


# ----------------------------------------------------------------------------

async def get_authenticated_caller(
    caller: CallerIdentity = Depends(get_caller),
) -> CallerIdentity:
    if caller.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


# ----------------------------------------------------------------------------
