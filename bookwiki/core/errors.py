#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Domain errors
=============
Raised by the service layer and translated into HTTP responses by the
handler registered in ``bookwiki.main``.

NotFoundError    404 — referenced entity absent
ConflictError    409 — uniqueness violation, cross-page comment parent
ForbiddenError   403 — authorization denied (raised by callers of the resolver)
ValidationError  422 — malformed input
StorageError     503 — the database failed underneath an operation
"""
# -----------------------------------------------------------------------------

from __future__ import annotations


# -----------------------------------------------------------------------------

class WikiError(Exception):
    status_code: int = 400

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(WikiError):
    status_code = 404


class ConflictError(WikiError):
    status_code = 409


class ForbiddenError(WikiError):
    status_code = 403


class ValidationError(WikiError):
    status_code = 422


class StorageError(WikiError):
    status_code = 503


# -----------------------------------------------------------------------------
