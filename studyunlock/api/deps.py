"""Shared FastAPI dependencies and error translation."""

from __future__ import annotations

from fastapi import Header, HTTPException

from studyunlock.core.exceptions import StudyUnlockError


def get_current_user(x_user_id: str | None = Header(None)) -> str:
    """
    Resolve the acting learner.

    Authentication is handled upstream; the gateway forwards the user id in
    the ``X-User-Id`` header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def http_error(exc: StudyUnlockError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
