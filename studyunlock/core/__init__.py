"""
Core Module - Shared errors, logging and time helpers.

Components:
- exceptions: Domain error hierarchy translated to HTTP codes by the API
- log: Loguru sink configuration for the API and CLI
- clock: Naive-UTC timestamps stored in the database
"""

from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StudyUnlockError,
)
from studyunlock.core.log import setup_logging

__all__ = [
    "utcnow",
    "setup_logging",
    "StudyUnlockError",
    "NotFoundError",
    "PermissionDeniedError",
    "InvalidStateError",
]
