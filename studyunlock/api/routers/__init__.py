"""API routers for studyunlock."""

from studyunlock.api.routers import (
    content_router,
    flashcards_router,
    matching_router,
    review_router,
)

__all__ = [
    "content_router",
    "matching_router",
    "flashcards_router",
    "review_router",
]
