"""
FastAPI application for studyunlock.

Provides REST API for:
- Course syllabus and content job registration
- Concept matching and match feedback
- Flashcard unlocks and learner statistics
- Spaced-repetition review sessions
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from studyunlock import __version__
from studyunlock.core.clock import utcnow
from studyunlock.core.log import setup_logging
from studyunlock.db.database import check_connection, init_db
from studyunlock.semantic import EmbeddingService

settings = get_settings()


def _check_database_health() -> tuple[str, str | None]:
    """
    Check database connectivity.

    Returns:
        Tuple of (status, error_message). Status is "ok" or "error".
    """
    try:
        check_connection()
        return "ok", None
    except SQLAlchemyError as e:
        return "error", str(e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting studyunlock service...")
    init_db()
    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down studyunlock service...")


app = FastAPI(
    title="StudyUnlock",
    description="""
    Unlock flashcard answers by consuming the content that teaches them.

    ## Flow

    ```
    Content job (extracted concepts)
        ↓ embeddings + optional LLM verification
    Concept matches (exact / related / weak)
        ↓ confidence >= high threshold, or user confirmation
    Unlocked flashcards
        ↓ hard / medium / easy ratings
    Spaced-repetition reviews (1 / 3 / 7 days)
    ```
    """,
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ========================================
# Health & Status Endpoints
# ========================================


@app.get("/", tags=["Health"])
def root() -> dict[str, str]:
    """Root endpoint returning service info."""
    return {
        "service": "studyunlock",
        "version": __version__,
        "status": "ok",
    }


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, Any]:
    """Health check with an actual database round-trip."""
    db_status, db_error = _check_database_health()

    result: dict[str, Any] = {
        "status": "healthy" if db_status == "ok" else "unhealthy",
        "timestamp": utcnow().isoformat(),
        "components": {
            "database": db_status,
            "ai": "configured" if settings.has_ai_configured() else "not_configured",
        },
    }
    if db_error:
        result["errors"] = {"database": db_error}
    return result


@app.get("/config", tags=["Health"])
def get_config() -> dict[str, Any]:
    """Get current configuration (non-sensitive)."""
    return {
        "database_url": settings.database_url.split("@")[-1]
        if "@" in settings.database_url
        else "configured",
        "ai": {
            "gemini_configured": bool(settings.gemini_api_key),
            "model": settings.ai_model,
            "question_generation": settings.question_generation_enabled,
        },
        "embeddings": EmbeddingService().get_model_info(),
        "matching": settings.get_matching_config(),
        "reviews": settings.get_review_config(),
    }


# ========================================
# Import and mount routers
# ========================================

from studyunlock.api.routers import (  # noqa: E402
    content_router,
    flashcards_router,
    matching_router,
    review_router,
)

app.include_router(content_router.router, prefix="/api/content", tags=["Content"])
app.include_router(matching_router.router, prefix="/api/matching", tags=["Matching"])
app.include_router(flashcards_router.router, prefix="/api/flashcards", tags=["Flashcards"])
app.include_router(review_router.router, prefix="/api/reviews", tags=["Reviews"])
