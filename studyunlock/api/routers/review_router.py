"""
Review session router.

Endpoints for spaced-repetition review sessions over unlocked flashcards.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from studyunlock.api.deps import get_current_user, http_error
from studyunlock.core.exceptions import StudyUnlockError
from studyunlock.db.database import get_session
from studyunlock.db.models import DifficultyRating, Flashcard, ReviewSession
from studyunlock.reviews import ReviewSessionService
from studyunlock.reviews.review_session_service import summary_to_dict

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class StartSessionRequest(BaseModel):
    course_id: UUID


class ReviewCard(BaseModel):
    id: UUID
    question: str
    answer: str | None
    source_timestamp: str | None
    next_review_at: datetime | None


class SessionResponse(BaseModel):
    session_id: UUID
    status: str
    flashcard_count: int
    current_card_index: int
    flashcards: list[ReviewCard] = Field(default_factory=list)


class RateRequest(BaseModel):
    """A single card rating."""

    flashcard_id: UUID
    difficulty: DifficultyRating
    time_to_reveal_ms: int | None = Field(None, ge=0)
    time_to_rate_ms: int | None = Field(None, ge=0)


class RateResponse(BaseModel):
    success: bool
    next_card_index: int
    is_complete: bool
    next_review_at: datetime
    mastered: bool


def _card(card: Flashcard) -> ReviewCard:
    return ReviewCard(
        id=card.id,
        question=card.question,
        answer=card.answer,
        source_timestamp=card.source_timestamp,
        next_review_at=card.next_review_at,
    )


def _session_response(review: ReviewSession, cards: list[Flashcard] | None = None) -> SessionResponse:
    return SessionResponse(
        session_id=review.id,
        status=review.status,
        flashcard_count=review.flashcard_count,
        current_card_index=review.current_card_index,
        flashcards=[_card(c) for c in cards or []],
    )


# ========================================
# Session Lifecycle Endpoints
# ========================================


@router.post("/sessions", response_model=SessionResponse, status_code=201, summary="Start review session")
def start_session(
    request: StartSessionRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> SessionResponse:
    """Start a session over the course's unlocked cards, due ones first."""
    try:
        review, cards = ReviewSessionService(db).start_review_session(user_id, request.course_id)
        return _session_response(review, cards)
    except StudyUnlockError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/rate", response_model=RateResponse, summary="Rate a flashcard")
def rate_card(
    session_id: UUID,
    request: RateRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> RateResponse:
    try:
        outcome = ReviewSessionService(db).rate_flashcard(
            session_id,
            user_id,
            request.flashcard_id,
            request.difficulty,
            time_to_reveal_ms=request.time_to_reveal_ms,
            time_to_rate_ms=request.time_to_rate_ms,
        )
    except StudyUnlockError as e:
        logger.warning(f"Rating rejected for session {session_id}: {e}")
        raise http_error(e)
    return RateResponse(
        success=True,
        next_card_index=outcome.next_card_index,
        is_complete=outcome.is_complete,
        next_review_at=outcome.next_review_at,
        mastered=outcome.mastered,
    )


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse, summary="Complete session")
def complete_session(
    session_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> SessionResponse:
    try:
        return _session_response(ReviewSessionService(db).complete_review_session(session_id, user_id))
    except StudyUnlockError as e:
        raise http_error(e)


@router.post("/sessions/{session_id}/abandon", response_model=SessionResponse, summary="Abandon session")
def abandon_session(
    session_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> SessionResponse:
    """Stop early. Ratings already given are kept."""
    try:
        return _session_response(ReviewSessionService(db).abandon_review_session(session_id, user_id))
    except StudyUnlockError as e:
        raise http_error(e)


@router.get("/sessions/{session_id}/summary", summary="Get session summary")
def get_summary(
    session_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, Any]:
    try:
        return summary_to_dict(ReviewSessionService(db).get_review_summary(session_id, user_id))
    except StudyUnlockError as e:
        raise http_error(e)


# ========================================
# Due Cards
# ========================================


@router.get("/due", response_model=list[ReviewCard], summary="Get due flashcards")
def get_due(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[ReviewCard]:
    return [_card(c) for c in ReviewSessionService(db).get_due_flashcards(user_id)]
