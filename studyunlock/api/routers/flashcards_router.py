"""
Flashcards router.

Endpoints for the learner's flashcards, recent unlocks and unlock statistics.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from studyunlock.api.deps import get_current_user, http_error
from studyunlock.core.exceptions import StudyUnlockError
from studyunlock.db.database import get_session
from studyunlock.db.models import Flashcard, FlashcardState
from studyunlock.flashcards import UnlockService, get_user_unlock_stats

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class FlashcardResponse(BaseModel):
    id: UUID
    syllabus_concept_id: UUID
    question: str
    answer: str | None
    state: str
    source_timestamp: str | None
    unlocked_at: datetime | None
    times_reviewed: int
    times_correct: int
    next_review_at: datetime | None


class UnlockStatsResponse(BaseModel):
    total_unlocks: int
    total_locked: int
    total_mastered: int
    unlock_rate: float
    current_streak: int
    longest_streak: int
    last_unlock_date: date | None
    first_unlock_at: datetime | None


class RecentUnlockResponse(BaseModel):
    flashcard_id: UUID
    question: str
    content_job_id: UUID | None
    confidence: float
    unlocked_at: datetime


def _flashcard_response(card: Flashcard) -> FlashcardResponse:
    # Locked answers are never exposed.
    return FlashcardResponse(
        id=card.id,
        syllabus_concept_id=card.syllabus_concept_id,
        question=card.question,
        answer=card.answer if card.state != FlashcardState.LOCKED.value else None,
        state=card.state,
        source_timestamp=card.source_timestamp,
        unlocked_at=card.unlocked_at,
        times_reviewed=card.times_reviewed or 0,
        times_correct=card.times_correct or 0,
        next_review_at=card.next_review_at,
    )


# ========================================
# Flashcard Endpoints
# ========================================


@router.get("", response_model=list[FlashcardResponse], summary="List flashcards")
def list_flashcards(
    course_id: UUID | None = Query(None, description="Filter to one course"),
    state: FlashcardState | None = Query(None, description="locked, unlocked or mastered"),
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[FlashcardResponse]:
    cards = UnlockService(db).list_flashcards(user_id, course_id=course_id, state=state)
    return [_flashcard_response(c) for c in cards]


@router.post("/courses/{course_id}/generate", summary="Create locked flashcards for a course")
def generate_course_flashcards(
    course_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, Any]:
    """Create one locked flashcard per syllabus concept. Safe to repeat."""
    try:
        created = UnlockService(db).ensure_course_flashcards(user_id, course_id)
        return {"success": True, "created": created}
    except StudyUnlockError as e:
        raise http_error(e)


@router.get("/stats", response_model=UnlockStatsResponse, summary="Get unlock statistics")
def get_stats(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> UnlockStatsResponse:
    return UnlockStatsResponse(**get_user_unlock_stats(db, user_id))


@router.get("/recent", response_model=list[RecentUnlockResponse], summary="Get recent unlocks")
def get_recent(
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[RecentUnlockResponse]:
    events = UnlockService(db).get_recent_unlocks(user_id, limit=limit)
    return [
        RecentUnlockResponse(
            flashcard_id=e.flashcard_id,
            question=e.flashcard.question,
            content_job_id=e.content_job_id,
            confidence=e.confidence,
            unlocked_at=e.created_at,
        )
        for e in events
    ]
