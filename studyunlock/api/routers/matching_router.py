"""
Concept matching router.

Endpoints for:
- Running the matcher for a content job against a course syllabus
- Listing and deleting a job's matches
- Recording learner feedback on a match
- Confirming a match, which force-unlocks the flashcard
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from studyunlock.api.deps import get_current_user, http_error
from studyunlock.content import get_content_job
from studyunlock.core.exceptions import StudyUnlockError
from studyunlock.db.database import get_session
from studyunlock.db.models import ConceptMatch
from studyunlock.flashcards import UnlockService
from studyunlock.matching import (
    delete_concept_matches_by_content_job,
    get_matches_for_content_job,
    record_match_feedback,
)
from studyunlock.matching.pipeline import run_matching_for_job

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class MatchRunRequest(BaseModel):
    """Request model for a matching run."""

    content_job_id: UUID
    course_id: UUID
    create_flashcards: bool = Field(
        True,
        description="Create missing locked flashcards for the course before unlocking",
    )


class MatchRunResponse(BaseModel):
    success: bool
    total_concepts: int = 0
    candidates_evaluated: int = 0
    matches_created: int = 0
    matches_updated: int = 0
    matches_failed: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    avg_confidence: float = 0.0
    unlocked: list[dict[str, Any]] = Field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None


class ConceptMatchResponse(BaseModel):
    id: UUID
    concept_id: UUID
    syllabus_concept_id: UUID
    concept_text: str
    syllabus_concept_text: str
    confidence: float
    match_type: str
    rationale: str | None
    user_feedback: str | None


class FeedbackRequest(BaseModel):
    feedback: str = Field(..., description="correct or incorrect")


def _match_response(match: ConceptMatch) -> ConceptMatchResponse:
    return ConceptMatchResponse(
        id=match.id,
        concept_id=match.concept_id,
        syllabus_concept_id=match.syllabus_concept_id,
        concept_text=match.concept.concept_text,
        syllabus_concept_text=match.syllabus_concept.concept_text,
        confidence=match.confidence,
        match_type=match.match_type,
        rationale=match.rationale,
        user_feedback=match.user_feedback,
    )


# ========================================
# Matching Endpoints
# ========================================


@router.post("/run", response_model=MatchRunResponse, summary="Match content job to syllabus")
def run_matching(
    request: MatchRunRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> MatchRunResponse:
    """
    Match a content job's extracted concepts against a course syllabus.

    High-confidence matches unlock the learner's flashcards immediately;
    medium-confidence matches are kept for confirmation.
    """
    logger.info(f"Matching requested: job={request.content_job_id} course={request.course_id}")
    try:
        outcome = run_matching_for_job(
            db,
            request.content_job_id,
            request.course_id,
            user_id,
            create_flashcards=request.create_flashcards,
        )
        return MatchRunResponse(
            success=outcome.success,
            total_concepts=outcome.total_concepts,
            candidates_evaluated=outcome.evaluated,
            matches_created=outcome.created,
            matches_updated=outcome.updated,
            matches_failed=outcome.failed,
            high_confidence=outcome.high,
            medium_confidence=outcome.medium,
            avg_confidence=outcome.avg_confidence,
            unlocked=[u.to_dict() for u in outcome.unlocked or []],
            duration_ms=outcome.duration_ms,
            error=outcome.error,
        )
    except StudyUnlockError as e:
        raise http_error(e)
    except Exception as exc:
        logger.exception("Failed to run concept matching")
        raise HTTPException(status_code=500, detail=str(exc))


@router.get(
    "/jobs/{job_id}/matches",
    response_model=list[ConceptMatchResponse],
    summary="List matches for a content job",
)
def list_job_matches(
    job_id: UUID,
    min_confidence: float = 0.0,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[ConceptMatchResponse]:
    try:
        get_content_job(db, job_id, user_id=user_id)
    except StudyUnlockError as e:
        raise http_error(e)
    return [
        _match_response(m)
        for m in get_matches_for_content_job(db, job_id)
        if m.confidence >= min_confidence
    ]


@router.delete("/jobs/{job_id}/matches", summary="Delete matches for a content job")
def delete_job_matches(
    job_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, Any]:
    """Remove every match derived from the job, e.g. before re-matching."""
    try:
        get_content_job(db, job_id, user_id=user_id)
        deleted = delete_concept_matches_by_content_job(db, job_id)
        return {"success": True, "deleted": deleted}
    except StudyUnlockError as e:
        raise http_error(e)


# ========================================
# Feedback & Confirmation Endpoints
# ========================================


@router.patch("/matches/{match_id}/feedback", summary="Record match feedback")
def submit_feedback(
    match_id: UUID,
    request: FeedbackRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, Any]:
    try:
        match = record_match_feedback(db, match_id, user_id, request.feedback)
        return {"success": True, "match_id": str(match.id), "feedback": match.user_feedback}
    except StudyUnlockError as e:
        raise http_error(e)


@router.post("/matches/{match_id}/confirm", summary="Confirm match and unlock flashcard")
def confirm_match(
    match_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict[str, Any]:
    """
    Confirm a medium-confidence match.

    The match is promoted to exact and the flashcard answer is unlocked.
    Confirming again returns the existing unlock.
    """
    try:
        result = UnlockService(db).force_unlock_flashcard_answer(match_id, user_id)
        return {"success": True, "flashcard": result.to_dict()}
    except StudyUnlockError as e:
        raise http_error(e)
    except Exception as exc:
        logger.exception(f"Failed to confirm match {match_id}")
        raise HTTPException(status_code=500, detail=str(exc))
