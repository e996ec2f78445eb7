"""
Matching pipeline for one content job.

    pending/extracted -> matching -> matched | matching_failed

Runs the matcher, writes the matches, then auto-unlocks flashcards for the
high-confidence ones.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from uuid import UUID

from loguru import logger
from sqlalchemy.orm import Session

from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError
from studyunlock.db.models import ContentJob, ContentJobStatus, Course
from studyunlock.flashcards.unlock_service import UnlockResult, UnlockService
from studyunlock.matching.concept_matcher import ConceptMatcher
from studyunlock.matching.writer import get_matches_for_content_job, write_concept_matches


@dataclass
class MatchingOutcome:
    success: bool
    total_concepts: int = 0
    evaluated: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    high: int = 0
    medium: int = 0
    avg_confidence: float = 0.0
    unlocked: list[UnlockResult] | None = None
    duration_ms: int = 0
    error: str | None = None


def _fail_job(db: Session, job: ContentJob, message: str) -> None:
    job.status = ContentJobStatus.MATCHING_FAILED.value
    job.error_message = message
    db.commit()


def run_matching_for_job(
    db: Session,
    content_job_id: UUID,
    course_id: UUID,
    user_id: str,
    matcher: ConceptMatcher | None = None,
    unlock_service: UnlockService | None = None,
    create_flashcards: bool = False,
) -> MatchingOutcome:
    """
    Match a job's concepts against a course and unlock what they cover.

    Raises NotFoundError / PermissionDeniedError for bad references before
    anything is written. Matcher and unlock failures mark the job
    ``matching_failed`` and are reported in the outcome.

    With ``create_flashcards`` the user's missing locked flashcards for the
    course are created first (skipped when the syllabus is empty).
    """
    start = time.monotonic()

    job = db.get(ContentJob, content_job_id)
    if job is None:
        raise NotFoundError(f"Content job not found: {content_job_id}")
    if job.user_id != user_id:
        raise PermissionDeniedError("You don't have permission to access this content job")
    course = db.get(Course, course_id)
    if course is None:
        raise NotFoundError(f"Course not found: {course_id}")

    unlock_service = unlock_service or UnlockService(db)
    if create_flashcards and course.syllabus_concepts:
        unlock_service.ensure_course_flashcards(user_id, course_id)

    job.status = ContentJobStatus.MATCHING.value
    job.error_message = None
    db.commit()

    matcher = matcher or ConceptMatcher(db)
    logger.info(f"[Matching] Starting concept matching for job {content_job_id} -> course {course_id}")
    try:
        run = matcher.match_concepts_to_syllabus(content_job_id, course_id)
    except Exception as exc:  # Intentionally broad - record failure on the job
        logger.exception(f"[Matching] Algorithm error for job {content_job_id}")
        db.rollback()
        _fail_job(db, job, str(exc) or "Unknown matching error")
        return MatchingOutcome(success=False, error="Failed to match concepts")

    written = write_concept_matches(db, run.results)
    if written.failed and not (written.created or written.updated):
        _fail_job(db, job, "Failed to save concept matches")
        return MatchingOutcome(success=False, failed=written.failed, error="Failed to save concept matches")

    try:
        unlocked = unlock_service.unlock_flashcard_answers(
            get_matches_for_content_job(db, content_job_id), content_job_id, user_id
        )
        job.status = ContentJobStatus.MATCHED.value
        job.completed_at = utcnow()
        db.commit()
    except Exception as exc:  # Intentionally broad - the job must not stay in "matching"
        logger.exception(f"[Matching] Unlock pass failed for job {content_job_id}")
        db.rollback()
        _fail_job(db, job, f"Matches saved but unlocking failed: {exc}")
        return MatchingOutcome(
            success=False,
            total_concepts=run.summary.total_concepts,
            evaluated=run.summary.candidates_evaluated,
            created=written.created,
            updated=written.updated,
            failed=written.failed,
            error="Failed to unlock flashcards",
        )

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        f"[Matching] Completed in {duration_ms}ms: {run.summary.high} high, "
        f"{run.summary.medium} medium, {len(unlocked)} unlocked"
    )
    return MatchingOutcome(
        success=True,
        total_concepts=run.summary.total_concepts,
        evaluated=run.summary.candidates_evaluated,
        created=written.created,
        updated=written.updated,
        failed=written.failed,
        high=run.summary.high,
        medium=run.summary.medium,
        avg_confidence=round(run.summary.avg_confidence, 2),
        unlocked=unlocked,
        duration_ms=duration_ms,
    )
