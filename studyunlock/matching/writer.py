"""
Persistence of concept matches.

``write_concept_matches`` upserts one row per (extracted concept, syllabus
concept) pair and is safe to retry: a second identical call creates nothing
and updates every row. It never raises; failures are logged and reported in
the returned counts.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError, StudyUnlockError
from studyunlock.db.models import ConceptMatch, ExtractedConcept, MatchFeedback, MatchType


class MatchRecord(Protocol):
    concept_id: UUID
    syllabus_concept_id: UUID
    confidence: float
    match_type: MatchType | str
    rationale: str | None


@dataclass
class WriteResult:
    created: int = 0
    updated: int = 0
    failed: int = 0


def _normalize(record: MatchRecord) -> tuple[float, str] | None:
    """Validated (confidence, match_type) for a record, or None if it is unusable."""
    confidence = record.confidence
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    if not 0.0 <= confidence <= 1.0:
        return None
    try:
        match_type = MatchType(record.match_type)
    except ValueError:
        return None
    return float(confidence), match_type.value


def write_concept_matches(db: Session, results: Iterable[MatchRecord]) -> WriteResult:
    """
    Upsert concept matches keyed on (concept_id, syllabus_concept_id).

    Returns counts of created, updated and failed records. Records with a
    confidence outside [0, 1] or an unknown match type are skipped as failed.
    A database error rolls the whole batch back and reports it as failed.
    """
    results = list(results)
    if not results:
        return WriteResult()

    valid: list[tuple[MatchRecord, float, str]] = []
    failed = 0
    for record in results:
        normalized = _normalize(record)
        if normalized is None:
            logger.warning(
                f"Skipping invalid match {record.concept_id}->{record.syllabus_concept_id}"
            )
            failed += 1
            continue
        valid.append((record, *normalized))

    if not valid:
        return WriteResult(failed=failed)

    created = updated = 0
    try:
        concept_ids = {record.concept_id for record, _, _ in valid}
        existing = db.scalars(
            select(ConceptMatch).where(ConceptMatch.concept_id.in_(concept_ids))
        ).all()
        by_pair = {(m.concept_id, m.syllabus_concept_id): m for m in existing}

        for record, confidence, match_type in valid:
            key = (record.concept_id, record.syllabus_concept_id)
            match = by_pair.get(key)
            if match is not None:
                match.confidence = confidence
                match.match_type = match_type
                match.rationale = record.rationale
                updated += 1
            else:
                match = ConceptMatch(
                    concept_id=record.concept_id,
                    syllabus_concept_id=record.syllabus_concept_id,
                    confidence=confidence,
                    match_type=match_type,
                    rationale=record.rationale,
                )
                db.add(match)
                by_pair[key] = match
                created += 1

        db.commit()
    except Exception:  # Intentionally broad - this boundary must not raise
        db.rollback()
        logger.exception(f"Failed to write {len(valid)} concept matches")
        return WriteResult(failed=len(results))

    logger.info(f"Concept matches written: {created} created, {updated} updated, {failed} failed")
    return WriteResult(created=created, updated=updated, failed=failed)


def get_matches_for_content_job(db: Session, content_job_id: UUID) -> list[ConceptMatch]:
    stmt = (
        select(ConceptMatch)
        .join(ExtractedConcept, ConceptMatch.concept_id == ExtractedConcept.id)
        .where(ExtractedConcept.content_job_id == content_job_id)
        .order_by(ConceptMatch.confidence.desc())
    )
    return list(db.scalars(stmt))


def delete_concept_matches_by_content_job(db: Session, content_job_id: UUID) -> int:
    """Delete all matches of a content job's concepts (before re-matching)."""
    matches = get_matches_for_content_job(db, content_job_id)
    for match in matches:
        db.delete(match)
    db.commit()
    logger.info(f"Deleted {len(matches)} concept matches for content job {content_job_id}")
    return len(matches)


def delete_concepts_for_content_job(db: Session, content_job_id: UUID) -> int:
    """Delete a content job's extracted concepts; their matches go with them."""
    concepts = db.scalars(
        select(ExtractedConcept).where(ExtractedConcept.content_job_id == content_job_id)
    ).all()
    for concept in concepts:
        db.delete(concept)
    db.commit()
    logger.info(f"Deleted {len(concepts)} extracted concepts for content job {content_job_id}")
    return len(concepts)


def record_match_feedback(db: Session, match_id: UUID, user_id: str, feedback: str) -> ConceptMatch:
    """Store the learner's verdict (correct/incorrect) on a match they own."""
    try:
        value = MatchFeedback(feedback).value
    except ValueError:
        raise StudyUnlockError(f"Invalid feedback value: {feedback!r}") from None

    match = db.get(ConceptMatch, match_id)
    if match is None:
        raise NotFoundError(f"Concept match not found: {match_id}")
    if match.concept.content_job.user_id != user_id:
        raise PermissionDeniedError("You don't own the source content")

    match.user_feedback = value
    db.commit()
    logger.info(f"Feedback '{value}' recorded for concept match {match_id}")
    return match
