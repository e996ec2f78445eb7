"""
Flashcard Unlock Service.

State machine per flashcard::

    locked --(match >= HIGH, or user confirms a match)--> unlocked
    unlocked --(enough correct reviews)--> mastered

Unlocking writes the answer, stamps the unlock, schedules the card for
immediate review and appends an UnlockEvent. Every transition is
idempotent: re-confirming an unlocked card changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from config import get_settings
from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError
from studyunlock.db.models import (
    ConceptMatch,
    ContentJob,
    Flashcard,
    FlashcardState,
    MatchFeedback,
    MatchType,
    SyllabusConcept,
    UnlockEvent,
)
from studyunlock.flashcards.answer_generator import AnswerGenerator
from studyunlock.flashcards.question_generator import QuestionGenerator
from studyunlock.flashcards.stats import get_or_create_stats, record_unlocks
from studyunlock.matching.thresholds import MatchThresholds


@dataclass
class UnlockResult:
    """What the learner sees after an unlock."""

    flashcard_id: UUID
    question: str
    answer: str
    concept_text: str
    unlocked_at: datetime
    source: str
    confidence: float
    already_unlocked: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "flashcard_id": str(self.flashcard_id),
            "question": self.question,
            "answer": self.answer,
            "concept_text": self.concept_text,
            "unlocked_at": self.unlocked_at.isoformat(),
            "source": self.source,
            "confidence": self.confidence,
            "already_unlocked": self.already_unlocked,
        }


def promote_if_mastered(flashcard: Flashcard, required_correct: int, now: datetime | None = None) -> bool:
    """Move an unlocked card to mastered once it has enough correct reviews."""
    if flashcard.state != FlashcardState.UNLOCKED.value:
        return False
    if (flashcard.times_correct or 0) < required_correct:
        return False
    flashcard.state = FlashcardState.MASTERED.value
    flashcard.mastered_at = now or utcnow()
    logger.info(f"Flashcard {flashcard.id} mastered after {flashcard.times_correct} correct reviews")
    return True


class UnlockService:
    """
    Unlocks flashcard answers from concept matches.

    Example:
        >>> service = UnlockService(db_session)
        >>> service.ensure_course_flashcards("user-1", course_id)
        >>> unlocked = service.unlock_flashcard_answers(matches, job_id, "user-1")
    """

    def __init__(
        self,
        db_session: Session,
        answer_generator: AnswerGenerator | None = None,
        thresholds: MatchThresholds | None = None,
        question_generator: QuestionGenerator | None = None,
    ):
        self.db = db_session
        self.answer_generator = answer_generator or AnswerGenerator()
        self.question_generator = question_generator or QuestionGenerator()
        self.thresholds = thresholds or MatchThresholds.from_settings()
        self.mastery_correct_reviews = get_settings().mastery_correct_reviews

    # ------------------------------------------------------------------
    # Flashcard creation
    # ------------------------------------------------------------------

    def ensure_course_flashcards(self, user_id: str, course_id: UUID) -> int:
        """Create a locked flashcard per syllabus concept the user lacks one for."""
        syllabus = self.db.scalars(
            select(SyllabusConcept)
            .where(SyllabusConcept.course_id == course_id)
            .order_by(SyllabusConcept.order_index)
        ).all()
        if not syllabus:
            raise NotFoundError(f"Course has no syllabus concepts: {course_id}")

        existing = set(
            self.db.scalars(
                select(Flashcard.syllabus_concept_id).where(
                    Flashcard.user_id == user_id,
                    Flashcard.syllabus_concept_id.in_([s.id for s in syllabus]),
                )
            )
        )

        created = 0
        for concept in syllabus:
            if concept.id in existing:
                continue
            self.db.add(
                Flashcard(
                    user_id=user_id,
                    syllabus_concept_id=concept.id,
                    question=self.question_generator.generate(concept),
                    state=FlashcardState.LOCKED.value,
                    times_reviewed=0,
                    times_correct=0,
                )
            )
            created += 1

        if created:
            stats = get_or_create_stats(self.db, user_id)
            stats.total_locked = (stats.total_locked or 0) + created
        self.db.commit()
        logger.info(f"Created {created} locked flashcards for {user_id} in course {course_id}")
        return created

    # ------------------------------------------------------------------
    # Unlocking
    # ------------------------------------------------------------------

    def _find_flashcard(self, user_id: str, syllabus_concept_id: UUID) -> Flashcard | None:
        return self.db.scalar(
            select(Flashcard).where(
                Flashcard.user_id == user_id,
                Flashcard.syllabus_concept_id == syllabus_concept_id,
            )
        )

    def _unlock(
        self,
        flashcard: Flashcard,
        match: ConceptMatch,
        user_id: str,
        rationale: str,
        now: datetime,
    ) -> str:
        answer = self.answer_generator.generate(match.concept, match.syllabus_concept, rationale)
        content_job_id = match.concept.content_job_id

        flashcard.answer = answer
        flashcard.concept_match_id = match.id
        flashcard.state = FlashcardState.UNLOCKED.value
        flashcard.unlocked_at = now
        flashcard.unlocked_by = str(content_job_id)
        flashcard.next_review_at = now
        flashcard.source_timestamp = flashcard.source_timestamp or match.concept.source_timestamp

        self.db.add(
            UnlockEvent(
                user_id=user_id,
                flashcard_id=flashcard.id,
                content_job_id=content_job_id,
                concept_match_id=match.id,
                confidence=match.confidence,
                created_at=now,
            )
        )
        self.db.flush()
        return answer

    def unlock_flashcard_answers(
        self,
        matches: Iterable[ConceptMatch],
        content_job_id: UUID,
        user_id: str,
    ) -> list[UnlockResult]:
        """Unlock the user's locked flashcards covered by high-confidence matches."""
        matches = list(matches)
        logger.info(f"Unlock pass: {len(matches)} matches for user {user_id}")

        job = self.db.get(ContentJob, content_job_id)
        source = job.source_label if job else "Unknown source"

        unlocked: list[UnlockResult] = []
        for match in matches:
            if match.confidence < self.thresholds.high:
                logger.debug(f"Skipping match {match.id} (confidence {match.confidence:.2f})")
                continue

            flashcard = self._find_flashcard(user_id, match.syllabus_concept_id)
            if flashcard is None or flashcard.state != FlashcardState.LOCKED.value:
                continue

            # Savepoint per match: a failed unlock rolls back only its own card
            try:
                now = utcnow()
                with self.db.begin_nested():
                    answer = self._unlock(flashcard, match, user_id, match.rationale or "", now)
            except Exception:  # Intentionally broad - one bad match must not block the others
                logger.exception(f"Failed to unlock flashcard for match {match.id}")
                continue

            unlocked.append(
                UnlockResult(
                    flashcard_id=flashcard.id,
                    question=flashcard.question,
                    answer=answer,
                    concept_text=match.syllabus_concept.concept_text,
                    unlocked_at=now,
                    source=source,
                    confidence=match.confidence,
                )
            )

        if unlocked:
            record_unlocks(self.db, user_id, len(unlocked))
        self.db.commit()

        logger.info(f"Unlocked {len(unlocked)} flashcards for user {user_id}")
        return unlocked

    def force_unlock_flashcard_answer(self, concept_match_id: UUID, user_id: str) -> UnlockResult:
        """
        Unlock from a user-confirmed match, as if it were an exact match.

        Idempotent: a card that is already unlocked (or mastered) is returned
        as-is, without regenerating the answer or writing another event.
        """
        match = self.db.get(ConceptMatch, concept_match_id)
        if match is None:
            raise NotFoundError(f"Concept match not found: {concept_match_id}")

        job = match.concept.content_job
        if job.user_id != user_id:
            raise PermissionDeniedError("You don't own the source content")

        flashcard = self._find_flashcard(user_id, match.syllabus_concept_id)
        if flashcard is None:
            raise NotFoundError("No flashcard exists for this concept")

        if flashcard.state != FlashcardState.LOCKED.value and flashcard.answer:
            logger.info(f"Flashcard {flashcard.id} already {flashcard.state}; nothing to unlock")
            return UnlockResult(
                flashcard_id=flashcard.id,
                question=flashcard.question,
                answer=flashcard.answer,
                concept_text=match.syllabus_concept.concept_text,
                unlocked_at=flashcard.unlocked_at or utcnow(),
                source=flashcard.unlocked_by or "manual-confirmation",
                confidence=match.confidence,
                already_unlocked=True,
            )

        now = utcnow()
        answer = self._unlock(
            flashcard, match, user_id, match.rationale or "User confirmed match", now
        )
        match.match_type = MatchType.EXACT.value
        match.user_feedback = MatchFeedback.CORRECT.value
        record_unlocks(self.db, user_id, 1, now=now)
        self.db.commit()

        logger.info(f"Flashcard {flashcard.id} force-unlocked from match {match.id}")
        return UnlockResult(
            flashcard_id=flashcard.id,
            question=flashcard.question,
            answer=answer,
            concept_text=match.syllabus_concept.concept_text,
            unlocked_at=now,
            source=job.file_name or job.url or "manual-confirmation",
            confidence=match.confidence,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_recent_unlocks(self, user_id: str, limit: int = 10) -> list[UnlockEvent]:
        return list(
            self.db.scalars(
                select(UnlockEvent)
                .where(UnlockEvent.user_id == user_id)
                .order_by(UnlockEvent.created_at.desc())
                .limit(limit)
            )
        )

    def list_flashcards(
        self, user_id: str, course_id: UUID | None = None, state: FlashcardState | None = None
    ) -> list[Flashcard]:
        stmt = select(Flashcard).where(Flashcard.user_id == user_id)
        if course_id is not None:
            stmt = stmt.join(SyllabusConcept).where(SyllabusConcept.course_id == course_id)
        if state is not None:
            stmt = stmt.where(Flashcard.state == FlashcardState(state).value)
        return list(self.db.scalars(stmt.order_by(Flashcard.created_at)))
