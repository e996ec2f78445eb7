"""
Review Session Service.

Session lifecycle::

    in-progress -> completed
    in-progress -> abandoned

Each rating appends an immutable ReviewEvent and updates the flashcard's
rolling counters. Abandoning keeps whatever was already rated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from config import get_settings
from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StudyUnlockError,
)
from studyunlock.db.models import (
    Course,
    DifficultyRating,
    Flashcard,
    FlashcardState,
    ReviewEvent,
    ReviewSession,
    SessionStatus,
    SyllabusConcept,
)
from studyunlock.flashcards.stats import get_or_create_stats
from studyunlock.flashcards.unlock_service import promote_if_mastered
from studyunlock.reviews.scheduling import (
    INTERVAL_LABELS,
    calculate_next_review_date,
    is_correct,
)


@dataclass
class RatingOutcome:
    next_card_index: int
    is_complete: bool
    next_review_at: datetime
    mastered: bool = False


@dataclass
class ScheduleItem:
    difficulty: str
    count: int
    interval: str
    next_review_date: datetime


@dataclass
class ReviewSummary:
    total_reviewed: int = 0
    hard_count: int = 0
    medium_count: int = 0
    easy_count: int = 0
    next_review_schedule: list[ScheduleItem] = field(default_factory=list)


class ReviewSessionService:
    """Runs review sessions over a learner's unlocked flashcards."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.mastery_correct_reviews = get_settings().mastery_correct_reviews

    # ------------------------------------------------------------------
    # Card selection
    # ------------------------------------------------------------------

    def get_flashcards_for_review(self, course_id: UUID, user_id: str) -> list[Flashcard]:
        """Unlocked or mastered cards with an answer, due ones first."""
        stmt = (
            select(Flashcard)
            .join(SyllabusConcept, Flashcard.syllabus_concept_id == SyllabusConcept.id)
            .where(
                SyllabusConcept.course_id == course_id,
                Flashcard.user_id == user_id,
                Flashcard.state.in_([FlashcardState.UNLOCKED.value, FlashcardState.MASTERED.value]),
                Flashcard.answer.is_not(None),
            )
            .order_by(Flashcard.next_review_at.is_(None).desc(), Flashcard.next_review_at)
        )
        return list(self.db.scalars(stmt))

    def get_due_flashcards(self, user_id: str, now: datetime | None = None) -> list[Flashcard]:
        now = now or utcnow()
        stmt = (
            select(Flashcard)
            .where(
                Flashcard.user_id == user_id,
                Flashcard.state != FlashcardState.LOCKED.value,
                Flashcard.next_review_at.is_not(None),
                Flashcard.next_review_at <= now,
            )
            .order_by(Flashcard.next_review_at)
        )
        return list(self.db.scalars(stmt))

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _get_owned_session(self, session_id: UUID, user_id: str) -> ReviewSession:
        review = self.db.get(ReviewSession, session_id)
        if review is None:
            raise NotFoundError("Review session not found")
        if review.user_id != user_id:
            raise PermissionDeniedError("You don't have permission to access this session")
        return review

    def start_review_session(self, user_id: str, course_id: UUID) -> tuple[ReviewSession, list[Flashcard]]:
        if self.db.get(Course, course_id) is None:
            raise NotFoundError(f"Course not found: {course_id}")

        flashcards = self.get_flashcards_for_review(course_id, user_id)
        if not flashcards:
            raise NotFoundError("No flashcards available for review")

        review = ReviewSession(
            user_id=user_id,
            course_id=course_id,
            flashcard_ids=[str(f.id) for f in flashcards],
            flashcard_count=len(flashcards),
            current_card_index=0,
            status=SessionStatus.IN_PROGRESS.value,
            started_at=utcnow(),
        )
        self.db.add(review)
        self.db.commit()
        logger.info(f"Review session {review.id} started for {user_id} with {len(flashcards)} cards")
        return review, flashcards

    def rate_flashcard(
        self,
        session_id: UUID,
        user_id: str,
        flashcard_id: UUID,
        difficulty: DifficultyRating | str,
        time_to_reveal_ms: int | None = None,
        time_to_rate_ms: int | None = None,
    ) -> RatingOutcome:
        """Record one rating and advance the session."""
        try:
            rating = DifficultyRating(difficulty)
        except ValueError:
            raise StudyUnlockError(f"Invalid difficulty: {difficulty!r}") from None

        review = self._get_owned_session(session_id, user_id)
        if review.status != SessionStatus.IN_PROGRESS.value:
            raise InvalidStateError("This review session is no longer active")
        if str(flashcard_id) not in (review.flashcard_ids or []):
            raise StudyUnlockError("Flashcard is not part of this review session")

        rated = self.db.scalar(
            select(func.count()).select_from(ReviewEvent).where(ReviewEvent.session_id == review.id)
        )
        if rated >= review.flashcard_count:
            raise InvalidStateError("All flashcards in this session have been rated")

        flashcard = self.db.get(Flashcard, flashcard_id)
        if flashcard is None:
            raise NotFoundError(f"Flashcard not found: {flashcard_id}")

        now = utcnow()
        self.db.add(
            ReviewEvent(
                session_id=review.id,
                flashcard_id=flashcard.id,
                difficulty=rating.value,
                time_to_reveal_ms=time_to_reveal_ms,
                time_to_rate_ms=time_to_rate_ms,
                created_at=now,
            )
        )

        next_review_at = calculate_next_review_date(rating, now=now)
        flashcard.times_reviewed = (flashcard.times_reviewed or 0) + 1
        if is_correct(rating):
            flashcard.times_correct = (flashcard.times_correct or 0) + 1
        flashcard.last_reviewed_at = now
        flashcard.next_review_at = next_review_at

        mastered = promote_if_mastered(flashcard, self.mastery_correct_reviews, now=now)
        if mastered:
            stats = get_or_create_stats(self.db, user_id)
            stats.total_mastered = (stats.total_mastered or 0) + 1

        next_index = min(review.current_card_index + 1, review.flashcard_count)
        is_complete = next_index >= review.flashcard_count
        review.current_card_index = max(review.current_card_index, next_index)

        self.db.commit()
        logger.debug(
            f"Session {review.id}: card {flashcard.id} rated {rating.value}, "
            f"next review {next_review_at:%Y-%m-%d}"
        )
        return RatingOutcome(
            next_card_index=next_index,
            is_complete=is_complete,
            next_review_at=next_review_at,
            mastered=mastered,
        )

    def complete_review_session(self, session_id: UUID, user_id: str) -> ReviewSession:
        review = self._get_owned_session(session_id, user_id)
        if review.status != SessionStatus.IN_PROGRESS.value:
            raise InvalidStateError(f"Cannot complete a session that is {review.status}")
        review.status = SessionStatus.COMPLETED.value
        review.completed_at = utcnow()
        self.db.commit()
        logger.info(f"Review session {review.id} completed")
        return review

    def abandon_review_session(self, session_id: UUID, user_id: str) -> ReviewSession:
        review = self._get_owned_session(session_id, user_id)
        if review.status != SessionStatus.IN_PROGRESS.value:
            raise InvalidStateError(f"Cannot abandon a session that is {review.status}")
        review.status = SessionStatus.ABANDONED.value
        self.db.commit()
        logger.info(f"Review session {review.id} abandoned at card {review.current_card_index}")
        return review

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def get_review_summary(self, session_id: UUID, user_id: str) -> ReviewSummary:
        review = self._get_owned_session(session_id, user_id)
        counts = {rating: 0 for rating in DifficultyRating}
        for event in review.events:
            counts[DifficultyRating(event.difficulty)] += 1

        now = utcnow()
        schedule = [
            ScheduleItem(
                difficulty=rating.value,
                count=counts[rating],
                interval=INTERVAL_LABELS[rating],
                next_review_date=calculate_next_review_date(rating, now=now),
            )
            for rating in (DifficultyRating.HARD, DifficultyRating.MEDIUM, DifficultyRating.EASY)
            if counts[rating] > 0
        ]
        return ReviewSummary(
            total_reviewed=sum(counts.values()),
            hard_count=counts[DifficultyRating.HARD],
            medium_count=counts[DifficultyRating.MEDIUM],
            easy_count=counts[DifficultyRating.EASY],
            next_review_schedule=schedule,
        )


def summary_to_dict(summary: ReviewSummary) -> dict[str, Any]:
    return {
        "total_reviewed": summary.total_reviewed,
        "hard_count": summary.hard_count,
        "medium_count": summary.medium_count,
        "easy_count": summary.easy_count,
        "next_review_schedule": [
            {
                "difficulty": item.difficulty,
                "count": item.count,
                "interval": item.interval,
                "next_review_date": item.next_review_date.isoformat(),
            }
            for item in summary.next_review_schedule
        ],
    }
