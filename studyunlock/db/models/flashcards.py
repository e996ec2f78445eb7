"""
Flashcard unlock models.

Each learner gets one flashcard per syllabus concept. The question is known
up front; the answer stays locked until consumed content covers the concept.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Date, Float, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyunlock.core.clock import utcnow

from .base import Base
from .content import SyllabusConcept
from .matching import ConceptMatch


class FlashcardState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    MASTERED = "mastered"


class Flashcard(Base):
    """A learner's flashcard for one syllabus concept."""

    __tablename__ = "flashcards"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    syllabus_concept_id: Mapped[UUID] = mapped_column(
        ForeignKey("syllabus_concepts.id", ondelete="CASCADE"), nullable=False
    )
    concept_match_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("concept_matches.id", ondelete="SET NULL")
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str | None] = mapped_column(Text)
    state: Mapped[str] = mapped_column(Text, default=FlashcardState.LOCKED.value)
    source_timestamp: Mapped[str | None] = mapped_column(Text)

    # Unlock tracking
    unlocked_at: Mapped[datetime | None] = mapped_column()
    unlocked_by: Mapped[str | None] = mapped_column(Text)  # content job id
    mastered_at: Mapped[datetime | None] = mapped_column()

    # Review counters
    times_reviewed: Mapped[int] = mapped_column(Integer, default=0)
    times_correct: Mapped[int] = mapped_column(Integer, default=0)
    last_reviewed_at: Mapped[datetime | None] = mapped_column()
    next_review_at: Mapped[datetime | None] = mapped_column()

    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    syllabus_concept: Mapped[SyllabusConcept] = relationship()
    concept_match: Mapped[ConceptMatch | None] = relationship()

    __table_args__ = (
        UniqueConstraint("user_id", "syllabus_concept_id", name="uq_user_syllabus_flashcard"),
        Index("idx_flashcard_user_state", "user_id", "state"),
        Index("idx_flashcard_next_review", "user_id", "next_review_at"),
    )

    def __repr__(self) -> str:
        return f"<Flashcard {self.id} user={self.user_id} state={self.state}>"


class UnlockEvent(Base):
    """Append-only record of a flashcard answer being unlocked."""

    __tablename__ = "unlock_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    flashcard_id: Mapped[UUID] = mapped_column(
        ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False
    )
    content_job_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("content_jobs.id", ondelete="SET NULL")
    )
    concept_match_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("concept_matches.id", ondelete="SET NULL")
    )
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    flashcard: Mapped[Flashcard] = relationship()


class UserStats(Base):
    """Per-learner unlock counters, streaks and milestones."""

    __tablename__ = "user_stats"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    total_unlocks: Mapped[int] = mapped_column(Integer, default=0)
    total_locked: Mapped[int] = mapped_column(Integer, default=0)
    total_mastered: Mapped[int] = mapped_column(Integer, default=0)
    unlock_rate: Mapped[float] = mapped_column(Float, default=0.0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    last_unlock_date: Mapped[date | None] = mapped_column(Date)
    first_unlock_at: Mapped[datetime | None] = mapped_column()
    milestone_10: Mapped[datetime | None] = mapped_column()
    milestone_50: Mapped[datetime | None] = mapped_column()
    milestone_100: Mapped[datetime | None] = mapped_column()
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)
