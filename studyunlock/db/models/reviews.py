"""Review session models for the spaced-repetition scheduler."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import JSON, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyunlock.core.clock import utcnow

from .base import Base
from .flashcards import Flashcard


class SessionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class DifficultyRating(str, Enum):
    HARD = "hard"
    MEDIUM = "medium"
    EASY = "easy"


class ReviewSession(Base):
    """
    A learner working through a fixed list of flashcards.

    in-progress -> completed | abandoned (both terminal).
    """

    __tablename__ = "review_sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    course_id: Mapped[UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    flashcard_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    flashcard_count: Mapped[int] = mapped_column(Integer, nullable=False)
    current_card_index: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(Text, default=SessionStatus.IN_PROGRESS.value)
    started_at: Mapped[datetime] = mapped_column(default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column()

    events: Mapped[list[ReviewEvent]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="ReviewEvent.created_at",
    )

    def __repr__(self) -> str:
        return f"<ReviewSession {self.id} {self.status} {self.current_card_index}/{self.flashcard_count}>"


class ReviewEvent(Base):
    """Append-only record of one flashcard rating."""

    __tablename__ = "review_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("review_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    flashcard_id: Mapped[UUID] = mapped_column(
        ForeignKey("flashcards.id", ondelete="CASCADE"), nullable=False
    )
    difficulty: Mapped[str] = mapped_column(Text, nullable=False)
    time_to_reveal_ms: Mapped[int | None] = mapped_column(Integer)
    time_to_rate_ms: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    session: Mapped[ReviewSession] = relationship(back_populates="events")
    flashcard: Mapped[Flashcard] = relationship()
