"""Concept match model: one extracted concept paired with one syllabus concept."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import Float, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyunlock.core.clock import utcnow

from .base import Base
from .content import ExtractedConcept, SyllabusConcept


class MatchType(str, Enum):
    EXACT = "exact"
    RELATED = "related"
    WEAK = "weak"


class MatchFeedback(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"


class ConceptMatch(Base):
    """
    Scored pairing of an extracted concept with a syllabus concept.

    At most one row exists per (concept, syllabus concept) pair; re-matching
    updates the score in place.
    """

    __tablename__ = "concept_matches"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    concept_id: Mapped[UUID] = mapped_column(
        ForeignKey("concepts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    syllabus_concept_id: Mapped[UUID] = mapped_column(
        ForeignKey("syllabus_concepts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    confidence: Mapped[float] = mapped_column(Float, nullable=False)  # 0-1
    match_type: Mapped[str] = mapped_column(Text, nullable=False)
    rationale: Mapped[str | None] = mapped_column(Text)
    user_feedback: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=utcnow, onupdate=utcnow)

    concept: Mapped[ExtractedConcept] = relationship(back_populates="matches")
    syllabus_concept: Mapped[SyllabusConcept] = relationship(back_populates="matches")

    __table_args__ = (
        UniqueConstraint("concept_id", "syllabus_concept_id", name="uq_concept_syllabus_match"),
    )

    def __repr__(self) -> str:
        return f"<ConceptMatch {self.concept_id}->{self.syllabus_concept_id} {self.confidence:.2f} {self.match_type}>"
