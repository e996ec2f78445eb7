"""
Course, syllabus and content-ingestion models.

A course owns a fixed syllabus. A content job is one piece of consumed
content (video, PDF, ...) whose extracted concepts are matched against it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studyunlock.core.clock import utcnow

from .base import Base


class ContentType(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    URL = "url"
    PODCAST = "podcast"


class ContentJobStatus(str, Enum):
    PENDING = "pending"
    EXTRACTED = "extracted"
    MATCHING = "matching"
    MATCHED = "matched"
    MATCHING_FAILED = "matching_failed"


class Course(Base):
    """A course with a fixed syllabus."""

    __tablename__ = "courses"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    syllabus_concepts: Mapped[list[SyllabusConcept]] = relationship(
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="SyllabusConcept.order_index",
    )


class SyllabusConcept(Base):
    """A concept a course requires the learner to know."""

    __tablename__ = "syllabus_concepts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    course_id: Mapped[UUID] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    concept_text: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(Text)
    importance: Mapped[int | None] = mapped_column(Integer)  # 1 (core) .. 3 (optional)
    language: Mapped[str | None] = mapped_column(Text)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    course: Mapped[Course] = relationship(back_populates="syllabus_concepts")
    matches: Mapped[list[ConceptMatch]] = relationship(
        back_populates="syllabus_concept", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_syllabus_course_order", "course_id", "order_index"),)

    def __repr__(self) -> str:
        return f"<SyllabusConcept {self.concept_text!r} course={self.course_id}>"


class ContentJob(Base):
    """One ingested video/PDF/URL and the status of its matching run."""

    __tablename__ = "content_jobs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    content_type: Mapped[str] = mapped_column(Text, default=ContentType.VIDEO.value)
    url: Mapped[str | None] = mapped_column(Text)
    file_name: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, default=ContentJobStatus.PENDING.value)
    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column()

    concepts: Mapped[list[ExtractedConcept]] = relationship(
        back_populates="content_job",
        cascade="all, delete-orphan",
        order_by="ExtractedConcept.created_at",
    )

    @property
    def source_label(self) -> str:
        return self.file_name or self.url or "Unknown source"


class ExtractedConcept(Base):
    """A concept extracted from a content job's transcript or text."""

    __tablename__ = "concepts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    content_job_id: Mapped[UUID] = mapped_column(
        ForeignKey("content_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    concept_text: Mapped[str] = mapped_column(Text, nullable=False)
    definition: Mapped[str | None] = mapped_column(Text)
    source_timestamp: Mapped[str | None] = mapped_column(Text)  # "mm:ss" in the source video
    language: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=utcnow)

    content_job: Mapped[ContentJob] = relationship(back_populates="concepts")
    matches: Mapped[list[ConceptMatch]] = relationship(
        back_populates="concept", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<ExtractedConcept {self.concept_text!r} job={self.content_job_id}>"
