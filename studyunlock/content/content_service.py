"""
Courses, syllabus concepts and content jobs.

Transcript and PDF extraction run elsewhere; this module only records a
course's syllabus and the concepts already extracted from a piece of content
so the matcher has something to work with.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError, StudyUnlockError
from studyunlock.db.models import (
    ContentJob,
    ContentJobStatus,
    ContentType,
    Course,
    ExtractedConcept,
    SyllabusConcept,
)


@dataclass
class SyllabusItem:
    concept_text: str
    category: str | None = None
    importance: int | None = None
    language: str | None = None


@dataclass
class ExtractedItem:
    concept_text: str
    definition: str | None = None
    source_timestamp: str | None = None
    language: str | None = None


def create_course(
    db: Session,
    name: str,
    syllabus: list[SyllabusItem],
    description: str | None = None,
) -> Course:
    """Create a course and its ordered syllabus concepts."""
    if not name.strip():
        raise StudyUnlockError("Course name is required")

    course = Course(name=name.strip(), description=description)
    for index, item in enumerate(syllabus):
        text = item.concept_text.strip()
        if not text:
            raise StudyUnlockError(f"Syllabus concept {index} has no text")
        course.syllabus_concepts.append(
            SyllabusConcept(
                concept_text=text,
                category=item.category,
                importance=item.importance,
                language=item.language,
                order_index=index,
            )
        )

    db.add(course)
    db.commit()
    logger.info(f"Created course '{course.name}' with {len(syllabus)} syllabus concepts")
    return course


def get_course(db: Session, course_id: UUID) -> Course:
    course = db.get(Course, course_id)
    if course is None:
        raise NotFoundError(f"Course not found: {course_id}")
    return course


def list_courses(db: Session) -> list[Course]:
    return list(db.scalars(select(Course).order_by(Course.created_at)))


def list_syllabus_concepts(db: Session, course_id: UUID) -> list[SyllabusConcept]:
    get_course(db, course_id)
    stmt = (
        select(SyllabusConcept)
        .where(SyllabusConcept.course_id == course_id)
        .order_by(SyllabusConcept.order_index)
    )
    return list(db.scalars(stmt))


def register_content_job(
    db: Session,
    user_id: str,
    concepts: list[ExtractedItem],
    content_type: ContentType | str = ContentType.VIDEO,
    url: str | None = None,
    file_name: str | None = None,
) -> ContentJob:
    """
    Record a processed piece of content with its extracted concepts.

    The job starts in ``extracted`` (or ``pending`` when no concepts were
    found) and is ready for the matching pipeline.
    """
    try:
        kind = ContentType(content_type)
    except ValueError:
        raise StudyUnlockError(f"Unsupported content type: {content_type!r}") from None

    job = ContentJob(
        user_id=user_id,
        content_type=kind.value,
        url=url,
        file_name=file_name,
        status=ContentJobStatus.EXTRACTED.value if concepts else ContentJobStatus.PENDING.value,
        created_at=utcnow(),
    )
    for item in concepts:
        text = item.concept_text.strip()
        if not text:
            continue
        job.concepts.append(
            ExtractedConcept(
                concept_text=text,
                definition=item.definition,
                source_timestamp=item.source_timestamp,
                language=item.language,
            )
        )

    db.add(job)
    db.commit()
    logger.info(f"Registered content job {job.id} ({job.source_label}) with {len(job.concepts)} concepts")
    return job


def get_content_job(db: Session, job_id: UUID, user_id: str | None = None) -> ContentJob:
    job = db.get(ContentJob, job_id)
    if job is None:
        raise NotFoundError(f"Content job not found: {job_id}")
    if user_id is not None and job.user_id != user_id:
        raise PermissionDeniedError("You don't have permission to access this content job")
    return job


def list_content_jobs(db: Session, user_id: str) -> list[ContentJob]:
    stmt = select(ContentJob).where(ContentJob.user_id == user_id).order_by(ContentJob.created_at.desc())
    return list(db.scalars(stmt))
