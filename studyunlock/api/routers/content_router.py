"""
Content router.

Endpoints for courses, their syllabus concepts, and processed content jobs.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from studyunlock.api.deps import get_current_user, http_error
from studyunlock.content import (
    ExtractedItem,
    SyllabusItem,
    create_course,
    get_content_job,
    list_content_jobs,
    list_courses,
    list_syllabus_concepts,
    register_content_job,
)
from studyunlock.core.exceptions import StudyUnlockError
from studyunlock.db.database import get_session
from studyunlock.db.models import ContentJob, Course, SyllabusConcept

router = APIRouter()


# ========================================
# Request/Response Models
# ========================================


class SyllabusConceptIn(BaseModel):
    concept_text: str = Field(..., min_length=1)
    category: str | None = None
    importance: int | None = Field(None, ge=1, le=3)
    language: str | None = None


class CourseCreateRequest(BaseModel):
    """Request model for course creation."""

    name: str = Field(..., min_length=1)
    description: str | None = None
    syllabus: list[SyllabusConceptIn] = Field(default_factory=list)


class SyllabusConceptResponse(BaseModel):
    id: UUID
    concept_text: str
    category: str | None
    importance: int | None
    order_index: int


class CourseResponse(BaseModel):
    id: UUID
    name: str
    description: str | None
    syllabus_count: int


class ExtractedConceptIn(BaseModel):
    concept_text: str = Field(..., min_length=1)
    definition: str | None = None
    source_timestamp: str | None = Field(None, description="Position in the source, e.g. '04:12'")
    language: str | None = None


class ContentJobCreateRequest(BaseModel):
    """Request model for registering processed content."""

    content_type: str = Field("video", description="video, pdf, url or podcast")
    url: str | None = None
    file_name: str | None = None
    concepts: list[ExtractedConceptIn] = Field(default_factory=list)


class ContentJobResponse(BaseModel):
    id: UUID
    content_type: str
    source: str
    status: str
    concept_count: int
    error_message: str | None
    created_at: datetime
    completed_at: datetime | None


def _course_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        name=course.name,
        description=course.description,
        syllabus_count=len(course.syllabus_concepts),
    )


def _syllabus_response(concept: SyllabusConcept) -> SyllabusConceptResponse:
    return SyllabusConceptResponse(
        id=concept.id,
        concept_text=concept.concept_text,
        category=concept.category,
        importance=concept.importance,
        order_index=concept.order_index,
    )


def _job_response(job: ContentJob) -> ContentJobResponse:
    return ContentJobResponse(
        id=job.id,
        content_type=job.content_type,
        source=job.source_label,
        status=job.status,
        concept_count=len(job.concepts),
        error_message=job.error_message,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )


# ========================================
# Course Endpoints
# ========================================


@router.post("/courses", response_model=CourseResponse, status_code=201, summary="Create course")
def create_course_endpoint(
    request: CourseCreateRequest,
    db: Session = Depends(get_session),
) -> CourseResponse:
    """Create a course together with its ordered syllabus."""
    try:
        course = create_course(
            db,
            request.name,
            [SyllabusItem(**item.model_dump()) for item in request.syllabus],
            description=request.description,
        )
        return _course_response(course)
    except StudyUnlockError as e:
        raise http_error(e)


@router.get("/courses", response_model=list[CourseResponse], summary="List courses")
def list_courses_endpoint(db: Session = Depends(get_session)) -> list[CourseResponse]:
    return [_course_response(c) for c in list_courses(db)]


@router.get(
    "/courses/{course_id}/syllabus",
    response_model=list[SyllabusConceptResponse],
    summary="List syllabus concepts",
)
def get_syllabus(course_id: UUID, db: Session = Depends(get_session)) -> list[SyllabusConceptResponse]:
    try:
        return [_syllabus_response(c) for c in list_syllabus_concepts(db, course_id)]
    except StudyUnlockError as e:
        raise http_error(e)


# ========================================
# Content Job Endpoints
# ========================================


@router.post("/jobs", response_model=ContentJobResponse, status_code=201, summary="Register content job")
def create_content_job(
    request: ContentJobCreateRequest,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ContentJobResponse:
    """
    Register processed content and the concepts extracted from it.

    The job is then ready for `/api/matching/run`.
    """
    logger.info(f"Registering {request.content_type} content with {len(request.concepts)} concepts")
    try:
        job = register_content_job(
            db,
            user_id,
            [ExtractedItem(**item.model_dump()) for item in request.concepts],
            content_type=request.content_type,
            url=request.url,
            file_name=request.file_name,
        )
        return _job_response(job)
    except StudyUnlockError as e:
        raise http_error(e)


@router.get("/jobs", response_model=list[ContentJobResponse], summary="List content jobs")
def list_jobs(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> list[ContentJobResponse]:
    return [_job_response(job) for job in list_content_jobs(db, user_id)]


@router.get("/jobs/{job_id}", response_model=ContentJobResponse, summary="Get content job")
def get_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> ContentJobResponse:
    try:
        return _job_response(get_content_job(db, job_id, user_id=user_id))
    except StudyUnlockError as e:
        raise http_error(e)