"""Course syllabus and content job bookkeeping."""

from studyunlock.content.content_service import (
    ExtractedItem,
    SyllabusItem,
    create_course,
    get_content_job,
    get_course,
    list_content_jobs,
    list_courses,
    list_syllabus_concepts,
    register_content_job,
)

__all__ = [
    "SyllabusItem",
    "ExtractedItem",
    "create_course",
    "get_course",
    "list_courses",
    "list_syllabus_concepts",
    "register_content_job",
    "get_content_job",
    "list_content_jobs",
]
