"""Unit tests for course and content job bookkeeping."""
from uuid import uuid4

import pytest

from studyunlock.content import (
    ExtractedItem,
    SyllabusItem,
    create_course,
    get_content_job,
    list_content_jobs,
    list_syllabus_concepts,
    register_content_job,
)
from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError, StudyUnlockError
from studyunlock.db.models import ContentJobStatus


class TestCourses:
    def test_syllabus_keeps_order(self, db_session, course):
        concepts = list_syllabus_concepts(db_session, course.id)

        assert [c.concept_text for c in concepts] == ["Photosynthesis", "Cellular respiration", "Mitosis"]
        assert [c.order_index for c in concepts] == [0, 1, 2]

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(StudyUnlockError):
            create_course(db_session, "   ", [SyllabusItem("Mitosis")])

    def test_blank_concept_rejected(self, db_session):
        with pytest.raises(StudyUnlockError):
            create_course(db_session, "Biology", [SyllabusItem(" ")])

    def test_unknown_course(self, db_session):
        with pytest.raises(NotFoundError):
            list_syllabus_concepts(db_session, uuid4())


class TestContentJobs:
    def test_registered_job_is_ready_for_matching(self, content_job):
        assert content_job.status == ContentJobStatus.EXTRACTED.value
        assert len(content_job.concepts) == 3
        assert content_job.source_label == "https://example.com/biology-video"

    def test_job_without_concepts_is_pending(self, db_session):
        job = register_content_job(db_session, "user-1", [], content_type="pdf", file_name="notes.pdf")

        assert job.status == ContentJobStatus.PENDING.value
        assert job.source_label == "notes.pdf"

    def test_blank_concepts_skipped(self, db_session):
        job = register_content_job(
            db_session, "user-1", [ExtractedItem(""), ExtractedItem("Osmosis")]
        )

        assert [c.concept_text for c in job.concepts] == ["Osmosis"]

    def test_unsupported_content_type(self, db_session):
        with pytest.raises(StudyUnlockError):
            register_content_job(db_session, "user-1", [], content_type="hologram")

    def test_ownership_checked(self, db_session, content_job):
        assert get_content_job(db_session, content_job.id, user_id="user-1").id == content_job.id
        with pytest.raises(PermissionDeniedError):
            get_content_job(db_session, content_job.id, user_id="user-2")

    def test_list_jobs_per_user(self, db_session, content_job):
        assert [j.id for j in list_content_jobs(db_session, "user-1")] == [content_job.id]
        assert list_content_jobs(db_session, "user-2") == []
