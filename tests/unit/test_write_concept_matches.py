"""Unit tests for concept match persistence."""
from dataclasses import replace
from unittest.mock import Mock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from studyunlock.core.exceptions import NotFoundError, PermissionDeniedError, StudyUnlockError
from studyunlock.db.models import ConceptMatch, MatchFeedback, MatchType
from studyunlock.matching import (
    MatchResult,
    delete_concept_matches_by_content_job,
    delete_concepts_for_content_job,
    get_matches_for_content_job,
    record_match_feedback,
    write_concept_matches,
)


def _count(db_session):
    return db_session.scalar(select(func.count()).select_from(ConceptMatch))


@pytest.fixture
def results(course, content_job):
    concepts = {c.concept_text: c for c in content_job.concepts}
    syllabus = {s.concept_text: s for s in course.syllabus_concepts}
    return [
        MatchResult(
            concept_id=concepts["Photosynthesis"].id,
            syllabus_concept_id=syllabus["Photosynthesis"].id,
            confidence=0.95,
            match_type=MatchType.EXACT,
            rationale="Same concept.",
        ),
        MatchResult(
            concept_id=concepts["ATP synthesis"].id,
            syllabus_concept_id=syllabus["Cellular respiration"].id,
            confidence=0.55,
            match_type=MatchType.RELATED,
            rationale="Part of respiration.",
        ),
    ]


class TestWriteConceptMatches:
    def test_creates_rows(self, db_session, results):
        written = write_concept_matches(db_session, results)

        assert (written.created, written.updated, written.failed) == (2, 0, 0)
        assert _count(db_session) == 2

    def test_second_write_is_idempotent(self, db_session, results):
        write_concept_matches(db_session, results)
        before = {(m.concept_id, m.syllabus_concept_id, m.confidence) for m in db_session.scalars(select(ConceptMatch))}

        written = write_concept_matches(db_session, results)

        after = {(m.concept_id, m.syllabus_concept_id, m.confidence) for m in db_session.scalars(select(ConceptMatch))}
        assert (written.created, written.updated) == (0, 2)
        assert before == after

    def test_rematch_updates_existing_pair(self, db_session, results):
        write_concept_matches(db_session, results)

        rescored = [replace(results[1], confidence=0.7, rationale="Rescored.")]
        written = write_concept_matches(db_session, rescored)

        match = db_session.scalar(
            select(ConceptMatch).where(ConceptMatch.concept_id == results[1].concept_id)
        )
        assert written.updated == 1
        assert match.confidence == 0.7
        assert match.rationale == "Rescored."
        assert _count(db_session) == 2

    def test_empty_input(self, db_session):
        written = write_concept_matches(db_session, [])

        assert (written.created, written.updated, written.failed) == (0, 0, 0)

    @pytest.mark.parametrize(
        "changes",
        [
            {"confidence": 1.5},
            {"confidence": -0.1},
            {"match_type": "synonym"},
        ],
    )
    def test_invalid_records_are_counted_as_failed(self, db_session, results, changes):
        bad = replace(results[0], **changes)

        written = write_concept_matches(db_session, [bad, results[1]])

        assert written.failed == 1
        assert written.created == 1
        assert _count(db_session) == 1

    def test_database_error_does_not_raise(self, results):
        db = Mock()
        db.scalars.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))

        written = write_concept_matches(db, results)

        assert written.failed == 2
        assert written.created == 0
        db.rollback.assert_called_once()

    def test_matches_listed_by_confidence(self, db_session, results, content_job):
        write_concept_matches(db_session, results)

        matches = get_matches_for_content_job(db_session, content_job.id)

        assert [m.confidence for m in matches] == [0.95, 0.55]


class TestDeletion:
    def test_deleting_concepts_cascades_to_matches(self, db_session, results, content_job):
        write_concept_matches(db_session, results)

        deleted = delete_concepts_for_content_job(db_session, content_job.id)

        assert deleted == 3
        assert _count(db_session) == 0

    def test_delete_matches_keeps_concepts(self, db_session, results, content_job):
        write_concept_matches(db_session, results)

        deleted = delete_concept_matches_by_content_job(db_session, content_job.id)

        db_session.expire_all()
        assert deleted == 2
        assert _count(db_session) == 0
        assert len(content_job.concepts) == 3


class TestMatchFeedback:
    def test_records_feedback(self, db_session, matches):
        match = matches["Cellular respiration"]

        updated = record_match_feedback(db_session, match.id, "user-1", "incorrect")

        assert updated.user_feedback == MatchFeedback.INCORRECT.value

    def test_rejects_unknown_feedback(self, db_session, matches):
        with pytest.raises(StudyUnlockError):
            record_match_feedback(db_session, matches["Photosynthesis"].id, "user-1", "maybe")

    def test_rejects_other_users(self, db_session, matches):
        with pytest.raises(PermissionDeniedError):
            record_match_feedback(db_session, matches["Photosynthesis"].id, "user-2", "correct")

    def test_missing_match(self, db_session):
        from uuid import uuid4

        with pytest.raises(NotFoundError):
            record_match_feedback(db_session, uuid4(), "user-1", "correct")
