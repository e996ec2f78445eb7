"""
Unit tests for the Concept Matcher.

Embeddings come from a keyword model (see conftest) so similarities are
exact; the LLM verifier is a Mock.
"""
from unittest.mock import Mock

import pytest

from studyunlock.db.models import MatchType
from studyunlock.matching.ai_reasoning import ReasoningOutput
from studyunlock.matching.concept_matcher import DEFAULT_RATIONALE, ConceptMatcher
from studyunlock.matching.thresholds import MatchThresholds
from studyunlock.semantic import EmbeddingService


@pytest.fixture
def silent_verifier():
    verifier = Mock()
    verifier.verify.return_value = None
    return verifier


def _by_concept(run, content_job):
    names = {c.id: c.concept_text for c in content_job.concepts}
    return {names[r.concept_id]: r for r in run.results}


class TestConceptMatcher:
    """Tests for ConceptMatcher.match_concepts_to_syllabus."""

    def test_exact_match_is_high_confidence(
        self, db_session, course, content_job, embedding_service, silent_verifier
    ):
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=silent_verifier)

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)
        results = _by_concept(run, content_job)

        photo = results["Photosynthesis"]
        assert photo.confidence == pytest.approx(1.0)
        assert photo.match_type == MatchType.EXACT
        assert photo.rationale == DEFAULT_RATIONALE

    def test_unrelated_concept_is_dropped(
        self, db_session, course, content_job, embedding_service, silent_verifier
    ):
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=silent_verifier)

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)

        assert "Chlorophyll" not in _by_concept(run, content_job)
        assert run.summary.total_concepts == 3
        assert run.summary.candidates_evaluated == 3

    def test_borderline_without_llm_keeps_similarity(
        self, db_session, course, content_job, embedding_service, silent_verifier
    ):
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=silent_verifier)

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)
        atp = _by_concept(run, content_job)["ATP synthesis"]

        assert atp.confidence == pytest.approx(0.6, abs=1e-5)
        assert atp.match_type == MatchType.RELATED
        assert atp.llm_confidence is None

    def test_llm_only_consulted_for_borderline(
        self, db_session, course, content_job, embedding_service, silent_verifier
    ):
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=silent_verifier)

        matcher.match_concepts_to_syllabus(content_job.id, course.id)

        assert silent_verifier.verify.call_count == 1
        kwargs = silent_verifier.verify.call_args.kwargs
        assert kwargs["extracted_name"] == "ATP synthesis"
        assert kwargs["syllabus_name"] == "Cellular respiration"

    def test_llm_confidence_is_blended(self, db_session, course, content_job, embedding_service):
        verifier = Mock()
        verifier.verify.return_value = ReasoningOutput(
            is_match=True, confidence=1.0, match_type="related", rationale="ATP comes from respiration."
        )
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=verifier)

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)
        atp = _by_concept(run, content_job)["ATP synthesis"]

        # 0.6 * 0.6 + 0.4 * 1.0
        assert atp.confidence == pytest.approx(0.76, abs=1e-5)
        assert atp.llm_confidence == 1.0
        assert atp.rationale == "ATP comes from respiration."

    def test_llm_rejection_drops_candidate(self, db_session, course, content_job, embedding_service):
        verifier = Mock()
        verifier.verify.return_value = ReasoningOutput(
            is_match=False, confidence=0.0, match_type="related", rationale="Different topics."
        )
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=verifier)

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)

        # 0.6 * 0.6 + 0.4 * 0.0 = 0.36 < medium
        assert "ATP synthesis" not in _by_concept(run, content_job)

    def test_embeddings_unavailable_matches_nothing(
        self, db_session, course, content_job, silent_verifier
    ):
        model = Mock()
        model.encode.side_effect = OSError("no model cache")
        matcher = ConceptMatcher(
            db_session, embedding_service=EmbeddingService(model=model), verifier=silent_verifier
        )

        run = matcher.match_concepts_to_syllabus(content_job.id, course.id)

        assert run.results == []
        assert run.summary.total_concepts == 3
        silent_verifier.verify.assert_not_called()

    def test_summary_counts(self, db_session, course, content_job, embedding_service, silent_verifier):
        matcher = ConceptMatcher(db_session, embedding_service=embedding_service, verifier=silent_verifier)

        summary = matcher.match_concepts_to_syllabus(content_job.id, course.id).summary

        assert summary.created == 2
        assert summary.high == 1
        assert summary.medium == 1
        assert summary.avg_confidence == pytest.approx(0.8, abs=1e-5)


class TestShortlist:
    def test_top_k_and_order(self, db_session, silent_verifier):
        matcher = ConceptMatcher(
            db_session,
            embedding_service=Mock(),
            verifier=silent_verifier,
            thresholds=MatchThresholds(shortlist_top_k=2),
        )

        shortlist = matcher.shortlist([0.55, 0.9, 0.3, 0.7])

        assert shortlist == [(1, 0.9), (3, 0.7)]

    def test_ties_keep_syllabus_order(self, db_session, silent_verifier):
        matcher = ConceptMatcher(db_session, embedding_service=Mock(), verifier=silent_verifier)

        assert [idx for idx, _ in matcher.shortlist([0.6, 0.6, 0.6])] == [0, 1, 2]
