"""
Concept Matcher - Match extracted concepts against a course syllabus.

For each extracted concept:
1. Cosine similarity against every syllabus concept (embeddings).
2. Shortlist the top-K syllabus concepts with similarity >= MEDIUM.
3. Borderline candidates (MEDIUM <= sim < HIGH) get an LLM confidence,
   blended with the similarity.
4. The best blended candidate is kept if it is still >= MEDIUM.

If embeddings are unavailable all similarities are 0.0 and nothing is
matched; the run still completes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from studyunlock.db.models import ExtractedConcept, MatchType, SyllabusConcept
from studyunlock.matching.ai_reasoning import LLMVerifier
from studyunlock.matching.thresholds import MatchThresholds
from studyunlock.semantic.embedding_service import (
    EmbeddingService,
    build_extracted_text,
    build_syllabus_text,
)

DEFAULT_RATIONALE = "Similarity-based match."


@dataclass
class MatchResult:
    """Best syllabus match for one extracted concept."""

    concept_id: UUID
    syllabus_concept_id: UUID
    confidence: float
    match_type: MatchType
    rationale: str
    similarity: float = 0.0
    llm_confidence: float | None = None


@dataclass
class MatchSummary:
    total_concepts: int = 0
    candidates_evaluated: int = 0
    created: int = 0
    high: int = 0
    medium: int = 0
    avg_confidence: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MatchRun:
    results: list[MatchResult] = field(default_factory=list)
    summary: MatchSummary = field(default_factory=MatchSummary)


class ConceptMatcher:
    """
    Rank syllabus concepts for each concept extracted from a content job.

    Example:
        >>> matcher = ConceptMatcher(db_session)
        >>> run = matcher.match_concepts_to_syllabus(job_id, course_id)
        >>> run.summary.high
    """

    def __init__(
        self,
        db_session: Session,
        embedding_service: EmbeddingService | None = None,
        verifier: LLMVerifier | None = None,
        thresholds: MatchThresholds | None = None,
    ):
        self.db = db_session
        self.embedding_service = embedding_service or EmbeddingService()
        self.verifier = verifier or LLMVerifier()
        self.thresholds = thresholds or MatchThresholds.from_settings()

    def _load_concepts(self, content_job_id: UUID) -> list[ExtractedConcept]:
        stmt = (
            select(ExtractedConcept)
            .where(ExtractedConcept.content_job_id == content_job_id)
            .order_by(ExtractedConcept.created_at)
        )
        return list(self.db.scalars(stmt))

    def _load_syllabus(self, course_id: UUID) -> list[SyllabusConcept]:
        stmt = (
            select(SyllabusConcept)
            .where(SyllabusConcept.course_id == course_id)
            .order_by(SyllabusConcept.order_index, SyllabusConcept.created_at)
        )
        return list(self.db.scalars(stmt))

    def shortlist(self, similarities: list[float]) -> list[tuple[int, float]]:
        """Indices and scores of the top-K similarities at or above MEDIUM, best first."""
        candidates = [
            (idx, sim) for idx, sim in enumerate(similarities) if sim >= self.thresholds.medium
        ]
        # sorted() is stable, so equal scores keep syllabus order
        candidates = sorted(candidates, key=lambda c: c[1], reverse=True)
        return candidates[: self.thresholds.shortlist_top_k]

    def score_candidate(
        self, concept: ExtractedConcept, syllabus_concept: SyllabusConcept, similarity: float
    ) -> MatchResult:
        """Blend similarity with an LLM opinion (borderline candidates only)."""
        verdict = None
        if self.thresholds.is_borderline(similarity):
            verdict = self.verifier.verify(
                extracted_name=concept.concept_text,
                extracted_definition=concept.definition,
                syllabus_name=syllabus_concept.concept_text,
                syllabus_category=syllabus_concept.category,
                embedding_similarity=similarity,
                rationale_language=concept.language or syllabus_concept.language,
            )

        llm_confidence = verdict.confidence if verdict else None
        confidence = self.thresholds.blend(similarity, llm_confidence)

        return MatchResult(
            concept_id=concept.id,
            syllabus_concept_id=syllabus_concept.id,
            confidence=confidence,
            match_type=self.thresholds.classify(confidence),
            rationale=verdict.rationale if verdict and verdict.rationale else DEFAULT_RATIONALE,
            similarity=similarity,
            llm_confidence=llm_confidence,
        )

    def match_concepts_to_syllabus(self, content_job_id: UUID, course_id: UUID) -> MatchRun:
        """Compute the best syllabus match for every extracted concept of a job."""
        concepts = self._load_concepts(content_job_id)
        syllabus = self._load_syllabus(course_id)

        logger.info(
            f"Matching {len(concepts)} extracted concepts against {len(syllabus)} syllabus concepts"
        )

        extracted_embeds = self.embedding_service.embed_texts_or_none(
            [build_extracted_text(c.concept_text, c.definition) for c in concepts]
        )
        syllabus_embeds = self.embedding_service.embed_texts_or_none(
            [build_syllabus_text(s.concept_text, s.category) for s in syllabus]
        )
        if extracted_embeds is None or syllabus_embeds is None:
            logger.warning("Matching without embeddings; all similarities are 0.0")

        sim_matrix = self.embedding_service.similarity_matrix(
            extracted_embeds, syllabus_embeds, len(concepts), len(syllabus)
        )

        results: list[MatchResult] = []
        for concept, similarities in zip(concepts, sim_matrix):
            best: MatchResult | None = None
            for idx, sim in self.shortlist(similarities):
                candidate = self.score_candidate(concept, syllabus[idx], sim)
                if best is None or candidate.confidence > best.confidence:
                    best = candidate

            if best is not None and best.confidence >= self.thresholds.medium:
                results.append(best)

        summary = self.summarize(results, total_concepts=len(concepts), evaluated=len(sim_matrix))
        logger.info(
            f"Matching done: {summary.created} matches "
            f"({summary.high} high, {summary.medium} medium, avg {summary.avg_confidence:.2f})"
        )
        return MatchRun(results=results, summary=summary)

    def summarize(self, results: list[MatchResult], total_concepts: int, evaluated: int) -> MatchSummary:
        high = sum(1 for r in results if r.confidence >= self.thresholds.high)
        medium = sum(
            1 for r in results if self.thresholds.medium <= r.confidence < self.thresholds.high
        )
        avg = sum(r.confidence for r in results) / len(results) if results else 0.0
        return MatchSummary(
            total_concepts=total_concepts,
            candidates_evaluated=evaluated,
            created=len(results),
            high=high,
            medium=medium,
            avg_confidence=avg,
        )
