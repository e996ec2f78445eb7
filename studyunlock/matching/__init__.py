"""
Concept matching against course syllabi.

Embedding similarity shortlists syllabus candidates; borderline ones get an
LLM second opinion; the blended confidence decides between auto-unlock
(exact), user confirmation (related) and discard (weak).
"""

from studyunlock.matching.ai_reasoning import LLMVerifier, ReasoningOutput
from studyunlock.matching.concept_matcher import (
    ConceptMatcher,
    MatchResult,
    MatchRun,
    MatchSummary,
)
from studyunlock.matching.thresholds import (
    HIGH_CONFIDENCE,
    MEDIUM_CONFIDENCE,
    MatchThresholds,
    blend_confidence,
    classify_confidence,
)
from studyunlock.matching.writer import (
    WriteResult,
    delete_concept_matches_by_content_job,
    delete_concepts_for_content_job,
    get_matches_for_content_job,
    record_match_feedback,
    write_concept_matches,
)

__all__ = [
    "HIGH_CONFIDENCE",
    "MEDIUM_CONFIDENCE",
    "MatchThresholds",
    "classify_confidence",
    "blend_confidence",
    "LLMVerifier",
    "ReasoningOutput",
    "ConceptMatcher",
    "MatchResult",
    "MatchRun",
    "MatchSummary",
    "WriteResult",
    "write_concept_matches",
    "delete_concept_matches_by_content_job",
    "delete_concepts_for_content_job",
    "get_matches_for_content_job",
    "record_match_feedback",
]
