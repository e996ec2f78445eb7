"""
Confidence thresholds and score blending for concept matches.

    confidence >= HIGH            -> exact    (auto-unlock)
    MEDIUM <= confidence < HIGH   -> related  (needs user confirmation)
    confidence < MEDIUM           -> weak     (not stored by the matcher)
"""

from __future__ import annotations

from dataclasses import dataclass

from config import get_settings
from studyunlock.db.models import MatchType

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5


@dataclass(frozen=True)
class MatchThresholds:
    high: float = HIGH_CONFIDENCE
    medium: float = MEDIUM_CONFIDENCE
    sim_weight: float = 0.6
    llm_weight: float = 0.4
    shortlist_top_k: int = 10

    @classmethod
    def from_settings(cls) -> MatchThresholds:
        settings = get_settings()
        return cls(
            high=settings.match_high_threshold,
            medium=settings.match_medium_threshold,
            sim_weight=settings.match_sim_weight,
            llm_weight=settings.match_llm_weight,
            shortlist_top_k=settings.match_shortlist_top_k,
        )

    def classify(self, confidence: float) -> MatchType:
        """Bucket a final confidence into a match type."""
        if confidence >= self.high:
            return MatchType.EXACT
        if confidence >= self.medium:
            return MatchType.RELATED
        return MatchType.WEAK

    def is_borderline(self, similarity: float) -> bool:
        """Similarity in the medium band, where an LLM opinion is worth asking for."""
        return self.medium <= similarity < self.high

    def blend(self, similarity: float, llm_confidence: float | None) -> float:
        """
        Blend embedding similarity with LLM confidence.

        Without an LLM opinion the similarity stands in for it, so the blend
        reduces to the similarity itself.
        """
        other = similarity if llm_confidence is None else llm_confidence
        blended = self.sim_weight * similarity + self.llm_weight * other
        return min(1.0, max(0.0, blended))


def classify_confidence(confidence: float, thresholds: MatchThresholds | None = None) -> MatchType:
    return (thresholds or MatchThresholds()).classify(confidence)


def blend_confidence(
    similarity: float, llm_confidence: float | None, thresholds: MatchThresholds | None = None
) -> float:
    return (thresholds or MatchThresholds()).blend(similarity, llm_confidence)
