"""
LLM verification of borderline concept matches.

Asks a Gemini model whether an extracted concept and a syllabus concept are
the same thing and how confident it is. Any failure (no API key, network
error, malformed reply) yields ``None`` so the matcher falls back to the
embedding similarity alone.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from loguru import logger

from config import get_settings

VERIFY_PROMPT = """You are an expert educator. Determine if these two concepts match and explain why.

LANGUAGE REQUIREMENT: The rationale must be written in {language}.

EXTRACTED CONCEPT (from the student's content):
Name: {extracted_name}
Definition: {extracted_definition}

SYLLABUS CONCEPT (from course requirements):
Name: {syllabus_name}
Category: {syllabus_category}

EMBEDDING SIMILARITY: {similarity_pct}%

Respond in strict JSON only. Field names remain in English.
{{
  "isMatch": true|false,
  "confidence": 0.0-1.0,
  "matchType": "exact" | "related" | "example-of",
  "rationale": "1-2 sentence explanation in {language}"
}}

Rules:
- "exact": same underlying concept, different wording acceptable
- "related": connected concepts in same topic
- "example-of": extracted is a specific instance of the syllabus concept
- Confidence 0.8+ only if you're very certain
- Confidence 0.6-0.79 likely matches
- Confidence <0.6 uncertain/no match"""

VALID_LLM_MATCH_TYPES = {"exact", "related", "example-of"}


@dataclass
class ReasoningOutput:
    """Parsed LLM verdict on a candidate match."""

    is_match: bool
    confidence: float
    match_type: str
    rationale: str


def extract_json(text: str) -> str:
    """Return the outermost ``{...}`` span of a reply, or the stripped reply."""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start : end + 1]
    return text.strip()


def parse_reasoning(text: str) -> ReasoningOutput | None:
    """Parse and validate a verification reply; None if it doesn't fit the schema."""
    try:
        data: Any = json.loads(extract_json(text))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    is_match = data.get("isMatch")
    confidence = data.get("confidence")
    match_type = data.get("matchType")
    rationale = data.get("rationale")

    if not isinstance(is_match, bool):
        return None
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return None
    if match_type not in VALID_LLM_MATCH_TYPES or not isinstance(rationale, str):
        return None

    return ReasoningOutput(
        is_match=is_match,
        confidence=min(1.0, max(0.0, float(confidence))),
        match_type=match_type,
        rationale=rationale.strip(),
    )


class LLMVerifier:
    """
    Secondary confidence pass for candidate matches.

    The Gemini client is created lazily; without an API key every call
    returns None.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        client: Any = None,
        enabled: bool | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.ai_model
        self.temperature = settings.llm_temperature
        self.enabled = settings.llm_verification_enabled if enabled is None else enabled
        self._client = client

    @property
    def available(self) -> bool:
        return self.enabled and (self._client is not None or bool(self.api_key))

    @property
    def client(self):
        """Lazy-load Gemini client."""
        if self._client is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(model_name=self.model_name)
        return self._client

    def build_prompt(
        self,
        extracted_name: str,
        extracted_definition: str | None,
        syllabus_name: str,
        syllabus_category: str | None,
        embedding_similarity: float,
        rationale_language: str | None = None,
    ) -> str:
        language = (rationale_language or "").strip() or "en"
        return VERIFY_PROMPT.format(
            language=language,
            extracted_name=extracted_name,
            extracted_definition=extracted_definition or "(none)",
            syllabus_name=syllabus_name,
            syllabus_category=syllabus_category or "(none)",
            similarity_pct=f"{embedding_similarity * 100:.0f}",
        )

    def verify(
        self,
        extracted_name: str,
        extracted_definition: str | None,
        syllabus_name: str,
        syllabus_category: str | None,
        embedding_similarity: float,
        rationale_language: str | None = None,
    ) -> ReasoningOutput | None:
        """Ask the LLM for a verdict; None when unavailable or unparseable."""
        if not self.available:
            return None

        prompt = self.build_prompt(
            extracted_name,
            extracted_definition,
            syllabus_name,
            syllabus_category,
            embedding_similarity,
            rationale_language,
        )

        try:
            response = self.client.generate_content(
                prompt,
                generation_config={"temperature": self.temperature},
            )
            text = response.text
        except Exception as exc:  # Intentionally broad - provider errors degrade to embeddings-only
            logger.warning(f"LLM verification failed for {extracted_name!r}: {exc}")
            return None

        parsed = parse_reasoning(text)
        if parsed is None:
            logger.warning(f"LLM verification returned unusable output for {extracted_name!r}")
        return parsed
