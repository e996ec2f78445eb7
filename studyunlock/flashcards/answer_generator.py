"""
Answer generation for unlocked flashcards.

The answer is written from the content the learner actually consumed. When
no LLM is configured, or the call fails, the extracted definition is used.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from config import get_settings
from studyunlock.db.models import ExtractedConcept, SyllabusConcept

ANSWER_PROMPT = """You are generating a flashcard answer based on content the student consumed.

LANGUAGE REQUIREMENT: The answer must be written in {language}.

QUESTION CONTEXT (from syllabus):
- Concept: {syllabus_concept}
- Category: {category}
- Importance: {importance}

CONTENT CONTEXT (from video/PDF):
- Extracted concept: {extracted_concept}
- Definition: {definition}

MATCHING RATIONALE:
{rationale}

Generate a concise, accurate answer (1-3 sentences) that:
1. Directly answers the question about the syllabus concept
2. Incorporates specific details from the content consumed
3. Includes a concrete example if available in the content
4. Is suitable for flashcard review (clear and memorable)

ANSWER:"""


def fallback_answer(extracted: ExtractedConcept) -> str:
    if extracted.definition:
        return extracted.definition.strip()
    return extracted.concept_text


class AnswerGenerator:
    """Generate flashcard answers with Gemini, falling back to the extracted definition."""

    def __init__(self, api_key: str | None = None, model_name: str | None = None, client: Any = None):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model_name = model_name or settings.ai_model
        self.temperature = settings.answer_temperature
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self.api_key)

    @property
    def client(self):
        """Lazy-load Gemini client."""
        if self._client is None:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai.GenerativeModel(model_name=self.model_name)
        return self._client

    def build_prompt(
        self, extracted: ExtractedConcept, syllabus: SyllabusConcept, rationale: str
    ) -> str:
        language = (extracted.language or syllabus.language or "en").strip() or "en"
        return ANSWER_PROMPT.format(
            language=language,
            syllabus_concept=syllabus.concept_text,
            category=syllabus.category or "N/A",
            importance=syllabus.importance or "N/A",
            extracted_concept=extracted.concept_text,
            definition=extracted.definition or "N/A",
            rationale=rationale,
        )

    def generate(self, extracted: ExtractedConcept, syllabus: SyllabusConcept, rationale: str) -> str:
        """Return an answer; never raises."""
        if not self.available:
            return fallback_answer(extracted)

        try:
            response = self.client.generate_content(
                self.build_prompt(extracted, syllabus, rationale),
                generation_config={"temperature": self.temperature},
            )
            text = (response.text or "").strip()
        except Exception as exc:  # Intentionally broad - provider errors fall back to the definition
            logger.warning(f"Answer generation failed for {syllabus.concept_text!r}: {exc}")
            return fallback_answer(extracted)

        return text or fallback_answer(extracted)
