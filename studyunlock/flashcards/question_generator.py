"""
Question generation for locked flashcards.

Questions are written from the syllabus alone, before the learner has seen
any content. Each LLM question is checked for recall quality; anything that
fails the check (or any provider error) falls back to "What is {concept}?".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from config import get_settings
from studyunlock.db.models import SyllabusConcept

QUESTION_PROMPT = """You are writing an active-recall flashcard question for a course syllabus concept.

LANGUAGE REQUIREMENT: The question must be written in {language}.

SYLLABUS CONCEPT:
- Concept: {concept}
- Category: {category}
- Importance: {importance}

Write ONE question that:
1. Tests understanding and recall, not recognition
2. Uses a "What is...", "How does...", "Why...", "Explain..." format
3. Covers this single concept only (no compound questions)
4. Cannot be answered with yes or no
5. Ends with a question mark and is at most 200 characters

Reply with the question only.

QUESTION:"""

MIN_QUESTION_LENGTH = 10
MAX_QUESTION_LENGTH = 200

INTERROGATIVES = (
    "what", "how", "why", "when", "where", "who", "which", "explain", "describe",
    "quel", "quelle", "quels", "quelles", "comment", "pourquoi", "quand", "où", "qui",
    "expliquez", "décrivez",
)

YES_NO_PATTERNS = [
    re.compile(r"^(is|are|do|does|can|could|would|should|will|has|have)\s", re.IGNORECASE),
    re.compile(r"true or false", re.IGNORECASE),
    re.compile(r"yes or no", re.IGNORECASE),
]

CONJUNCTION = re.compile(r"\s(and|or|et|ou)\s", re.IGNORECASE)


@dataclass
class QuestionCheck:
    """Outcome of validating a generated question."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_question(question: str) -> QuestionCheck:
    """Reject questions that are malformed, yes/no, multiple choice or compound."""
    errors: list[str] = []
    text = question.strip()
    lowered = text.lower()

    if len(text) < MIN_QUESTION_LENGTH:
        errors.append(f"Question too short (minimum {MIN_QUESTION_LENGTH} characters)")
    if len(text) > MAX_QUESTION_LENGTH:
        errors.append(f"Question too long (maximum {MAX_QUESTION_LENGTH} characters)")
    if not text.endswith("?"):
        errors.append("Question must end with a question mark")

    if any(p.search(text) for p in YES_NO_PATTERNS):
        errors.append("Question uses yes/no format")
    elif not lowered.startswith(INTERROGATIVES):
        errors.append("Question must start with an interrogative word")

    if "which of the following" in lowered:
        errors.append("Question uses multiple choice format")
    # One conjunction reads naturally; more means several questions in one
    if text.count("?") > 1 or len(CONJUNCTION.findall(text)) > 1:
        errors.append("Question is compound")

    return QuestionCheck(is_valid=not errors, errors=errors)


def fallback_question(syllabus: SyllabusConcept) -> str:
    return f"What is {syllabus.concept_text}?"


def clean_reply(text: str) -> str:
    """Strip the label, quotes and surrounding whitespace models tend to add."""
    line = next((ln for ln in text.strip().splitlines() if ln.strip()), "")
    line = re.sub(r"^(question|q)\s*:\s*", "", line.strip(), flags=re.IGNORECASE)
    return line.strip().strip("\"'*").strip()


class QuestionGenerator:
    """Generate flashcard questions with Gemini, falling back to a template."""

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
        self.temperature = settings.question_temperature
        self.enabled = settings.question_generation_enabled if enabled is None else enabled
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

    def build_prompt(self, syllabus: SyllabusConcept) -> str:
        return QUESTION_PROMPT.format(
            language=(syllabus.language or "en").strip() or "en",
            concept=syllabus.concept_text,
            category=syllabus.category or "N/A",
            importance=syllabus.importance or "N/A",
        )

    def generate(self, syllabus: SyllabusConcept) -> str:
        """Return a question; never raises."""
        if not self.available:
            return fallback_question(syllabus)

        try:
            response = self.client.generate_content(
                self.build_prompt(syllabus),
                generation_config={"temperature": self.temperature},
            )
            question = clean_reply(response.text or "")
        except Exception as exc:  # Intentionally broad - provider errors fall back to the template
            logger.warning(f"Question generation failed for {syllabus.concept_text!r}: {exc}")
            return fallback_question(syllabus)

        check = validate_question(question)
        if not check.is_valid:
            logger.debug(f"Rejected question {question!r}: {'; '.join(check.errors)}")
            return fallback_question(syllabus)
        return question
