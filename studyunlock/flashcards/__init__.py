"""
Flashcard unlocking.

Learners hold one locked flashcard per syllabus concept; consuming content
that covers the concept unlocks its answer.
"""

from studyunlock.flashcards.answer_generator import AnswerGenerator
from studyunlock.flashcards.question_generator import QuestionGenerator, validate_question
from studyunlock.flashcards.stats import get_user_unlock_stats, record_unlocks
from studyunlock.flashcards.unlock_service import (
    UnlockResult,
    UnlockService,
    promote_if_mastered,
)

__all__ = [
    "AnswerGenerator",
    "QuestionGenerator",
    "validate_question",
    "UnlockService",
    "UnlockResult",
    "promote_if_mastered",
    "record_unlocks",
    "get_user_unlock_stats",
]
