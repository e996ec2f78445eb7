# SQLAlchemy models
from .base import Base
from .content import (
    ContentJob,
    ContentJobStatus,
    ContentType,
    Course,
    ExtractedConcept,
    SyllabusConcept,
)
from .flashcards import Flashcard, FlashcardState, UnlockEvent, UserStats
from .matching import ConceptMatch, MatchFeedback, MatchType
from .reviews import DifficultyRating, ReviewEvent, ReviewSession, SessionStatus

__all__ = [
    # Base
    "Base",
    # Content
    "Course",
    "SyllabusConcept",
    "ContentJob",
    "ContentJobStatus",
    "ContentType",
    "ExtractedConcept",
    # Matching
    "ConceptMatch",
    "MatchType",
    "MatchFeedback",
    # Flashcards
    "Flashcard",
    "FlashcardState",
    "UnlockEvent",
    "UserStats",
    # Reviews
    "ReviewSession",
    "ReviewEvent",
    "SessionStatus",
    "DifficultyRating",
]
