"""
Review intervals.

Fixed linear buckets, not an ease-factor algorithm:

    hard   -> 1 day
    medium -> 3 days
    easy   -> 7 days
"""

from __future__ import annotations

from datetime import datetime, timedelta

from config import get_settings
from studyunlock.core.clock import utcnow
from studyunlock.db.models import DifficultyRating

INTERVAL_LABELS = {
    DifficultyRating.HARD: "tomorrow",
    DifficultyRating.MEDIUM: "in 3 days",
    DifficultyRating.EASY: "in 1 week",
}


def interval_days(difficulty: DifficultyRating | str) -> int:
    settings = get_settings()
    rating = DifficultyRating(difficulty)
    return {
        DifficultyRating.HARD: settings.review_interval_hard_days,
        DifficultyRating.MEDIUM: settings.review_interval_medium_days,
        DifficultyRating.EASY: settings.review_interval_easy_days,
    }[rating]


def calculate_next_review_date(difficulty: DifficultyRating | str, now: datetime | None = None) -> datetime:
    """Next review time: ``now`` plus the rating's interval."""
    return (now or utcnow()) + timedelta(days=interval_days(difficulty))


def is_correct(difficulty: DifficultyRating | str) -> bool:
    """Only an 'easy' rating counts toward times_correct."""
    return DifficultyRating(difficulty) == DifficultyRating.EASY
