"""Spaced-repetition review sessions with fixed 1/3/7-day intervals."""

from studyunlock.reviews.review_session_service import (
    RatingOutcome,
    ReviewSessionService,
    ReviewSummary,
    ScheduleItem,
)
from studyunlock.reviews.scheduling import calculate_next_review_date, interval_days

__all__ = [
    "ReviewSessionService",
    "RatingOutcome",
    "ReviewSummary",
    "ScheduleItem",
    "calculate_next_review_date",
    "interval_days",
]
