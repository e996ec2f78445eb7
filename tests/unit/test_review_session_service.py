"""Unit tests for review scheduling and the review session lifecycle."""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from studyunlock.core.clock import utcnow
from studyunlock.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StudyUnlockError,
)
from studyunlock.db.models import FlashcardState, ReviewEvent, SessionStatus
from studyunlock.flashcards import UnlockService, get_user_unlock_stats
from studyunlock.reviews import ReviewSessionService, calculate_next_review_date


@pytest.fixture
def unlocked(db_session, matches):
    """Both sample matches confirmed: two reviewable cards for user-1."""
    service = UnlockService(db_session)
    for match in matches.values():
        service.force_unlock_flashcard_answer(match.id, "user-1")
    return service.list_flashcards("user-1", state=FlashcardState.UNLOCKED)


@pytest.fixture
def service(db_session):
    return ReviewSessionService(db_session)


def _event_count(db_session, session_id):
    return db_session.scalar(
        select(func.count()).select_from(ReviewEvent).where(ReviewEvent.session_id == session_id)
    )


class TestCalculateNextReviewDate:
    NOW = datetime(2024, 5, 1, 9, 30)

    @pytest.mark.parametrize("difficulty,days", [("hard", 1), ("medium", 3), ("easy", 7)])
    def test_intervals(self, difficulty, days):
        assert calculate_next_review_date(difficulty, now=self.NOW) == self.NOW + timedelta(days=days)

    def test_unknown_difficulty(self):
        with pytest.raises(ValueError):
            calculate_next_review_date("impossible", now=self.NOW)


class TestStartSession:
    def test_includes_only_unlocked_cards(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)

        assert review.status == SessionStatus.IN_PROGRESS.value
        assert review.flashcard_count == 2
        assert review.current_card_index == 0
        assert {c.id for c in cards} == {c.id for c in unlocked}
        assert sorted(review.flashcard_ids) == sorted(str(c.id) for c in unlocked)

    def test_no_cards_to_review(self, service, course, flashcards):
        with pytest.raises(NotFoundError):
            service.start_review_session("user-1", course.id)

    def test_unknown_course(self, service):
        with pytest.raises(NotFoundError):
            service.start_review_session("user-1", uuid4())


class TestRateFlashcard:
    def test_rating_records_event_and_schedules(self, db_session, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        card = cards[0]

        outcome = service.rate_flashcard(review.id, "user-1", card.id, "easy", time_to_reveal_ms=1200)

        db_session.refresh(card)
        assert outcome.next_card_index == 1
        assert outcome.is_complete is False
        assert card.times_reviewed == 1
        assert card.times_correct == 1
        assert card.next_review_at - card.last_reviewed_at == timedelta(days=7)
        assert _event_count(db_session, review.id) == 1

    def test_hard_is_not_correct(self, db_session, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)

        service.rate_flashcard(review.id, "user-1", cards[0].id, "hard")

        db_session.refresh(cards[0])
        assert cards[0].times_reviewed == 1
        assert cards[0].times_correct == 0

    def test_events_never_exceed_flashcard_count(self, db_session, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        service.rate_flashcard(review.id, "user-1", cards[0].id, "medium")
        service.rate_flashcard(review.id, "user-1", cards[1].id, "medium")

        with pytest.raises(InvalidStateError):
            service.rate_flashcard(review.id, "user-1", cards[0].id, "easy")

        assert _event_count(db_session, review.id) == 2

    def test_card_index_is_monotonic_and_capped(self, db_session, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        seen = [review.current_card_index]

        for card in cards:
            outcome = service.rate_flashcard(review.id, "user-1", card.id, "medium")
            db_session.refresh(review)
            seen.append(review.current_card_index)

        assert seen == sorted(seen)
        assert seen[-1] == review.flashcard_count
        assert outcome.is_complete is True

    def test_rejects_card_outside_session(self, service, course, unlocked):
        review, _ = service.start_review_session("user-1", course.id)

        with pytest.raises(StudyUnlockError):
            service.rate_flashcard(review.id, "user-1", uuid4(), "easy")

    def test_rejects_invalid_difficulty(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)

        with pytest.raises(StudyUnlockError):
            service.rate_flashcard(review.id, "user-1", cards[0].id, "trivial")

    def test_rejects_other_user(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)

        with pytest.raises(PermissionDeniedError):
            service.rate_flashcard(review.id, "user-2", cards[0].id, "easy")

    def test_rejects_finished_session(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        service.complete_review_session(review.id, "user-1")

        with pytest.raises(InvalidStateError):
            service.rate_flashcard(review.id, "user-1", cards[0].id, "easy")

    def test_mastery_after_enough_easy_ratings(self, db_session, service, course, unlocked):
        card = unlocked[0]
        card.times_correct = 2
        db_session.commit()
        review, _ = service.start_review_session("user-1", course.id)

        outcome = service.rate_flashcard(review.id, "user-1", card.id, "easy")

        db_session.refresh(card)
        assert outcome.mastered is True
        assert card.state == FlashcardState.MASTERED.value
        assert get_user_unlock_stats(db_session, "user-1")["total_mastered"] == 1


class TestSessionLifecycle:
    def test_complete(self, service, course, unlocked):
        review, _ = service.start_review_session("user-1", course.id)

        completed = service.complete_review_session(review.id, "user-1")

        assert completed.status == SessionStatus.COMPLETED.value
        assert completed.completed_at is not None

    def test_abandon_keeps_events(self, db_session, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        service.rate_flashcard(review.id, "user-1", cards[0].id, "hard")

        abandoned = service.abandon_review_session(review.id, "user-1")

        assert abandoned.status == SessionStatus.ABANDONED.value
        assert _event_count(db_session, review.id) == 1

    def test_terminal_states_are_final(self, service, course, unlocked):
        review, _ = service.start_review_session("user-1", course.id)
        service.abandon_review_session(review.id, "user-1")

        with pytest.raises(InvalidStateError):
            service.complete_review_session(review.id, "user-1")
        with pytest.raises(InvalidStateError):
            service.abandon_review_session(review.id, "user-1")

    def test_missing_session(self, service):
        with pytest.raises(NotFoundError):
            service.complete_review_session(uuid4(), "user-1")


class TestSummaryAndDue:
    def test_summary_counts_and_schedule(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        service.rate_flashcard(review.id, "user-1", cards[0].id, "hard")
        service.rate_flashcard(review.id, "user-1", cards[1].id, "easy")

        summary = service.get_review_summary(review.id, "user-1")

        assert summary.total_reviewed == 2
        assert (summary.hard_count, summary.medium_count, summary.easy_count) == (1, 0, 1)
        assert [(s.difficulty, s.interval) for s in summary.next_review_schedule] == [
            ("hard", "tomorrow"),
            ("easy", "in 1 week"),
        ]

    def test_freshly_unlocked_cards_are_due(self, service, unlocked):
        due = service.get_due_flashcards("user-1", now=utcnow() + timedelta(seconds=1))

        assert {c.id for c in due} == {c.id for c in unlocked}

    def test_rated_cards_leave_due_list(self, service, course, unlocked):
        review, cards = service.start_review_session("user-1", course.id)
        service.rate_flashcard(review.id, "user-1", cards[0].id, "easy")

        due = service.get_due_flashcards("user-1", now=utcnow() + timedelta(days=2))

        assert [c.id for c in due] == [cards[1].id]
