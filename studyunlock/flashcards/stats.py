"""Per-learner unlock statistics: totals, streaks and milestones."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from studyunlock.core.clock import utcnow
from studyunlock.db.models import Flashcard, UserStats

MILESTONES = (10, 50, 100)


def get_or_create_stats(db: Session, user_id: str) -> UserStats:
    stats = db.scalar(select(UserStats).where(UserStats.user_id == user_id))
    if stats is None:
        stats = UserStats(
            user_id=user_id,
            total_unlocks=0,
            total_locked=0,
            total_mastered=0,
            unlock_rate=0.0,
            current_streak=0,
            longest_streak=0,
        )
        db.add(stats)
    return stats


def next_streak(current: int, last_unlock: date | None, today: date) -> int:
    """
    Streak after unlocking something today.

    Continues from yesterday, stays put if already counted today, else restarts.
    """
    if last_unlock == today:
        return max(current, 1)
    if last_unlock == today - timedelta(days=1):
        return current + 1
    return 1


def record_unlocks(db: Session, user_id: str, unlock_count: int, now: datetime | None = None) -> UserStats:
    """Update counters, streaks and milestones after ``unlock_count`` unlocks (no commit)."""
    now = now or utcnow()
    today = now.date()
    stats = get_or_create_stats(db, user_id)

    previous_total = stats.total_unlocks or 0
    new_total = previous_total + unlock_count

    stats.current_streak = next_streak(stats.current_streak or 0, stats.last_unlock_date, today)
    stats.longest_streak = max(stats.longest_streak or 0, stats.current_streak)
    stats.last_unlock_date = today
    stats.first_unlock_at = stats.first_unlock_at or now
    stats.total_unlocks = new_total
    stats.total_locked = max(0, (stats.total_locked or 0) - unlock_count)

    total_flashcards = db.scalar(
        select(func.count()).select_from(Flashcard).where(Flashcard.user_id == user_id)
    )
    stats.unlock_rate = new_total / total_flashcards if total_flashcards else 0.0

    for milestone in MILESTONES:
        if previous_total < milestone <= new_total:
            setattr(stats, f"milestone_{milestone}", now)
            logger.info(f"Milestone reached for {user_id}: {milestone} unlocks")

    logger.debug(
        f"Stats for {user_id}: {new_total} unlocks, streak {stats.current_streak}, "
        f"rate {stats.unlock_rate:.0%}"
    )
    return stats


def get_user_unlock_stats(db: Session, user_id: str) -> dict[str, Any]:
    stats = db.scalar(select(UserStats).where(UserStats.user_id == user_id))
    if stats is None:
        return {
            "total_unlocks": 0,
            "total_locked": 0,
            "total_mastered": 0,
            "unlock_rate": 0.0,
            "current_streak": 0,
            "longest_streak": 0,
            "last_unlock_date": None,
            "first_unlock_at": None,
        }
    return {
        "total_unlocks": stats.total_unlocks,
        "total_locked": stats.total_locked,
        "total_mastered": stats.total_mastered,
        "unlock_rate": stats.unlock_rate,
        "current_streak": stats.current_streak,
        "longest_streak": stats.longest_streak,
        "last_unlock_date": stats.last_unlock_date,
        "first_unlock_at": stats.first_unlock_at,
    }
