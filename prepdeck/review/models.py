"""
Review state for a single (user, vocabulary item) pair.

The state is mutated once per review event by the ReviewScheduler and
persisted by the caller through a ProgressStore.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    """Current time as naive UTC (matches what the database returns)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Difficulty(str, Enum):
    """Self-reported difficulty of a review."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


DEFAULT_DIFFICULTY_RATING = 3


@dataclass
class ReviewState:
    """Scheduling state for one vocabulary item."""

    mastery_level: int = 0
    times_seen: int = 0
    times_correct: int = 0
    interval_days: int = 1
    ease_factor: float = 2.5
    next_review_at: datetime | None = None
    is_mastered: bool = False
    last_seen_at: datetime | None = None
    difficulty_rating: int = DEFAULT_DIFFICULTY_RATING  # personal 1-5
    version: int = 0  # 0 = never persisted

    @classmethod
    def initial(cls, now: datetime | None = None, ease_factor: float = 2.5) -> ReviewState:
        """State for a word the user has never reviewed; due immediately."""
        return cls(ease_factor=ease_factor, next_review_at=now or utcnow())

    @property
    def accuracy(self) -> float:
        """Share of reviews answered correctly."""
        if self.times_seen <= 0:
            return 0.0
        return self.times_correct / self.times_seen

    def is_due(self, as_of: datetime | None = None) -> bool:
        """Check if this item is due for review."""
        if self.next_review_at is None:
            return True
        return (as_of or utcnow()) >= self.next_review_at

    def to_dict(self) -> dict:
        """Convert to an API payload."""
        return {
            "mastery_level": self.mastery_level,
            "times_seen": self.times_seen,
            "times_correct": self.times_correct,
            "interval_days": self.interval_days,
            "ease_factor": round(self.ease_factor, 4),
            "next_review_at": self.next_review_at.isoformat() if self.next_review_at else None,
            "is_mastered": self.is_mastered,
            "last_seen_at": self.last_seen_at.isoformat() if self.last_seen_at else None,
            "difficulty_rating": self.difficulty_rating,
        }
