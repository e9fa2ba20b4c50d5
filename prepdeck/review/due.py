"""
Due-item selection and progress summaries.

Stateless helpers over (item_id, ReviewState) pairs, used by the store for
in-memory post-processing and by the API/CLI for dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from .models import ReviewState, utcnow

ProgressEntry = tuple[str, ReviewState]

MESSAGE_MASTERED = "Word mastered!"
MESSAGE_IMPROVED = "Progress improved!"
MESSAGE_KEEP_PRACTICING = "Keep practicing!"


@dataclass
class ProgressSummary:
    """Counts for a user's vocabulary progress."""

    total: int = 0
    due_for_review: int = 0
    mastered: int = 0
    learning: int = 0
    new: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "due_for_review": self.due_for_review,
            "mastered": self.mastered,
            "learning": self.learning,
            "new": self.new,
        }


def _sort_key(entry: ProgressEntry) -> tuple[datetime, str]:
    item_id, state = entry
    return (state.next_review_at or datetime.min, item_id)


def select_due(
    entries: Iterable[ProgressEntry],
    as_of: datetime | None = None,
    mastered: bool = False,
    limit: int | None = None,
) -> list[ProgressEntry]:
    """
    Select items due for review, most overdue first.

    Args:
        entries: (item_id, state) pairs in any order
        as_of: Reference time (defaults to now)
        mastered: False for the active learning queue, True for
            maintenance review of mastered items
        limit: Maximum items to return

    Returns:
        Entries with next_review_at <= as_of, ascending by next_review_at
    """
    as_of = as_of or utcnow()
    due = [
        (item_id, state)
        for item_id, state in entries
        if state.is_mastered == mastered and state.is_due(as_of)
    ]
    due.sort(key=_sort_key)

    if limit is not None:
        due = due[: max(0, limit)]
    return due


def summarize(
    entries: Iterable[ProgressEntry],
    as_of: datetime | None = None,
    mastery_threshold: int = 4,
) -> ProgressSummary:
    """Count total, due, mastered, learning and new items."""
    as_of = as_of or utcnow()
    summary = ProgressSummary()

    for _, state in entries:
        summary.total += 1
        if state.is_mastered:
            summary.mastered += 1
        elif state.is_due(as_of):
            summary.due_for_review += 1
        if 0 < state.mastery_level < mastery_threshold and not state.is_mastered:
            summary.learning += 1
        if state.times_seen == 0:
            summary.new += 1

    return summary


def progress_message(previous_level: int, state: ReviewState) -> str:
    """Feedback line shown after a review."""
    if state.is_mastered:
        return MESSAGE_MASTERED
    if state.mastery_level > previous_level:
        return MESSAGE_IMPROVED
    return MESSAGE_KEEP_PRACTICING
