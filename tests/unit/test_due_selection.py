"""
Unit tests for due-item selection and progress summaries.
"""

import random
from datetime import timedelta

import pytest

from prepdeck.review.due import (
    MESSAGE_IMPROVED,
    MESSAGE_KEEP_PRACTICING,
    MESSAGE_MASTERED,
    progress_message,
    select_due,
    summarize,
)
from prepdeck.review.models import ReviewState


@pytest.fixture
def entries(now):
    """Mixed progress for one user."""
    return [
        ("abate", ReviewState(mastery_level=1, times_seen=2, next_review_at=now - timedelta(days=3))),
        ("benign", ReviewState(mastery_level=2, times_seen=4, next_review_at=now - timedelta(hours=1))),
        ("cacophony", ReviewState(mastery_level=3, times_seen=5, next_review_at=now + timedelta(days=2))),
        ("diligent", ReviewState(mastery_level=0, times_seen=0, next_review_at=now)),
        (
            "ephemeral",
            ReviewState(mastery_level=4, times_seen=7, is_mastered=True, next_review_at=now - timedelta(days=10)),
        ),
        (
            "fastidious",
            ReviewState(mastery_level=5, times_seen=9, is_mastered=True, next_review_at=now + timedelta(days=30)),
        ),
    ]


class TestSelectDue:
    """Tests for select_due."""

    def test_active_queue_most_overdue_first(self, entries, now):
        due = select_due(entries, as_of=now)
        assert [item_id for item_id, _ in due] == ["abate", "benign", "diligent"]

    def test_mastered_queue(self, entries, now):
        due = select_due(entries, as_of=now, mastered=True)
        assert [item_id for item_id, _ in due] == ["ephemeral"]

    def test_order_does_not_depend_on_input_order(self, entries, now):
        shuffled = list(entries)
        random.Random(3).shuffle(shuffled)
        assert select_due(shuffled, as_of=now) == select_due(entries, as_of=now)

    def test_ties_broken_by_item_id(self, now):
        entries = [
            ("zealous", ReviewState(next_review_at=now)),
            ("astute", ReviewState(next_review_at=now)),
        ]
        assert [item_id for item_id, _ in select_due(entries, as_of=now)] == ["astute", "zealous"]

    def test_due_boundary_is_inclusive(self, now):
        entries = [("candid", ReviewState(next_review_at=now))]
        assert len(select_due(entries, as_of=now)) == 1
        assert select_due(entries, as_of=now - timedelta(seconds=1)) == []

    def test_limit(self, entries, now):
        due = select_due(entries, as_of=now, limit=2)
        assert [item_id for item_id, _ in due] == ["abate", "benign"]

    def test_missing_due_date_counts_as_due(self, now):
        entries = [("novel", ReviewState(next_review_at=None))]
        assert select_due(entries, as_of=now) == entries

    def test_empty(self, now):
        assert select_due([], as_of=now) == []


class TestSummarize:
    """Tests for summarize."""

    def test_counts(self, entries, now):
        summary = summarize(entries, as_of=now)

        assert summary.total == 6
        assert summary.mastered == 2
        assert summary.due_for_review == 3
        assert summary.learning == 3
        assert summary.new == 1

    def test_to_dict(self, entries, now):
        assert summarize(entries, as_of=now).to_dict() == {
            "total": 6,
            "due_for_review": 3,
            "mastered": 2,
            "learning": 3,
            "new": 1,
        }

    def test_empty(self, now):
        summary = summarize([], as_of=now)
        assert summary.total == 0
        assert summary.due_for_review == 0


class TestProgressMessage:
    """Tests for progress_message."""

    def test_mastered(self):
        assert progress_message(3, ReviewState(mastery_level=4, is_mastered=True)) == MESSAGE_MASTERED

    def test_improved(self):
        assert progress_message(1, ReviewState(mastery_level=2)) == MESSAGE_IMPROVED

    def test_no_change(self):
        assert progress_message(0, ReviewState(mastery_level=0)) == MESSAGE_KEEP_PRACTICING

    def test_dropped(self):
        assert progress_message(3, ReviewState(mastery_level=2)) == MESSAGE_KEEP_PRACTICING
