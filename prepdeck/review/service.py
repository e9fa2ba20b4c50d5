"""
Review Service - recording answers against stored progress.

Runs the read-modify-write cycle for one review:
1. Load the stored state (or build the first-encounter default)
2. Score the answer and compute the next state
3. Write it back; on a concurrent-update conflict, re-read and recompute

A conflict is never dropped: after max_retries it propagates to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from loguru import logger

from prepdeck.store.progress_store import ConflictError, ProgressStore

from .due import ProgressSummary, progress_message, summarize
from .models import Difficulty, ReviewState, utcnow
from .scheduler import ReviewScheduler


@dataclass
class ReviewOutcome:
    """Result of recording one review."""

    item_id: str
    state: ReviewState
    previous_mastery_level: int
    message: str
    attempts: int = 1

    def to_dict(self) -> dict:
        return {
            "success": True,
            "item_id": self.item_id,
            "progress": self.state.to_dict(),
            "mastery_level": self.state.mastery_level,
            "next_review_at": self.state.next_review_at.isoformat() if self.state.next_review_at else None,
            "interval_days": self.state.interval_days,
            "message": self.message,
        }


class ReviewService:
    """
    Records vocabulary reviews and answers progress queries.

    Usage:
        service = ReviewService(SQLProgressStore())
        outcome = service.record_review("user-1", "ubiquitous", is_correct=True, response_time_ms=2400)
    """

    def __init__(
        self,
        store: ProgressStore,
        scheduler: ReviewScheduler | None = None,
        max_retries: int = 3,
    ):
        """
        Initialize the service.

        Args:
            store: Progress persistence
            scheduler: ReviewScheduler (creates default if None)
            max_retries: Write attempts before a conflict is raised
        """
        self.store = store
        self.scheduler = scheduler or ReviewScheduler()
        self.max_retries = max(1, max_retries)

    @classmethod
    def from_settings(
        cls,
        store: ProgressStore,
        settings=None,
        scheduler: ReviewScheduler | None = None,
    ) -> ReviewService:
        """
        Build a service wired to application settings.

        Pass a long-lived scheduler when building one service per request,
        so its jitter sequence keeps advancing between requests.
        """
        if settings is None:
            from config import get_settings

            settings = get_settings()

        return cls(
            store=store,
            scheduler=scheduler or ReviewScheduler.from_settings(settings),
            max_retries=settings.review_max_retries,
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def record_review(
        self,
        user_id: str,
        item_id: str,
        is_correct: bool,
        response_time_ms: float | None = None,
        difficulty: Difficulty | str | None = None,
        now: datetime | None = None,
    ) -> ReviewOutcome:
        """
        Record a review and update scheduling state.

        Args:
            user_id: Learner identifier
            item_id: Vocabulary item identifier
            is_correct: Whether the answer was correct
            response_time_ms: Time to answer in ms
            difficulty: Optional self-reported difficulty

        Returns:
            ReviewOutcome with the persisted state

        Raises:
            ConflictError: If every attempt lost a concurrent-update race
        """
        outcome = self._read_modify_write(
            user_id,
            item_id,
            lambda previous, at: self.scheduler.review(
                previous,
                is_correct=is_correct,
                response_time_ms=response_time_ms,
                difficulty=difficulty,
                now=at,
            ),
            now=now,
        )

        logger.info(
            f"Recorded review for {user_id}/{item_id}: correct={is_correct}, "
            f"mastery {outcome.previous_mastery_level}->{outcome.state.mastery_level}/"
            f"{self.scheduler.config.max_level}, next review in {outcome.state.interval_days}d"
        )
        return outcome

    def mark_mastered(self, user_id: str, item_id: str, now: datetime | None = None) -> ReviewOutcome:
        """Mark a word as mastered without reviewing it."""
        outcome = self._read_modify_write(user_id, item_id, self.scheduler.mark_mastered, now=now)
        logger.info(f"Marked {user_id}/{item_id} as mastered")
        return outcome

    def unmaster(self, user_id: str, item_id: str, now: datetime | None = None) -> ReviewOutcome:
        """Return a word to active learning, due immediately."""
        outcome = self._read_modify_write(user_id, item_id, self.scheduler.unmaster, now=now)
        logger.info(f"Unmarked {user_id}/{item_id}, ready for review")
        return outcome

    def _read_modify_write(
        self,
        user_id: str,
        item_id: str,
        transition: Callable[[ReviewState, datetime], ReviewState],
        now: datetime | None = None,
    ) -> ReviewOutcome:
        last_error: ConflictError | None = None

        for attempt in range(1, self.max_retries + 1):
            at = now or utcnow()
            previous = self.store.get(user_id, item_id)
            if previous is None:
                previous = self.scheduler.initial_state(now=at)

            new_state = transition(previous, at)

            try:
                saved = self.store.put(user_id, item_id, new_state)
            except ConflictError as e:
                last_error = e
                logger.warning(
                    f"Conflict writing {user_id}/{item_id} "
                    f"(attempt {attempt}/{self.max_retries}), re-reading"
                )
                continue

            return ReviewOutcome(
                item_id=item_id,
                state=saved,
                previous_mastery_level=previous.mastery_level,
                message=progress_message(previous.mastery_level, saved),
                attempts=attempt,
            )

        logger.error(f"Giving up on {user_id}/{item_id} after {self.max_retries} conflicting writes")
        raise last_error

    # =========================================================================
    # Reads
    # =========================================================================

    def get_progress(self, user_id: str, item_id: str) -> ReviewState | None:
        """Get stored progress for one item."""
        return self.store.get(user_id, item_id)

    def due(
        self,
        user_id: str,
        mastered_only: bool = False,
        limit: int = 20,
        as_of: datetime | None = None,
    ) -> list[tuple[str, ReviewState]]:
        """
        Get items due for review, most overdue first.

        Args:
            user_id: Learner identifier
            mastered_only: True for the maintenance queue of mastered words
            limit: Maximum items to return
            as_of: Reference time (defaults to now)
        """
        return self.store.query_due(user_id, mastered_only=mastered_only, as_of=as_of, limit=limit)

    def summary(self, user_id: str, as_of: datetime | None = None) -> ProgressSummary:
        """Get progress counts for a user."""
        return summarize(
            self.store.list_for_user(user_id),
            as_of=as_of,
            mastery_threshold=self.scheduler.config.mastery_threshold,
        )
