"""
Progress Store for vocabulary review state.

Provides durable per-user, per-item persistence for:
- Reading the prior review state (None when never reviewed)
- Writing the next state with optimistic concurrency
- Due-item queries for building review sessions

Writes compare the caller's version with the stored one. A mismatch means
another session committed first; the caller must re-read and recompute.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from prepdeck.db.database import session_scope
from prepdeck.db.models import FlashcardProgress
from prepdeck.review.models import ReviewState, utcnow

# =============================================================================
# Errors
# =============================================================================


class ProgressStoreError(Exception):
    """Base error for progress persistence."""


class ConflictError(ProgressStoreError):
    """Another writer updated the same (user, item) record first."""

    def __init__(self, user_id: str, item_id: str, expected_version: int | None = None):
        self.user_id = user_id
        self.item_id = item_id
        self.expected_version = expected_version
        super().__init__(
            f"Concurrent update of progress for user={user_id} item={item_id} "
            f"(expected version {expected_version})"
        )


# =============================================================================
# Store Interface
# =============================================================================


class ProgressStore(ABC):
    """Key-value access to review state keyed by (user_id, item_id)."""

    @abstractmethod
    def get(self, user_id: str, item_id: str) -> ReviewState | None:
        """Return the stored state, or None if the item was never reviewed."""

    @abstractmethod
    def put(self, user_id: str, item_id: str, state: ReviewState) -> ReviewState:
        """
        Persist a state computed from the version it carries.

        Returns:
            The stored state with its new version

        Raises:
            ConflictError: If the stored version moved on since the read
        """

    @abstractmethod
    def query_due(
        self,
        user_id: str,
        mastered_only: bool = False,
        as_of: datetime | None = None,
        limit: int = 20,
    ) -> list[tuple[str, ReviewState]]:
        """Return due items ordered by next_review_at ascending."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[tuple[str, ReviewState]]:
        """Return every stored item for a user."""


# =============================================================================
# SQLAlchemy Store
# =============================================================================


def _to_state(row: FlashcardProgress) -> ReviewState:
    return ReviewState(
        mastery_level=row.mastery_level,
        times_seen=row.times_seen,
        times_correct=row.times_correct,
        interval_days=row.interval_days,
        ease_factor=row.ease_factor,
        next_review_at=row.next_review_at,
        is_mastered=row.is_mastered,
        last_seen_at=row.last_seen_at,
        difficulty_rating=row.difficulty_rating,
        version=row.version,
    )


def _state_columns(state: ReviewState) -> dict:
    return {
        "mastery_level": state.mastery_level,
        "times_seen": state.times_seen,
        "times_correct": state.times_correct,
        "interval_days": state.interval_days,
        "ease_factor": state.ease_factor,
        "next_review_at": state.next_review_at or utcnow(),
        "is_mastered": state.is_mastered,
        "last_seen_at": state.last_seen_at,
        "difficulty_rating": state.difficulty_rating,
    }


class SQLProgressStore(ProgressStore):
    """
    SQLAlchemy-backed progress store on the user_flashcard_progress table.

    Handles:
    - Insert of first-time records (version 0 -> 1)
    - Compare-and-swap updates on the version column
    - Due queries filtered by mastery queue
    """

    def __init__(self, session_factory: sessionmaker | None = None):
        """
        Initialize the store.

        Args:
            session_factory: Custom session factory (defaults to the configured database)
        """
        self.session_factory = session_factory

    def get(self, user_id: str, item_id: str) -> ReviewState | None:
        with session_scope(self.session_factory) as session:
            row = session.scalars(
                select(FlashcardProgress).where(
                    FlashcardProgress.user_id == user_id,
                    FlashcardProgress.item_id == item_id,
                )
            ).first()
            return _to_state(row) if row is not None else None

    def put(self, user_id: str, item_id: str, state: ReviewState) -> ReviewState:
        columns = _state_columns(state)
        new_version = state.version + 1

        if state.version == 0:
            try:
                with session_scope(self.session_factory) as session:
                    session.add(
                        FlashcardProgress(
                            user_id=user_id,
                            item_id=item_id,
                            version=new_version,
                            **columns,
                        )
                    )
            except IntegrityError as e:
                logger.debug(f"First insert lost race for {user_id}/{item_id}: {e}")
                raise ConflictError(user_id, item_id, state.version) from e
        else:
            with session_scope(self.session_factory) as session:
                result = session.execute(
                    update(FlashcardProgress)
                    .where(
                        FlashcardProgress.user_id == user_id,
                        FlashcardProgress.item_id == item_id,
                        FlashcardProgress.version == state.version,
                    )
                    .values(version=new_version, updated_at=utcnow(), **columns)
                )
                if result.rowcount != 1:
                    raise ConflictError(user_id, item_id, state.version)

        logger.debug(f"Saved progress {user_id}/{item_id} at version {new_version}")
        return ReviewState(**{**columns, "version": new_version})

    def query_due(
        self,
        user_id: str,
        mastered_only: bool = False,
        as_of: datetime | None = None,
        limit: int = 20,
    ) -> list[tuple[str, ReviewState]]:
        as_of = as_of or utcnow()
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FlashcardProgress)
                .where(
                    FlashcardProgress.user_id == user_id,
                    FlashcardProgress.is_mastered == mastered_only,
                    FlashcardProgress.next_review_at <= as_of,
                )
                .order_by(FlashcardProgress.next_review_at.asc(), FlashcardProgress.item_id.asc())
                .limit(limit)
            ).all()
            return [(row.item_id, _to_state(row)) for row in rows]

    def list_for_user(self, user_id: str) -> list[tuple[str, ReviewState]]:
        with session_scope(self.session_factory) as session:
            rows = session.scalars(
                select(FlashcardProgress)
                .where(FlashcardProgress.user_id == user_id)
                .order_by(FlashcardProgress.next_review_at.asc(), FlashcardProgress.item_id.asc())
            ).all()
            return [(row.item_id, _to_state(row)) for row in rows]
