"""
Vocabulary progress models.

One row per (user, vocabulary item) holding the SM-2 scheduling state.
The version column backs optimistic concurrency for review writes.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from prepdeck.review.models import utcnow


class Base(DeclarativeBase):
    """Declarative base for prepdeck models."""


class FlashcardProgress(Base):
    """Per-user review state for one vocabulary item."""

    __tablename__ = "user_flashcard_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(256), nullable=False)

    # Scheduling state
    mastery_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_seen: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    times_correct: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5, nullable=False)
    next_review_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_mastered: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime)
    difficulty_rating: Mapped[int] = mapped_column(Integer, default=3, nullable=False)

    # Optimistic concurrency token
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_progress_user_item"),
        Index("idx_progress_due", "user_id", "is_mastered", "next_review_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<FlashcardProgress user={self.user_id} item={self.item_id} "
            f"mastery={self.mastery_level} next={self.next_review_at}>"
        )
