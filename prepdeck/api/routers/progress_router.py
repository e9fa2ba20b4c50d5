"""
Vocabulary progress router.

Endpoints for recording reviews and reading spaced-repetition progress.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger
from pydantic import BaseModel, Field

from prepdeck.review.models import Difficulty
from prepdeck.review.scheduler import ReviewScheduler
from prepdeck.review.service import ReviewOutcome, ReviewService
from prepdeck.store.progress_store import ConflictError, SQLProgressStore

router = APIRouter()


@lru_cache(maxsize=1)
def get_review_scheduler() -> ReviewScheduler:
    """Scheduler shared by every request."""
    return ReviewScheduler.from_settings()


def get_review_service() -> ReviewService:
    """FastAPI dependency for the review service."""
    return ReviewService.from_settings(SQLProgressStore(), scheduler=get_review_scheduler())


# ========================================
# Request/Response Models
# ========================================


class ReviewRequest(BaseModel):
    """Model for one answered review."""

    user_id: str = Field(min_length=1)
    item_id: str = Field(min_length=1)
    is_correct: bool
    response_time_ms: float | None = Field(default=None, ge=0)
    difficulty: Difficulty | None = None


class ProgressItem(BaseModel):
    """Model for one item's scheduling state."""

    item_id: str
    mastery_level: int
    times_seen: int
    times_correct: int
    interval_days: int
    ease_factor: float
    next_review_at: str | None
    is_mastered: bool
    last_seen_at: str | None
    difficulty_rating: int


class ReviewResponse(BaseModel):
    """Response model for a recorded review."""

    success: bool
    item_id: str
    progress: Dict[str, Any]
    mastery_level: int
    next_review_at: str | None
    interval_days: int
    message: str


class ProgressResponse(BaseModel):
    """Response model for a user's progress overview."""

    success: bool
    total_words: int
    mastered_words: int
    learning_words: int
    new_words: int
    due_for_review: int
    due_words: List[ProgressItem]


def _item(item_id: str, state) -> ProgressItem:
    return ProgressItem(item_id=item_id, **state.to_dict())


def _conflict(e: ConflictError) -> HTTPException:
    logger.error(f"Progress update conflict: {e}")
    return HTTPException(status_code=409, detail="Progress was updated concurrently, please retry")


def _respond(outcome: ReviewOutcome) -> ReviewResponse:
    return ReviewResponse(**outcome.to_dict())


# ========================================
# Progress Endpoints
# ========================================


@router.post("", response_model=ReviewResponse, summary="Record a review")
def record_review(
    request: ReviewRequest,
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """
    Record an answered review and reschedule the word.

    Quality is derived from correctness, response time and the optional
    self-reported difficulty.
    """
    logger.info(f"Updating vocabulary progress: {request.item_id} correct={request.is_correct}")
    try:
        outcome = service.record_review(
            request.user_id,
            request.item_id.lower(),
            is_correct=request.is_correct,
            response_time_ms=request.response_time_ms,
            difficulty=request.difficulty,
        )
    except ConflictError as e:
        raise _conflict(e) from e
    return _respond(outcome)


@router.get("", response_model=ProgressResponse, summary="Get progress overview")
def get_progress(
    user_id: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=500),
    service: ReviewService = Depends(get_review_service),
) -> ProgressResponse:
    """Get progress counts and the words due for active review."""
    summary = service.summary(user_id)
    due = service.due(user_id, limit=limit)
    return ProgressResponse(
        success=True,
        total_words=summary.total,
        mastered_words=summary.mastered,
        learning_words=summary.learning,
        new_words=summary.new,
        due_for_review=summary.due_for_review,
        due_words=[_item(item_id, state) for item_id, state in due],
    )


@router.get("/due", response_model=List[ProgressItem], summary="Get due words")
def get_due(
    user_id: str = Query(..., min_length=1),
    mastered_only: bool = False,
    limit: int = Query(20, ge=1, le=500),
    service: ReviewService = Depends(get_review_service),
) -> List[ProgressItem]:
    """
    Get words due for review, most overdue first.

    Queues:
    - mastered_only=false: active learning
    - mastered_only=true: maintenance review of mastered words
    """
    due = service.due(user_id, mastered_only=mastered_only, limit=limit)
    return [_item(item_id, state) for item_id, state in due]


@router.post("/{item_id}/master", response_model=ReviewResponse, summary="Mark word as mastered")
def master_word(
    item_id: str,
    user_id: str = Query(..., min_length=1),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """Mark a word as mastered and park it for the long maintenance interval."""
    try:
        outcome = service.mark_mastered(user_id, item_id.lower())
    except ConflictError as e:
        raise _conflict(e) from e
    return _respond(outcome)


@router.post("/{item_id}/unmaster", response_model=ReviewResponse, summary="Unmark mastered word")
def unmaster_word(
    item_id: str,
    user_id: str = Query(..., min_length=1),
    service: ReviewService = Depends(get_review_service),
) -> ReviewResponse:
    """Return a word to active learning, due immediately."""
    try:
        outcome = service.unmaster(user_id, item_id.lower())
    except ConflictError as e:
        raise _conflict(e) from e
    return _respond(outcome)
