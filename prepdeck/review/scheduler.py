"""
SM-2 Review Scheduler for vocabulary mastery.

Implements:
- Quality scoring from correctness, response time and self-reported difficulty
- SM-2 interval and ease-factor updates keyed to a 0-5 mastery scale
- Optional jitter on due dates to spread out mass-due clusters

Quality Scale:
1 - Incorrect response
3 - Correct, but slow (8s or more)
4 - Correct, with some hesitation
5 - Correct and fast (under 3s)

Self-reported "easy" raises a correct answer by one step, "hard" lowers any
answer by one step (never below 1).
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable

from loguru import logger

from .models import DEFAULT_DIFFICULTY_RATING, Difficulty, ReviewState, utcnow

Jitter = Callable[[], float]


# =============================================================================
# Configuration
# =============================================================================


@dataclass
class SchedulerConfig:
    """Configuration for the review scheduler."""

    max_level: int = 5
    mastery_threshold: int = 4  # Level at which a word counts as mastered
    pass_quality: int = 3
    initial_ease: float = 2.5
    minimum_ease: float = 1.3
    maximum_ease: float = 2.5
    failure_ease_penalty: float = 0.2
    first_interval: int = 1  # Days after the first successful review
    second_interval: int = 6  # Days after the second successful review
    fast_response_ms: int = 3000
    normal_response_ms: int = 8000
    jitter_low: float = 0.8
    jitter_high: float = 1.2
    mastered_interval_days: int = 365

    @classmethod
    def from_settings(cls, settings=None) -> SchedulerConfig:
        """Build a config from application settings."""
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(**settings.get_scheduler_config())


def seeded_jitter(seed: int | None = None, low: float = 0.8, high: float = 1.2) -> Jitter:
    """
    Create a jitter function drawing uniform factors from [low, high].

    Two functions created with the same seed produce the same sequence.
    """
    rng = random.Random(seed)

    def _jitter() -> float:
        return rng.uniform(low, high)

    return _jitter


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value, low, high):
    return max(low, min(high, value))


# =============================================================================
# Scheduler
# =============================================================================


class ReviewScheduler:
    """
    Computes the next ReviewState after one review attempt.

    The scheduler holds no state between calls. Given the same previous
    state, answer, timestamp and jitter sequence it returns the same result.
    Out-of-range input (e.g. a mastery level outside the scale) is clamped,
    never rejected.
    """

    def __init__(self, config: SchedulerConfig | None = None, jitter: Jitter | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
            jitter: Returns a due-date multiplier; None disables jitter
        """
        self.config = config or SchedulerConfig()
        self.jitter = jitter

    @classmethod
    def from_settings(cls, settings=None) -> ReviewScheduler:
        """Build a scheduler, with seeded jitter when enabled in settings."""
        if settings is None:
            from config import get_settings

            settings = get_settings()

        config = SchedulerConfig.from_settings(settings)
        jitter = None
        if settings.srs_jitter_enabled:
            jitter = seeded_jitter(settings.srs_jitter_seed, config.jitter_low, config.jitter_high)
        return cls(config=config, jitter=jitter)

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def score_quality(
        self,
        is_correct: bool,
        response_time_ms: float | None = None,
        difficulty: Difficulty | str | None = None,
    ) -> int:
        """
        Convert a review outcome to a recall quality score (1-5).

        Args:
            is_correct: Whether the answer was correct
            response_time_ms: Time taken to answer; None or <= 0 means not measured
            difficulty: Self-reported difficulty, if given

        Returns:
            Quality 1-5
        """
        difficulty = self._coerce_difficulty(difficulty)

        if not is_correct:
            quality = 1
        elif response_time_ms is None or response_time_ms <= 0:
            quality = 4
        elif response_time_ms < self.config.fast_response_ms:
            quality = 5
        elif response_time_ms < self.config.normal_response_ms:
            quality = 4
        else:
            quality = 3

        if difficulty is Difficulty.EASY and is_correct:
            quality = min(5, quality + 1)
        if difficulty is Difficulty.HARD:
            quality = max(1, quality - 1)

        return quality

    # -------------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------------

    def review(
        self,
        previous: ReviewState,
        is_correct: bool,
        response_time_ms: float | None = None,
        difficulty: Difficulty | str | None = None,
        now: datetime | None = None,
    ) -> ReviewState:
        """
        Calculate the next review state.

        Args:
            previous: Current state for the item
            is_correct: Whether the answer was correct
            response_time_ms: Time taken to answer, if measured
            difficulty: Self-reported difficulty, if given
            now: Review timestamp (defaults to current UTC time)

        Returns:
            Updated ReviewState with new mastery, interval, ease and due date
        """
        cfg = self.config
        now = now or utcnow()
        prev = self.normalize(previous)
        difficulty = self._coerce_difficulty(difficulty)

        quality = self.score_quality(is_correct, response_time_ms, difficulty)

        if quality >= cfg.pass_quality:
            mastery_level = min(cfg.max_level, prev.mastery_level + 1)

            if prev.mastery_level == 0:
                interval_days = cfg.first_interval
            elif prev.mastery_level == 1:
                interval_days = cfg.second_interval
            else:
                interval_days = _round_half_up(prev.interval_days * prev.ease_factor)

            # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
            ease_factor = prev.ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
        else:
            mastery_level = max(0, prev.mastery_level - 1)
            interval_days = cfg.first_interval
            ease_factor = prev.ease_factor - cfg.failure_ease_penalty

        interval_days = max(1, interval_days)
        ease_factor = _clamp(ease_factor, cfg.minimum_ease, cfg.maximum_ease)

        # Jitter moves the due date only; the stored interval stays canonical
        factor = self._jitter_factor()
        next_review_at = now + timedelta(days=interval_days * factor)

        new_state = replace(
            prev,
            mastery_level=mastery_level,
            times_seen=prev.times_seen + 1,
            times_correct=prev.times_correct + (1 if is_correct else 0),
            interval_days=interval_days,
            ease_factor=ease_factor,
            next_review_at=next_review_at,
            is_mastered=self.is_mastered_level(mastery_level),
            last_seen_at=now,
            difficulty_rating=self._next_difficulty_rating(prev.difficulty_rating, difficulty),
        )

        logger.debug(
            f"Scheduled review: q={quality}, mastery {prev.mastery_level}->{mastery_level}, "
            f"interval={interval_days}d, ease={ease_factor:.2f}, jitter={factor:.3f}"
        )

        return new_state

    def mark_mastered(self, previous: ReviewState, now: datetime | None = None) -> ReviewState:
        """
        Mark an item as mastered without a review.

        Raises mastery to the threshold and parks the item for the long
        maintenance interval. A word never stored before is recorded as seen
        and answered correctly once, so it no longer counts as new.
        """
        cfg = self.config
        now = now or utcnow()
        prev = self.normalize(previous)
        mastery_level = min(cfg.max_level, max(prev.mastery_level, cfg.mastery_threshold))

        times_seen, times_correct = prev.times_seen, prev.times_correct
        if prev.version == 0:
            times_seen = max(1, times_seen)
            times_correct = max(1, times_correct)

        return replace(
            prev,
            mastery_level=mastery_level,
            times_seen=times_seen,
            times_correct=times_correct,
            interval_days=cfg.mastered_interval_days,
            next_review_at=now + timedelta(days=cfg.mastered_interval_days),
            is_mastered=self.is_mastered_level(mastery_level),
            last_seen_at=now,
        )

    def unmaster(self, previous: ReviewState, now: datetime | None = None) -> ReviewState:
        """
        Return a mastered item to active learning, due immediately.

        Mastery drops just below the threshold so the derived flag clears.
        """
        cfg = self.config
        now = now or utcnow()
        prev = self.normalize(previous)
        mastery_level = max(0, min(prev.mastery_level, cfg.mastery_threshold - 1))

        return replace(
            prev,
            mastery_level=mastery_level,
            interval_days=cfg.first_interval,
            next_review_at=now,
            is_mastered=self.is_mastered_level(mastery_level),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def is_mastered_level(self, mastery_level: int) -> bool:
        """Check if a mastery level meets the mastery threshold."""
        return mastery_level >= self.config.mastery_threshold

    def initial_state(self, now: datetime | None = None) -> ReviewState:
        """Default state for a first encounter."""
        return ReviewState.initial(now=now, ease_factor=self.config.initial_ease)

    def normalize(self, state: ReviewState) -> ReviewState:
        """Clamp every field of a stored state into its valid range."""
        cfg = self.config
        times_seen = max(0, int(state.times_seen))
        mastery_level = _clamp(int(state.mastery_level), 0, cfg.max_level)

        return replace(
            state,
            mastery_level=mastery_level,
            times_seen=times_seen,
            times_correct=_clamp(int(state.times_correct), 0, times_seen),
            interval_days=max(1, _round_half_up(state.interval_days)),
            ease_factor=_clamp(float(state.ease_factor), cfg.minimum_ease, cfg.maximum_ease),
            is_mastered=self.is_mastered_level(mastery_level),
            difficulty_rating=_clamp(int(state.difficulty_rating or DEFAULT_DIFFICULTY_RATING), 1, 5),
        )

    def _jitter_factor(self) -> float:
        if self.jitter is None:
            return 1.0
        return _clamp(self.jitter(), self.config.jitter_low, self.config.jitter_high)

    @staticmethod
    def _next_difficulty_rating(rating: int, difficulty: Difficulty | None) -> int:
        if difficulty is Difficulty.EASY:
            return max(1, rating - 1)
        if difficulty is Difficulty.HARD:
            return min(5, rating + 1)
        return rating

    @staticmethod
    def _coerce_difficulty(difficulty: Difficulty | str | None) -> Difficulty | None:
        if difficulty is None or isinstance(difficulty, Difficulty):
            return difficulty
        try:
            return Difficulty(str(difficulty).lower())
        except ValueError:
            logger.debug(f"Ignoring unknown difficulty {difficulty!r}")
            return None
