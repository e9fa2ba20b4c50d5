"""
Vocabulary review scheduling.

Core components:
- ReviewState: Scheduling state per (user, item)
- ReviewScheduler: SM-2 state transitions
- ReviewService: Read-modify-write loop over a ProgressStore
"""

from .due import ProgressSummary, progress_message, select_due, summarize
from .models import Difficulty, ReviewState, utcnow
from .scheduler import ReviewScheduler, SchedulerConfig, seeded_jitter

__all__ = [
    "Difficulty",
    "ProgressSummary",
    "ReviewScheduler",
    "ReviewState",
    "SchedulerConfig",
    "progress_message",
    "seeded_jitter",
    "select_due",
    "summarize",
    "utcnow",
]
