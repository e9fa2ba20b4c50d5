"""
Vocabulary auto-generation scheduler.

Periodically asks the generation endpoint for another batch of vocabulary
until the target word count is reached:
- One run immediately on start, then every interval_minutes
- Stops itself once nothing is left to generate
- Stops itself after max_retries consecutive failures

Runs in a background thread owned by whoever constructs it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import httpx
from loguru import logger

from prepdeck.review.models import utcnow


@dataclass
class AutoGenConfig:
    """Configuration for vocabulary auto-generation."""

    interval_minutes: float = 5
    target_words: int = 3000
    batch_size: int = 5
    max_retries: int = 3

    @classmethod
    def from_settings(cls, settings=None) -> AutoGenConfig:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(**settings.get_autogen_config())


@dataclass
class GenerationReport:
    """Outcome of one generation run."""

    success: bool
    total_generated: int = 0
    target_remaining: int | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationReport:
        """
        Parse a report from the generation endpoint's JSON.

        Raises:
            ValueError: If the body or its stats are not JSON objects, or
                the counts are not numbers
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        stats = data.get("stats") or {}
        if not isinstance(stats, dict):
            raise ValueError(f"Expected 'stats' to be a JSON object, got {type(stats).__name__}")

        remaining = stats.get("targetRemaining", stats.get("target_remaining"))
        try:
            total_generated = int(stats.get("totalGenerated", stats.get("total_generated", 0)) or 0)
            target_remaining = int(remaining) if remaining is not None else None
        except TypeError as e:
            raise ValueError(f"Malformed generation stats: {stats!r}") from e

        return cls(
            success=bool(data.get("success", False)),
            total_generated=total_generated,
            target_remaining=target_remaining,
            error=data.get("error"),
        )

    @property
    def target_reached(self) -> bool:
        return self.total_generated == 0 and self.target_remaining is not None and self.target_remaining <= 0


class CronGenerationTrigger:
    """HTTP trigger for the vocabulary generation endpoint."""

    def __init__(
        self,
        url: str,
        batch_size: int = 5,
        target_words: int = 3000,
        timeout_seconds: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize the trigger.

        Args:
            url: Generation endpoint URL
            batch_size: Words requested per run
            target_words: Vocabulary size the endpoint should aim for
            timeout_seconds: Request timeout
            transport: Custom httpx transport (for testing)
        """
        self.url = url
        self.batch_size = batch_size
        self.target_words = target_words
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def __call__(self) -> GenerationReport:
        """
        Run one generation request.

        Raises:
            httpx.HTTPError: On transport failure or error status
            ValueError: If the response body is not JSON
        """
        with httpx.Client(timeout=httpx.Timeout(self.timeout_seconds), transport=self.transport) as client:
            response = client.get(
                self.url,
                params={"batchSize": self.batch_size, "targetWords": self.target_words},
            )
            response.raise_for_status()
            return GenerationReport.from_dict(response.json())


@dataclass
class AutoGenStatus:
    """Current auto-generation status."""

    is_running: bool = False
    retry_count: int = 0
    total_runs: int = 0
    last_run_at: datetime | None = None
    last_report: GenerationReport | None = None


@dataclass
class VocabularyAutoGenScheduler:
    """
    Background vocabulary generation manager.

    Usage:
        scheduler = VocabularyAutoGenScheduler(trigger=CronGenerationTrigger(url))
        scheduler.start()
        # ... service runs ...
        scheduler.stop()
    """

    trigger: Callable[[], GenerationReport]
    config: AutoGenConfig = field(default_factory=AutoGenConfig)

    # Internal state
    _status: AutoGenStatus = field(default_factory=AutoGenStatus)
    _thread: threading.Thread | None = field(default=None, repr=False)
    _stop_event: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def is_running(self) -> bool:
        return self._status.is_running

    def status(self) -> dict[str, Any]:
        """Get running flag, retry count and config."""
        return {
            "is_running": self._status.is_running,
            "retry_count": self._status.retry_count,
            "total_runs": self._status.total_runs,
            "last_run_at": self._status.last_run_at.isoformat() if self._status.last_run_at else None,
            "config": {
                "interval_minutes": self.config.interval_minutes,
                "target_words": self.config.target_words,
                "batch_size": self.config.batch_size,
                "max_retries": self.config.max_retries,
            },
        }

    def start(self) -> None:
        """Start generation: one run now, then one per interval."""
        if self._status.is_running:
            logger.warning("Vocabulary scheduler already running")
            return

        logger.info(f"Starting vocabulary scheduler ({self.config.interval_minutes} minutes interval)")
        self._status.is_running = True
        self._status.retry_count = 0
        self._stop_event.clear()

        self._thread = threading.Thread(
            target=self._run_loop,
            name="vocabulary-auto-gen",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop generation gracefully."""
        if not self._status.is_running:
            return

        logger.info("Stopping vocabulary scheduler")
        self._status.is_running = False
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=5.0)
        self._thread = None

    def check_and_generate(self) -> bool:
        """
        Run one generation cycle.

        Returns:
            True if the run succeeded and generation should continue
        """
        self._status.total_runs += 1
        self._status.last_run_at = utcnow()

        try:
            report = self.trigger()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Vocabulary auto-generation error: {e}")
            self._record_failure()
            return False

        self._status.last_report = report

        if not report.success:
            logger.error(f"Vocabulary auto-generation failed: {report.error}")
            self._record_failure()
            return False

        self._status.retry_count = 0
        logger.info(
            f"Vocabulary auto-generation completed: generated={report.total_generated}, "
            f"remaining={report.target_remaining}"
        )

        if report.target_reached:
            logger.info("Target vocabulary count reached, stopping scheduler")
            self.stop()
            return False

        return True

    def _record_failure(self) -> None:
        self._status.retry_count += 1
        if self._status.retry_count >= self.config.max_retries:
            logger.error("Max retries reached, stopping vocabulary scheduler")
            self.stop()

    def _run_loop(self) -> None:
        interval_seconds = self.config.interval_minutes * 60
        while not self._stop_event.is_set():
            try:
                self.check_and_generate()
            except Exception as e:
                logger.exception(f"Unexpected vocabulary auto-generation error: {e}")
                self._record_failure()
            if self._stop_event.wait(timeout=interval_seconds):
                break
