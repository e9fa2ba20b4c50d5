"""
AI response cache.

Caches generated text keyed by prompt and request options to cut repeated
calls to the text-generation service:
- Per-entry TTL, expired entries dropped on read and by periodic cleanup
- Least recently used entry evicted when full
- Hit/miss accounting

Instances are constructed and owned explicitly; periodic cleanup runs on a
background thread between start() and stop().
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger


@dataclass
class CacheStats:
    """Cache hit/miss counters."""

    hits: int = 0
    misses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


@dataclass
class _CacheEntry:
    response: str
    expires_at: float


class AIResponseCache:
    """
    TTL cache for AI-generated text.

    Usage:
        cache = AIResponseCache(max_size=1000, default_ttl_seconds=3600)
        cache.start()
        text = generate_with_cache(cache, prompt, client.generate)
        # ... application runs ...
        cache.stop()
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl_seconds: float = 3600,
        cleanup_interval_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of entries
            default_ttl_seconds: Lifetime of an entry when set() gets no ttl
            cleanup_interval_seconds: Period of the background cleanup
            clock: Monotonic time source in seconds
        """
        self.max_size = max(1, max_size)
        self.default_ttl_seconds = default_ttl_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self._clock = clock

        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @classmethod
    def from_settings(cls, settings=None) -> AIResponseCache:
        """Build a cache from application settings."""
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(**settings.get_ai_cache_config())

    # =========================================================================
    # Cache Operations
    # =========================================================================

    @staticmethod
    def make_key(prompt: str, options: dict[str, Any] | None = None) -> str:
        """Derive the cache key for a prompt and its request options."""
        options_json = json.dumps(options or {}, sort_keys=True, default=str)
        digest = hashlib.sha256(f"{prompt}\x00{options_json}".encode("utf-8")).hexdigest()
        return f"ai_{digest}"

    def get(self, prompt: str, options: dict[str, Any] | None = None) -> str | None:
        """Return the cached response, or None on a miss or expired entry."""
        key = self.make_key(prompt, options)

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._clock() >= entry.expires_at:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1

        logger.debug(f"AI cache hit for prompt ({len(prompt)} chars)")
        return entry.response

    def set(
        self,
        prompt: str,
        response: str,
        options: dict[str, Any] | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        """Cache a response, evicting the least recently used entry if full."""
        key = self.make_key(prompt, options)
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted AI cache entry {evicted[:12]}")

            self._entries[key] = _CacheEntry(response=response, expires_at=self._clock() + ttl)
            size = len(self._entries)

        logger.debug(f"AI cache set for prompt ({len(prompt)} chars), cache size: {size}")

    def cleanup(self) -> int:
        """
        Remove expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired AI cache entries")
        return len(expired)

    def clear(self) -> None:
        """Drop every entry (counters are kept)."""
        with self._lock:
            self._entries.clear()
        logger.info("AI cache cleared")

    @property
    def stats(self) -> CacheStats:
        """Snapshot of cache statistics."""
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, size=len(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start periodic cleanup on a background thread."""
        if self.is_running:
            logger.warning("AI cache cleanup already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._cleanup_loop,
            name="ai-cache-cleanup",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"AI cache cleanup started (interval: {self.cleanup_interval_seconds}s)")

    def stop(self) -> None:
        """Stop periodic cleanup."""
        if not self.is_running:
            return

        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=5.0)
        self._thread = None
        logger.info("AI cache cleanup stopped")

    def _cleanup_loop(self) -> None:
        while not self._stop_event.wait(timeout=self.cleanup_interval_seconds):
            self.cleanup()


def generate_with_cache(
    cache: AIResponseCache,
    prompt: str,
    generate: Callable[[str], str],
    options: dict[str, Any] | None = None,
    ttl_seconds: float | None = None,
) -> str:
    """
    Return a cached response for the prompt, generating and caching on a miss.

    Args:
        cache: Response cache
        prompt: Prompt text
        generate: Text-generation callable taking the prompt
        options: Request options that change the response (model, timeout, ...)
        ttl_seconds: Lifetime of the new entry

    Returns:
        Generated or cached text
    """
    cached = cache.get(prompt, options)
    if cached is not None:
        return cached

    logger.debug("AI cache miss, generating new response")
    response = generate(prompt)
    cache.set(prompt, response, options, ttl_seconds)
    return response
