"""
FastAPI application for prepdeck.

Provides REST API for:
- Recording vocabulary reviews (SM-2 scheduling)
- Progress overview and due-word queues
- Mastered/unmastered word management
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import get_settings
from prepdeck.ai.cache import AIResponseCache
from prepdeck.api.routers import progress_router
from prepdeck.db.database import check_database_health, init_db
from prepdeck.review.models import utcnow
from prepdeck.vocabulary.auto_gen import AutoGenConfig, CronGenerationTrigger, VocabularyAutoGenScheduler

settings = get_settings()


def _build_autogen_scheduler() -> VocabularyAutoGenScheduler:
    config = AutoGenConfig.from_settings(settings)
    trigger = CronGenerationTrigger(
        settings.vocab_autogen_url,
        batch_size=config.batch_size,
        target_words=config.target_words,
        timeout_seconds=settings.vocab_autogen_timeout_seconds,
    )
    return VocabularyAutoGenScheduler(trigger=trigger, config=config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # Startup
    logger.info("Starting prepdeck service...")
    init_db()

    app.state.ai_cache = AIResponseCache.from_settings(settings)
    app.state.ai_cache.start()

    app.state.autogen = None
    if settings.vocab_autogen_enabled:
        app.state.autogen = _build_autogen_scheduler()
        app.state.autogen.start()

    logger.info(f"Service started on {settings.api_host}:{settings.api_port}")

    yield

    # Shutdown
    logger.info("Shutting down prepdeck service...")
    if app.state.autogen is not None:
        app.state.autogen.stop()
    app.state.ai_cache.stop()


app = FastAPI(
    title="PrepDeck",
    description="""
    Vocabulary mastery service for SSAT/SAT preparation.

    ## Features

    - **Reviews**: Record answers; SM-2 scheduling with response-time quality scoring
    - **Due Queues**: Active learning queue and maintenance queue for mastered words
    - **Mastery**: Mark words mastered or return them to active learning
    """,
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(progress_router, prefix="/api/vocabulary/progress", tags=["Progress"])


@app.get("/health", tags=["Health"])
def health() -> dict[str, Any]:
    """Service health with database and background component status."""
    db_status, db_error = check_database_health()
    cache = getattr(app.state, "ai_cache", None)
    autogen = getattr(app.state, "autogen", None)

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "timestamp": utcnow().isoformat(),
        "database": {"status": db_status, "error": db_error},
        "ai_cache": (
            {"running": cache.is_running, "size": len(cache), "hit_rate": cache.stats.hit_rate}
            if cache is not None
            else None
        ),
        "vocabulary_autogen": autogen.status() if autogen is not None else None,
    }
