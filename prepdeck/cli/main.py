"""
Typer CLI for prepdeck.

Commands:
    prepdeck db init                    - Initialize database tables
    prepdeck review USER WORD --correct - Record a review answer
    prepdeck due USER                   - Show words due for review
    prepdeck stats USER                 - Show progress summary
    prepdeck master USER WORD           - Mark a word as mastered
    prepdeck unmaster USER WORD         - Return a word to active learning

Usage:
    prepdeck --help
    prepdeck review demo-user ubiquitous --correct --response-ms 2100
    prepdeck due demo-user --mastered --limit 10
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from config import get_settings
from prepdeck.review.models import Difficulty, ReviewState
from prepdeck.review.service import ReviewOutcome, ReviewService
from prepdeck.store.progress_store import ConflictError, SQLProgressStore

app = typer.Typer(
    help="prepdeck CLI: spaced-repetition vocabulary mastery for SSAT/SAT prep",
    no_args_is_help=True,
)
db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")

console = Console()


def _configure_logging(verbose: bool) -> None:
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else settings.log_level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB", retention=5)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Vocabulary review scheduling and progress tracking."""
    _configure_logging(verbose)


def _service() -> ReviewService:
    return ReviewService.from_settings(SQLProgressStore())


def _state_table(title: str, rows: list[tuple[str, ReviewState]]) -> Table:
    table = Table(title=title)
    table.add_column("Word", style="cyan")
    table.add_column("Mastery", justify="right")
    table.add_column("Seen", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Ease", justify="right")
    table.add_column("Next Review")

    for item_id, state in rows:
        table.add_row(
            item_id,
            str(state.mastery_level),
            str(state.times_seen),
            str(state.times_correct),
            f"{state.interval_days}d",
            f"{state.ease_factor:.2f}",
            state.next_review_at.strftime("%Y-%m-%d %H:%M") if state.next_review_at else "-",
        )
    return table


def _print_outcome(outcome: ReviewOutcome) -> None:
    console.print(_state_table(outcome.message, [(outcome.item_id, outcome.state)]))


# ========================================
# Database Commands
# ========================================


@db_app.command("init")
def db_init():
    """Initialize database tables."""
    from prepdeck.db.database import init_db

    init_db()
    console.print("[green]Database initialized[/green]")


# ========================================
# Review Commands
# ========================================


@app.command()
def review(
    user_id: str = typer.Argument(..., help="Learner identifier"),
    word: str = typer.Argument(..., help="Vocabulary item"),
    correct: bool = typer.Option(..., "--correct/--incorrect", help="Whether the answer was correct"),
    response_ms: Optional[float] = typer.Option(None, "--response-ms", help="Answer time in milliseconds"),
    difficulty: Optional[Difficulty] = typer.Option(None, "--difficulty", help="Self-reported difficulty"),
):
    """Record a review answer and reschedule the word."""
    try:
        outcome = _service().record_review(
            user_id,
            word.lower(),
            is_correct=correct,
            response_time_ms=response_ms,
            difficulty=difficulty,
        )
    except ConflictError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    _print_outcome(outcome)


@app.command()
def due(
    user_id: str = typer.Argument(..., help="Learner identifier"),
    mastered: bool = typer.Option(False, "--mastered", help="Show the maintenance queue of mastered words"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum words to show"),
):
    """Show words due for review, most overdue first."""
    rows = _service().due(user_id, mastered_only=mastered, limit=limit)
    if not rows:
        console.print("[dim]Nothing due for review[/dim]")
        return
    title = "Mastered words due for maintenance" if mastered else "Words due for review"
    console.print(_state_table(title, rows))


@app.command()
def stats(
    user_id: str = typer.Argument(..., help="Learner identifier"),
):
    """Show progress summary."""
    summary = _service().summary(user_id)

    table = Table(title=f"Vocabulary progress: {user_id}")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    table.add_row("Total words", str(summary.total))
    table.add_row("Due for review", str(summary.due_for_review))
    table.add_row("Learning", str(summary.learning))
    table.add_row("Mastered", str(summary.mastered))
    table.add_row("New", str(summary.new))
    console.print(table)


@app.command()
def master(
    user_id: str = typer.Argument(..., help="Learner identifier"),
    word: str = typer.Argument(..., help="Vocabulary item"),
):
    """Mark a word as mastered."""
    try:
        outcome = _service().mark_mastered(user_id, word.lower())
    except ConflictError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    _print_outcome(outcome)


@app.command()
def unmaster(
    user_id: str = typer.Argument(..., help="Learner identifier"),
    word: str = typer.Argument(..., help="Vocabulary item"),
):
    """Return a mastered word to active learning."""
    try:
        outcome = _service().unmaster(user_id, word.lower())
    except ConflictError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1) from e
    _print_outcome(outcome)


def run():
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
