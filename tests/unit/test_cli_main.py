"""
Unit tests for CLI error handling.

Runs the Typer app in-process with a store that always reports a
concurrent update.
"""

import pytest
from typer.testing import CliRunner

import prepdeck.cli.main as cli_main
from prepdeck.review.service import ReviewService
from prepdeck.store.progress_store import ConflictError, ProgressStore

runner = CliRunner()


class AlwaysConflictingStore(ProgressStore):
    """Store whose every write loses the race."""

    def get(self, user_id, item_id):
        return None

    def put(self, user_id, item_id, state):
        raise ConflictError(user_id, item_id, state.version)

    def query_due(self, user_id, mastered_only=False, as_of=None, limit=20):
        return []

    def list_for_user(self, user_id):
        return []


@pytest.fixture(autouse=True)
def conflicting_service(monkeypatch):
    monkeypatch.setattr(cli_main, "_configure_logging", lambda verbose: None)
    monkeypatch.setattr(cli_main, "_service", lambda: ReviewService(AlwaysConflictingStore(), max_retries=2))


@pytest.mark.parametrize(
    "args",
    [
        ["review", "u1", "lucid", "--correct"],
        ["master", "u1", "lucid"],
        ["unmaster", "u1", "lucid"],
    ],
)
def test_conflict_exits_with_error(args):
    result = runner.invoke(cli_main.app, args)

    assert result.exit_code == 1
    assert "Concurrent update" in result.output
    assert not isinstance(result.exception, ConflictError)
