"""
Unit tests for the vocabulary auto-generation scheduler.
"""

import threading
import time

import httpx
import pytest

from prepdeck.vocabulary.auto_gen import (
    AutoGenConfig,
    CronGenerationTrigger,
    GenerationReport,
    VocabularyAutoGenScheduler,
)


class ScriptedTrigger:
    """Trigger returning queued reports (or raising queued errors)."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0
        self.called = threading.Event()

    def __call__(self) -> GenerationReport:
        self.calls += 1
        self.called.set()
        result = self.results.pop(0) if self.results else GenerationReport(success=True, total_generated=5)
        if isinstance(result, Exception):
            raise result
        return result


def _scheduler(trigger, **config):
    return VocabularyAutoGenScheduler(trigger=trigger, config=AutoGenConfig(**config))


class TestGenerationReport:
    """Tests for parsing endpoint responses."""

    def test_from_camel_case(self):
        report = GenerationReport.from_dict(
            {"success": True, "stats": {"totalGenerated": 5, "targetRemaining": 120}}
        )

        assert report.success is True
        assert report.total_generated == 5
        assert report.target_remaining == 120
        assert report.target_reached is False

    def test_from_snake_case(self):
        report = GenerationReport.from_dict({"success": True, "stats": {"total_generated": 0, "target_remaining": 0}})
        assert report.target_reached is True

    def test_failure(self):
        report = GenerationReport.from_dict({"success": False, "error": "quota exceeded"})

        assert report.success is False
        assert report.error == "quota exceeded"
        assert report.target_reached is False

    @pytest.mark.parametrize("body", [[{"word": "lucid"}], "done", 3, None])
    def test_non_object_body_rejected(self, body):
        with pytest.raises(ValueError):
            GenerationReport.from_dict(body)

    def test_malformed_stats_rejected(self):
        with pytest.raises(ValueError):
            GenerationReport.from_dict({"success": True, "stats": [5]})
        with pytest.raises(ValueError):
            GenerationReport.from_dict({"success": True, "stats": {"totalGenerated": [5]}})


class TestCheckAndGenerate:
    """Tests for one generation cycle."""

    def test_success_continues(self):
        scheduler = _scheduler(ScriptedTrigger(GenerationReport(success=True, total_generated=5, target_remaining=50)))

        assert scheduler.check_and_generate() is True
        assert scheduler.status()["total_runs"] == 1
        assert scheduler.status()["retry_count"] == 0

    def test_target_reached_stops(self):
        trigger = ScriptedTrigger(GenerationReport(success=True, total_generated=0, target_remaining=0))
        scheduler = _scheduler(trigger, interval_minutes=60)
        scheduler.start()
        assert trigger.called.wait(timeout=2.0)

        scheduler.stop()  # no-op if the run already stopped it
        assert scheduler.is_running is False
        assert trigger.calls == 1

    def test_target_reached_without_thread(self):
        scheduler = _scheduler(ScriptedTrigger(GenerationReport(success=True, total_generated=0, target_remaining=0)))

        assert scheduler.check_and_generate() is False

    def test_failures_counted(self):
        trigger = ScriptedTrigger(
            GenerationReport(success=False, error="boom"),
            httpx.ConnectError("refused"),
        )
        scheduler = _scheduler(trigger, max_retries=3)

        assert scheduler.check_and_generate() is False
        assert scheduler.check_and_generate() is False
        assert scheduler.status()["retry_count"] == 2

    def test_success_resets_retry_count(self):
        trigger = ScriptedTrigger(
            GenerationReport(success=False, error="boom"),
            GenerationReport(success=True, total_generated=5, target_remaining=10),
        )
        scheduler = _scheduler(trigger, max_retries=3)

        scheduler.check_and_generate()
        scheduler.check_and_generate()

        assert scheduler.status()["retry_count"] == 0

    def test_max_retries_stops(self):
        trigger = ScriptedTrigger(*[ValueError("bad json")] * 3)
        scheduler = _scheduler(trigger, interval_minutes=60, max_retries=3)
        scheduler._status.is_running = True

        for _ in range(3):
            scheduler.check_and_generate()

        assert scheduler.is_running is False


class TestLifecycle:
    """Tests for start/stop."""

    def test_start_runs_immediately(self):
        trigger = ScriptedTrigger()
        scheduler = _scheduler(trigger, interval_minutes=60)

        scheduler.start()
        assert trigger.called.wait(timeout=2.0)
        assert scheduler.is_running is True

        scheduler.stop()
        assert scheduler.is_running is False
        assert trigger.calls == 1

    def test_double_start_is_ignored(self):
        trigger = ScriptedTrigger()
        scheduler = _scheduler(trigger, interval_minutes=60)

        scheduler.start()
        first_thread = scheduler._thread
        scheduler.start()

        assert scheduler._thread is first_thread
        scheduler.stop()

    def test_stop_is_idempotent(self):
        scheduler = _scheduler(ScriptedTrigger())
        scheduler.stop()
        scheduler.stop()
        assert scheduler.is_running is False

    def test_status_includes_config(self):
        status = _scheduler(ScriptedTrigger(), interval_minutes=5, target_words=3000, batch_size=5).status()

        assert status["is_running"] is False
        assert status["config"] == {"interval_minutes": 5, "target_words": 3000, "batch_size": 5, "max_retries": 3}


class TestCronGenerationTrigger:
    """Tests for the HTTP trigger."""

    def test_request_and_parse(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"success": True, "stats": {"totalGenerated": 5, "targetRemaining": 95}})

        trigger = CronGenerationTrigger(
            "http://gen.local/api/cron/vocabulary-auto-gen",
            batch_size=5,
            target_words=100,
            transport=httpx.MockTransport(handler),
        )

        report = trigger()

        assert seen["params"] == {"batchSize": "5", "targetWords": "100"}
        assert report.total_generated == 5
        assert report.target_remaining == 95

    def test_error_status_raises(self):
        trigger = CronGenerationTrigger(
            "http://gen.local/api/cron/vocabulary-auto-gen",
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "down"})),
        )

        with pytest.raises(httpx.HTTPStatusError):
            trigger()

    def test_scheduler_counts_http_errors(self):
        trigger = CronGenerationTrigger(
            "http://gen.local/api/cron/vocabulary-auto-gen",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        scheduler = _scheduler(trigger, max_retries=3)

        assert scheduler.check_and_generate() is False
        assert scheduler.status()["retry_count"] == 1

    def test_non_object_json_counts_as_failure(self):
        trigger = CronGenerationTrigger(
            "http://gen.local/api/cron/vocabulary-auto-gen",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[{"word": "lucid"}])),
        )
        scheduler = _scheduler(trigger, max_retries=3)

        assert scheduler.check_and_generate() is False
        assert scheduler.status()["retry_count"] == 1


class TestWorkerErrors:
    """Tests for errors raised inside the background thread."""

    def test_unexpected_error_counts_as_failure_and_stops(self):
        trigger = ScriptedTrigger(RuntimeError("unexpected"))
        scheduler = _scheduler(trigger, interval_minutes=60, max_retries=1)

        scheduler.start()
        assert trigger.called.wait(timeout=2.0)
        for _ in range(200):
            if not scheduler.is_running:
                break
            time.sleep(0.01)

        assert scheduler.is_running is False
        assert scheduler.status()["retry_count"] == 1

    def test_worker_keeps_running_below_max_retries(self):
        trigger = ScriptedTrigger(RuntimeError("unexpected"))
        scheduler = _scheduler(trigger, interval_minutes=60, max_retries=3)

        scheduler.start()
        thread = scheduler._thread
        assert trigger.called.wait(timeout=2.0)
        thread.join(timeout=0.2)

        assert thread.is_alive()
        assert scheduler.is_running is True
        assert scheduler.status()["retry_count"] == 1
        scheduler.stop()
