"""Tests for process_runs.worker module."""

import os
import threading
from unittest.mock import Mock, patch

from process_runs.orchestrator import submit_discovery_run
from process_runs.worker import default_worker_id, run_loop, run_once
from run_events.run_events import poll_events


class TestRunOnce:
    def test_no_queued_run(self, seeded_db, config) -> None:
        assert run_once(seeded_db, config, fetcher=Mock()) is None

    def test_executes_oldest_run(self, seeded_db, config) -> None:
        first = submit_discovery_run(seeded_db)
        second = submit_discovery_run(seeded_db)

        summary = run_once(seeded_db, config, fetcher=Mock())

        assert summary.run_id == first.id
        assert summary.status == "succeeded"
        assert poll_events(seeded_db, second.id).status == "queued"


class TestRunLoop:
    def test_stops_after_max_runs(self, seeded_db, config) -> None:
        runs = [submit_discovery_run(seeded_db) for _ in range(2)]

        executed = run_loop(seeded_db, config, worker_id="test-worker", max_runs=2)

        assert executed == 2
        for run in runs:
            assert poll_events(seeded_db, run.id).status == "succeeded"

    def test_stops_when_event_set(self, seeded_db, config) -> None:
        stop = threading.Event()
        waits = []

        def fake_wait(timeout=None):
            waits.append(timeout)
            stop.set()
            return True

        stop.wait = fake_wait

        assert run_loop(seeded_db, config, stop=stop) == 0
        assert waits == [config.worker.poll_interval_seconds]

    @patch("process_runs.worker.run_once")
    def test_polling_error_does_not_stop_worker(self, mock_run_once, seeded_db, config) -> None:
        stop = threading.Event()
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("database is locked")
            stop.set()
            return None

        mock_run_once.side_effect = flaky
        stop.wait = lambda timeout=None: stop.is_set()

        assert run_loop(seeded_db, config, stop=stop) == 0
        assert len(calls) == 2


class TestDefaultWorkerId:
    def test_contains_pid(self) -> None:
        assert default_worker_id().endswith(f"-{os.getpid()}")
