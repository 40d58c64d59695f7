"""Tests for run_events.run_events module."""

import threading

import pytest
from sqlalchemy.dialects import postgresql

from digest_store.runs import RunNotFoundError, cancel_run, claim_next_run, complete_run, create_run
from run_events.models import STREAM_END, EventRecord, StreamEnd
from run_events.run_events import emit_event, lock_run_stmt, poll_events, stream_events


def _run(db) -> str:
    with db.session() as session:
        return create_run(session, "discovery").id


def _finish(db, run_id, status="succeeded") -> None:
    with db.session() as session:
        claim_next_run(session)
    with db.session() as session:
        complete_run(session, run_id, status)


class TestEmitEvent:
    def test_ids_increase(self, db) -> None:
        run_id = _run(db)
        first = emit_event(db, run_id, "info", "DISCOVER", "one")
        second = emit_event(db, run_id, "debug", "FETCH", "two", {"url": "https://example.com"})
        assert second > first

    def test_locks_run_row_on_postgres(self) -> None:
        sql = str(lock_run_stmt("run-1").compile(dialect=postgresql.dialect()))
        assert "FROM runs" in sql
        assert sql.rstrip().endswith("FOR UPDATE")

    def test_concurrent_emitters_leave_no_gaps_behind_cursor(self, db) -> None:
        run_id = _run(db)

        def emit_many(worker: int) -> None:
            for n in range(10):
                emit_event(db, run_id, "debug", "FETCH", f"{worker}-{n}")

        threads = [threading.Thread(target=emit_many, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()

        seen: list[int] = []
        cursor = None
        while any(thread.is_alive() for thread in threads):
            page = poll_events(db, run_id, after=cursor)
            seen.extend(e.id for e in page.events)
            cursor = page.cursor
        for thread in threads:
            thread.join()
        page = poll_events(db, run_id, after=cursor)
        seen.extend(e.id for e in page.events)

        all_ids = [e.id for e in poll_events(db, run_id, limit=1000).events]
        assert len(all_ids) == 40
        assert seen == all_ids

    def test_unknown_type_rejected(self, db) -> None:
        with pytest.raises(ValueError):
            emit_event(db, _run(db), "info", "PUBLISH", "nope")

    def test_unknown_level_rejected(self, db) -> None:
        with pytest.raises(ValueError):
            emit_event(db, _run(db), "fatal", "ERROR", "nope")


class TestPollEvents:
    def test_returns_events_in_order_with_status(self, db) -> None:
        run_id = _run(db)
        emit_event(db, run_id, "info", "DISCOVER", "one")
        emit_event(db, run_id, "warn", "EXTRACT", "two", {"itemId": "abc"})

        page = poll_events(db, run_id)

        assert [e.message for e in page.events] == ["one", "two"]
        assert page.events[1].data == {"itemId": "abc"}
        assert page.events[0].ts.tzinfo is not None
        assert page.status == "queued"
        assert page.is_complete is False
        assert page.cursor == page.events[-1].id

    def test_cursor_excludes_seen_events(self, db) -> None:
        run_id = _run(db)
        first = emit_event(db, run_id, "info", "DISCOVER", "one")
        emit_event(db, run_id, "info", "DISCOVER", "two")

        page = poll_events(db, run_id, after=first)

        assert [e.message for e in page.events] == ["two"]

    def test_empty_page_keeps_cursor(self, db) -> None:
        run_id = _run(db)
        last = emit_event(db, run_id, "info", "DISCOVER", "one")
        page = poll_events(db, run_id, after=last)
        assert page.events == []
        assert page.cursor == last

    def test_pages_concatenate_to_full_history(self, db) -> None:
        run_id = _run(db)
        other = _run(db)
        for i in range(7):
            emit_event(db, run_id, "info", "FETCH", f"event {i}")
            emit_event(db, other, "info", "FETCH", f"other {i}")

        messages = []
        cursor = None
        while True:
            page = poll_events(db, run_id, after=cursor, limit=3)
            if not page.events:
                break
            messages.extend(e.message for e in page.events)
            cursor = page.cursor

        assert messages == [f"event {i}" for i in range(7)]

    def test_terminal_status_is_complete(self, db) -> None:
        run_id = _run(db)
        _finish(db, run_id)
        page = poll_events(db, run_id)
        assert page.status == "succeeded"
        assert page.is_complete is True

    def test_unknown_run(self, db) -> None:
        page = poll_events(db, "missing")
        assert page.status == "unknown"
        assert page.events == []
        assert page.is_complete is False


class TestStreamEvents:
    def test_finished_run_replays_then_ends(self, db) -> None:
        run_id = _run(db)
        emit_event(db, run_id, "info", "DISCOVER", "one")
        emit_event(db, run_id, "info", "DONE", "done")
        _finish(db, run_id)
        sleeps = []

        messages = list(stream_events(db, run_id, sleep=sleeps.append))

        assert [m.message for m in messages[:-1]] == ["one", "done"]
        assert messages[-1] == StreamEnd(status="succeeded")
        assert messages[-1].type == STREAM_END
        assert sleeps == []

    def test_drains_full_pages_without_sleeping(self, db) -> None:
        run_id = _run(db)
        for i in range(5):
            emit_event(db, run_id, "info", "FETCH", f"event {i}")
        _finish(db, run_id, "failed")
        sleeps = []

        messages = list(stream_events(db, run_id, limit=2, sleep=sleeps.append))

        assert len([m for m in messages if isinstance(m, EventRecord)]) == 5
        assert messages[-1].status == "failed"
        assert sleeps == []

    def test_follows_until_terminal(self, db) -> None:
        run_id = _run(db)
        emit_event(db, run_id, "info", "DISCOVER", "before")
        polls = []

        def fake_sleep(seconds: float) -> None:
            polls.append(seconds)
            if len(polls) == 1:
                emit_event(db, run_id, "warn", "DONE", "canceled")
                with db.session() as session:
                    cancel_run(session, run_id)

        messages = list(stream_events(db, run_id, interval=0.25, sleep=fake_sleep))

        assert [m.message for m in messages if isinstance(m, EventRecord)] == ["before", "canceled"]
        assert messages[-1] == StreamEnd(status="canceled")
        assert polls == [0.25]

    def test_unknown_run_raises(self, db) -> None:
        with pytest.raises(RunNotFoundError):
            list(stream_events(db, "missing"))
