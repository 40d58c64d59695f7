"""Append-only per-run event log with cursor polling and interval streaming."""

import logging
import time
from typing import Any, Callable, Iterator

from sqlalchemy import Select, select

from common.datetime import as_utc, utcnow
from common.serialization import dump_json
from digest_store.connection import Database
from digest_store.models import TERMINAL_RUN_STATUSES, Run, RunEvent
from digest_store.runs import RunNotFoundError, get_run_status
from run_events.models import EVENT_LEVELS, EVENT_TYPES, EventPage, EventRecord, StreamEnd

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

DEFAULT_PAGE_SIZE = 100
DEFAULT_STREAM_INTERVAL = 0.5


def lock_run_stmt(run_id: str) -> Select:
    return select(Run.id).where(Run.id == run_id).with_for_update()


def emit_event(
    db: Database,
    run_id: str,
    level: str,
    event_type: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> int:
    """Append one event in its own transaction and mirror it to the process log.

    Inserts for the same run are serialized on the run row, so event ids
    commit in increasing order and a reader's ``id > cursor`` never passes
    over an event that is still in flight.

    Returns:
        The new event id
    """
    if level not in EVENT_LEVELS:
        raise ValueError(f"Unknown event level: {level}")
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {event_type}")

    with db.session() as session:
        # Held until commit; SQLite already serializes writers and drops the clause
        session.execute(lock_run_stmt(run_id))
        event = RunEvent(
            run_id=run_id,
            ts=utcnow(),
            level=level,
            type=event_type,
            message=message,
            data=dump_json(data),
        )
        session.add(event)
        session.flush()
        event_id = event.id

    logger.log(LOG_LEVELS[level], "[%s] run=%s %s", event_type, run_id, message)
    return event_id


def _to_record(event: RunEvent) -> EventRecord:
    return EventRecord(
        id=event.id,
        run_id=event.run_id,
        ts=as_utc(event.ts),
        level=event.level,
        type=event.type,
        message=event.message,
        data=event.data_dict,
    )


def poll_events(
    db: Database,
    run_id: str,
    after: int | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
) -> EventPage:
    """Return events with id greater than ``after``, oldest first.

    Status is read before the events: if it is terminal, every event
    written before the terminal transition is included in this or an
    earlier page.
    """
    with db.session() as session:
        status = get_run_status(session, run_id)

        stmt = select(RunEvent).where(RunEvent.run_id == run_id)
        if after is not None:
            stmt = stmt.where(RunEvent.id > after)
        stmt = stmt.order_by(RunEvent.id.asc()).limit(limit)
        events = [_to_record(event) for event in session.scalars(stmt)]

    cursor = events[-1].id if events else after
    return EventPage(
        events=events,
        status=status or "unknown",
        is_complete=status in TERMINAL_RUN_STATUSES,
        cursor=cursor,
    )


def stream_events(
    db: Database,
    run_id: str,
    interval: float = DEFAULT_STREAM_INTERVAL,
    limit: int = DEFAULT_PAGE_SIZE,
    sleep: Callable[[float], None] = time.sleep,
) -> Iterator[EventRecord | StreamEnd]:
    """Replay a run's history, then keep re-polling until the run is terminal.

    Yields each event once, then a final StreamEnd marker.
    """
    with db.session() as session:
        if get_run_status(session, run_id) is None:
            raise RunNotFoundError(f"Run not found: {run_id}")

    cursor = None
    while True:
        page = poll_events(db, run_id, after=cursor, limit=limit)
        yield from page.events
        cursor = page.cursor

        # Full page: more history is waiting, read it without delay
        if len(page.events) >= limit:
            continue
        if page.is_complete:
            yield StreamEnd(status=page.status)
            return
        sleep(interval)
