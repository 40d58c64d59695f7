"""Run persistence: creation, atomic claim, resolution and cancellation."""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from common.datetime import utcnow
from common.serialization import dump_json
from digest_store.models import RUN_KINDS, Run

logger = logging.getLogger(__name__)

CANCELABLE_STATUSES = ("queued", "running")


class RunNotFoundError(LookupError):
    """Raised when a run id does not resolve."""


class RunStateError(ValueError):
    """Raised when a run cannot make the requested transition."""


def create_run(
    session: Session,
    kind: str,
    source_ids: list[str] | None = None,
    item_ids: list[str] | None = None,
    triggered_by: str = "cli",
) -> Run:
    if kind not in RUN_KINDS:
        raise ValueError(f"Unknown run kind: {kind}")

    run = Run(
        kind=kind,
        status="queued",
        source_ids=dump_json(source_ids),
        item_ids=dump_json(item_ids),
        triggered_by=triggered_by,
        created_at=utcnow(),
    )
    session.add(run)
    session.flush()
    return run


def get_run(session: Session, run_id: str) -> Run | None:
    return session.get(Run, run_id, populate_existing=True)


def get_run_status(session: Session, run_id: str) -> str | None:
    return session.execute(select(Run.status).where(Run.id == run_id)).scalar_one_or_none()


def list_runs(session: Session, limit: int = 20) -> list[Run]:
    stmt = select(Run).order_by(Run.created_at.desc(), Run.id.desc()).limit(limit)
    return list(session.scalars(stmt))


def claim_next_run(session: Session) -> Run | None:
    """Move the oldest queued run to running.

    The transition is a conditional update on ``status = 'queued'``, so when
    several workers race for the same run exactly one update matches a row.
    A loser moves on to the next queued candidate.
    """
    while True:
        candidate_id = session.execute(
            select(Run.id)
            .where(Run.status == "queued")
            .order_by(Run.created_at.asc(), Run.id.asc())
            .limit(1)
        ).scalar_one_or_none()

        if candidate_id is None:
            return None

        result = session.execute(
            update(Run)
            .where(Run.id == candidate_id, Run.status == "queued")
            .values(status="running", started_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            session.flush()
            return get_run(session, candidate_id)

        logger.debug("Run %s claimed by another worker, retrying", candidate_id)


def complete_run(session: Session, run_id: str, status: str) -> bool:
    """Resolve a running run. Returns False if it was no longer running (e.g. canceled)."""
    if status not in ("succeeded", "failed"):
        raise ValueError(f"Invalid terminal status: {status}")

    result = session.execute(
        update(Run)
        .where(Run.id == run_id, Run.status == "running")
        .values(status=status, finished_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def cancel_run(session: Session, run_id: str) -> Run:
    run = get_run(session, run_id)
    if run is None:
        raise RunNotFoundError(f"Run not found: {run_id}")
    if run.status not in CANCELABLE_STATUSES:
        raise RunStateError(f"Can only cancel queued or running runs (run {run_id} is {run.status})")

    result = session.execute(
        update(Run)
        .where(Run.id == run_id, Run.status.in_(CANCELABLE_STATUSES))
        .values(status="canceled", finished_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        status = get_run_status(session, run_id)
        raise RunStateError(f"Can only cancel queued or running runs (run {run_id} is {status})")

    return get_run(session, run_id)
