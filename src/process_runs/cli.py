"""CLI for submitting, processing and observing pipeline runs."""

from __future__ import annotations

import json
import logging
import signal
import sys
import threading

from dotenv import load_dotenv

from common.cli_helpers import setup_logging
from common.config import load_config
from common.serialization import serialize_dataclass
from digest_store.catalog import seed_catalog
from digest_store.connection import Database
from digest_store.runs import RunNotFoundError, RunStateError, list_runs
from process_runs.helpers import parse_process_runs_args
from process_runs.orchestrator import (
    RunSubmissionError,
    cancel_run,
    submit_discovery_run,
    submit_reanalysis_run,
)
from process_runs.worker import run_loop, run_once
from run_events.run_events import poll_events, stream_events

load_dotenv()

logger = logging.getLogger(__name__)


def _print_json(record: dict) -> None:
    print(json.dumps(record, default=str, ensure_ascii=False), flush=True)


def _run_record(run) -> dict:
    return {
        "id": run.id,
        "kind": run.kind,
        "status": run.status,
        "triggeredBy": run.triggered_by,
        "createdAt": run.created_at,
        "startedAt": run.started_at,
        "finishedAt": run.finished_at,
    }


def _work(db: Database, config, args) -> None:
    if args.offline:
        config.llm.provider = "offline"

    if args.once:
        summary = run_once(db, config)
        if summary is None:
            logger.info("No queued runs")
            return
        _print_json(serialize_dataclass(summary))
        return

    stop = threading.Event()

    def _shutdown(signum, frame) -> None:
        logger.info("Received signal %s, stopping after current run", signum)
        stop.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    run_loop(db, config, worker_id=args.worker_id, stop=stop)


def _events(db: Database, config, args) -> None:
    if args.follow:
        for message in stream_events(
            db,
            args.run_id,
            interval=config.events.stream_interval_seconds,
            limit=config.events.page_size,
        ):
            _print_json(serialize_dataclass(message))
        return

    page = poll_events(db, args.run_id, after=args.after, limit=config.events.page_size)
    for event in page.events:
        _print_json(serialize_dataclass(event))
    _print_json({"status": page.status, "isComplete": page.is_complete, "cursor": page.cursor})


def main(argv: list[str] | None = None) -> int:
    args = parse_process_runs_args(argv)
    setup_logging(args.verbose)

    config = load_config(args.config)
    db = Database.from_config(config.database)

    try:
        if args.command == "init-db":
            db.create_all()

        elif args.command == "seed":
            db.create_all()
            with db.session() as session:
                topics_created, sources_created = seed_catalog(session)
            logger.info("Seeded %d topics and %d sources", topics_created, sources_created)

        elif args.command == "submit":
            run = submit_discovery_run(db, args.sources, triggered_by=args.triggered_by)
            _print_json(_run_record(run))

        elif args.command == "reanalyze":
            run = submit_reanalysis_run(db, args.item_ids, triggered_by=args.triggered_by)
            _print_json(_run_record(run))

        elif args.command == "cancel":
            run = cancel_run(db, args.run_id)
            _print_json(_run_record(run))

        elif args.command == "work":
            _work(db, config, args)

        elif args.command == "events":
            _events(db, config, args)

        elif args.command == "runs":
            with db.session() as session:
                for run in list_runs(session, limit=args.limit):
                    _print_json(_run_record(run))

    except (RunSubmissionError, RunStateError, RunNotFoundError) as e:
        logger.error("%s", e)
        return 1
    finally:
        db.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(main())
