"""Worker loop: poll for queued runs and execute them one at a time."""

import logging
import os
import socket
import threading
from typing import Optional

from classify_articles.classify_articles import ClassificationClient
from common.config import Config
from digest_store.connection import Database
from ingest_articles.fetch_articles.fetcher import PoliteFetcher
from process_runs.models import RunSummary
from process_runs.orchestrator import claim_next_run, execute_run

logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


def run_once(
    db: Database,
    config: Config,
    fetcher: Optional[PoliteFetcher] = None,
    client: Optional[ClassificationClient] = None,
) -> Optional[RunSummary]:
    """Claim and execute at most one queued run.

    Returns:
        The run summary, or None when no run was queued
    """
    run = claim_next_run(db)
    if run is None:
        return None

    logger.info("Processing run %s (%s, triggered by %s)", run.id, run.kind, run.triggered_by)
    summary = execute_run(db, run, config, fetcher=fetcher, client=client)
    logger.info(
        "Run %s finished: status=%s processed=%d failed=%d skipped=%d",
        run.id,
        summary.status,
        summary.processed,
        summary.failed,
        summary.skipped,
    )
    return summary


def run_loop(
    db: Database,
    config: Config,
    worker_id: Optional[str] = None,
    stop: Optional[threading.Event] = None,
    max_runs: Optional[int] = None,
    client: Optional[ClassificationClient] = None,
) -> int:
    """Poll for work until ``stop`` is set (or ``max_runs`` runs completed).

    The fetcher is shared across runs so per-host politeness survives
    between runs. The classification client is re-selected per run unless
    one is injected.

    Returns:
        Number of runs executed
    """
    worker_id = worker_id or default_worker_id()
    stop = stop or threading.Event()
    fetcher = PoliteFetcher(config.fetch)
    poll_interval = config.worker.poll_interval_seconds
    executed = 0

    logger.info("Worker %s starting (poll interval %.1fs)", worker_id, poll_interval)

    while not stop.is_set():
        try:
            summary = run_once(db, config, fetcher=fetcher, client=client)
        except Exception:
            logger.exception("Worker %s error while polling for runs", worker_id)
            summary = None

        if summary is not None:
            executed += 1
            if max_runs is not None and executed >= max_runs:
                break
            continue

        stop.wait(poll_interval)

    logger.info("Worker %s stopping after %d runs", worker_id, executed)
    return executed
