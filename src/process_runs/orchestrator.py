"""Run orchestration: submission, claim, execution and cancellation."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from classify_articles.classify_articles import ClassificationClient, select_client
from common.config import Config
from digest_store import runs as run_store
from digest_store.catalog import load_enabled_sources, load_enabled_topics
from digest_store.connection import Database
from digest_store.items import (
    get_items,
    missing_item_ids,
    reset_items_for_reanalysis,
    set_item_status,
    upsert_discovered_item,
)
from digest_store.models import Run
from ingest_articles.discover_articles.discover_articles import discover_urls
from ingest_articles.fetch_articles.fetcher import PoliteFetcher
from process_runs.models import FAILED, NOT_STARTED, ItemRef, RunSummary
from process_runs.process_item import ItemContext, process_item
from run_events.run_events import emit_event

logger = logging.getLogger(__name__)


class RunSubmissionError(ValueError):
    """Submission input was rejected before any state was written."""


def submit_run(
    db: Database,
    kind: str,
    source_ids: Optional[list[str]] = None,
    item_ids: Optional[list[str]] = None,
    triggered_by: Optional[str] = None,
) -> Run:
    """Create a queued run of the given kind."""
    if kind == "discovery":
        return submit_discovery_run(db, source_ids, triggered_by=triggered_by or "cli")
    if kind == "reanalysis":
        return submit_reanalysis_run(db, item_ids or [], triggered_by=triggered_by or "dashboard")
    raise RunSubmissionError(f"Unknown run kind: {kind}")


def submit_discovery_run(
    db: Database,
    source_ids: Optional[list[str]] = None,
    triggered_by: str = "cli",
) -> Run:
    with db.session() as session:
        run = run_store.create_run(
            session,
            "discovery",
            source_ids=list(dict.fromkeys(source_ids)) if source_ids else None,
            triggered_by=triggered_by,
        )
    logger.info("Queued discovery run %s", run.id)
    return run


def submit_reanalysis_run(
    db: Database,
    item_ids: list[str],
    triggered_by: str = "dashboard",
) -> Run:
    """Queue a reanalysis run. Every item id must exist; duplicates are collapsed."""
    unique_ids = list(dict.fromkeys(item_ids))

    with db.session() as session:
        missing = missing_item_ids(session, unique_ids)
        if missing:
            raise RunSubmissionError(f"Some item IDs not found: {', '.join(missing)}")
        run = run_store.create_run(
            session,
            "reanalysis",
            item_ids=unique_ids,
            triggered_by=triggered_by,
        )
    logger.info("Queued reanalysis run %s for %d items", run.id, len(unique_ids))
    return run


def claim_next_run(db: Database) -> Optional[Run]:
    """Atomically move the oldest queued run to running, or return None."""
    with db.session() as session:
        run = run_store.claim_next_run(session)
    if run is not None:
        logger.info("Claimed run %s (%s)", run.id, run.kind)
    return run


def cancel_run(db: Database, run_id: str) -> Run:
    with db.session() as session:
        run = run_store.cancel_run(session, run_id)
    logger.info("Canceled run %s", run_id)
    return run


def _is_canceled(db: Database, run_id: str) -> bool:
    with db.session() as session:
        return run_store.get_run_status(session, run_id) == "canceled"


def execute_run(
    db: Database,
    run: Run,
    config: Config,
    fetcher: Optional[PoliteFetcher] = None,
    client: Optional[ClassificationClient] = None,
) -> RunSummary:
    """Drive a claimed run to a terminal state.

    Item failures are recorded on the item and never fail the run. Errors in
    shared setup (topics, client selection, discovery bookkeeping) resolve the
    run to failed.
    """
    started = time.monotonic()
    summary = RunSummary(run_id=run.id, status="running")
    fetcher = fetcher or PoliteFetcher(config.fetch)

    try:
        with db.session() as session:
            topics = load_enabled_topics(session)

        if client is None:
            client = select_client(config.llm)
        emit_event(
            db, run.id, "info", "CLASSIFY",
            f"Using classification model: {client.model_identity()}",
        )

        if run.kind == "reanalysis":
            items = _resolve_reanalysis_items(db, run)
        else:
            items = _discover_items(db, run, fetcher)

        ctx = ItemContext(
            db=db,
            run_id=run.id,
            fetcher=fetcher,
            topics=topics,
            client=client,
            min_text_length=config.extract.min_text_length,
        )
        _process_items(ctx, items, summary, config.worker.item_concurrency)
    except Exception as e:
        logger.exception("Run %s failed", run.id)
        summary.duration_seconds = time.monotonic() - started
        summary.error = str(e)
        emit_event(db, run.id, "error", "ERROR", f"Run failed: {e}")
        with db.session() as session:
            resolved = run_store.complete_run(session, run.id, "failed")
        summary.status = "failed" if resolved else _current_status(db, run.id)
        return summary

    summary.duration_seconds = time.monotonic() - started
    duration = round(summary.duration_seconds)
    counts = {
        "processed": summary.processed,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "notStarted": summary.not_started,
    }

    if _is_canceled(db, run.id):
        emit_event(
            db, run.id, "warn", "DONE",
            f"Run canceled after {duration}s. Processed: {summary.processed}, "
            f"Failed: {summary.failed}, Skipped: {summary.skipped}, Not started: {summary.not_started}",
            counts,
        )
        summary.status = "canceled"
        return summary

    # An empty item set still completes the run, flagged at warn level
    level = "info" if summary.total else "warn"
    emit_event(
        db, run.id, level, "DONE",
        f"Run completed in {duration}s. Processed: {summary.processed}, "
        f"Failed: {summary.failed}, Skipped: {summary.skipped}",
        counts,
    )
    with db.session() as session:
        resolved = run_store.complete_run(session, run.id, "succeeded")
    summary.status = "succeeded" if resolved else _current_status(db, run.id)
    return summary


def _current_status(db: Database, run_id: str) -> str:
    with db.session() as session:
        return run_store.get_run_status(session, run_id) or "unknown"


def _discover_items(db: Database, run: Run, fetcher: PoliteFetcher) -> list[ItemRef]:
    with db.session() as session:
        sources = load_enabled_sources(session, run.source_id_list)

    if not sources:
        emit_event(db, run.id, "warn", "DISCOVER", "No enabled sources to process")
        return []

    emit_event(db, run.id, "info", "DISCOVER", f"Found {len(sources)} sources to process")

    items: list[ItemRef] = []
    seen_ids: set[str] = set()

    for source in sources:
        if _is_canceled(db, run.id):
            break

        emit_event(db, run.id, "info", "DISCOVER", f"Discovering URLs from: {source.name}")
        try:
            discovered = discover_urls(source, fetcher)
        except Exception as e:
            emit_event(db, run.id, "error", "ERROR", f"Discovery failed for {source.name}: {e}")
            continue

        emit_event(
            db, run.id, "info", "DISCOVER",
            f"Found {len(discovered)} URLs from {source.name}",
            {"sourceId": source.id, "count": len(discovered)},
        )

        created = 0
        with db.session() as session:
            for candidate in discovered:
                item, is_new = upsert_discovered_item(
                    session, source.id, candidate.url, candidate.canonical_url
                )
                created += int(is_new)
                # Known items are only reprocessed while still untouched
                if item.status == "new" and item.id not in seen_ids:
                    seen_ids.add(item.id)
                    items.append(ItemRef(id=item.id, url=item.url))
        logger.info("Source %s: %d discovered, %d new items", source.name, len(discovered), created)

    emit_event(db, run.id, "info", "DISCOVER", f"Total new items to process: {len(items)}")
    return items


def _resolve_reanalysis_items(db: Database, run: Run) -> list[ItemRef]:
    item_ids = run.item_id_list
    if not item_ids:
        emit_event(db, run.id, "warn", "DISCOVER", "No items specified for reanalysis")
        return []

    with db.session() as session:
        found = get_items(session, item_ids)
        found_ids = [item.id for item in found]
        reset_items_for_reanalysis(session, found_ids)
        items = [ItemRef(id=item.id, url=item.url) for item in found]

    missing = [item_id for item_id in item_ids if item_id not in set(found_ids)]
    if missing:
        emit_event(
            db, run.id, "warn", "DISCOVER",
            f"Items no longer exist, skipping: {', '.join(missing)}",
        )

    emit_event(db, run.id, "info", "DISCOVER", f"Reanalyzing {len(items)} items")
    return items


def _process_items(ctx: ItemContext, items: list[ItemRef], summary: RunSummary, concurrency: int) -> None:
    if not items:
        return

    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        futures = [executor.submit(_run_item, ctx, item) for item in items]
        for future in futures:
            summary.count(future.result())


def _run_item(ctx: ItemContext, item: ItemRef) -> str:
    """Run one item, turning any unexpected error into a failed item.

    Nothing raised here reaches the run, including store errors while
    checking for cancellation or while recording the failure itself.
    """
    try:
        # Cancellation checkpoint: in-flight items finish, new ones do not start
        if _is_canceled(ctx.db, ctx.run_id):
            return NOT_STARTED
        return process_item(ctx, item)
    except Exception as e:
        logger.exception("Failed to process %s", item.url)
        _record_item_failure(ctx, item, e)
        return FAILED


def _record_item_failure(ctx: ItemContext, item: ItemRef, error: Exception) -> None:
    try:
        emit_event(ctx.db, ctx.run_id, "error", "ERROR", f"Failed to process {item.url}: {error}")
        with ctx.db.session() as session:
            set_item_status(session, item.id, "failed", error_message=str(error))
    except Exception:
        logger.exception("Could not record failure of item %s", item.id)
