"""Per-item pipeline: fetch, extract, prefilter, classify."""

import logging
from dataclasses import dataclass

from classify_articles.classify_articles import ClassificationClient, ClassificationError
from classify_articles.match_topics import match_topics
from classify_articles.models import AnalysisRecord, TopicConfig
from common.datetime import utcnow
from digest_store.connection import Database
from digest_store.items import save_analysis, save_article, set_item_status
from ingest_articles.extract_articles.extract_article import extract_article
from ingest_articles.fetch_articles.fetcher import FetchError, HttpStatusError, PoliteFetcher
from process_runs.models import ANALYZED, FAILED, SKIPPED, ItemRef
from run_events.run_events import emit_event

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "Content extraction failed"


@dataclass
class ItemContext:
    """Shared, read-only collaborators for every item in a run."""
    db: Database
    run_id: str
    fetcher: PoliteFetcher
    topics: list[TopicConfig]
    client: ClassificationClient
    min_text_length: int = 100


def process_item(ctx: ItemContext, item: ItemRef) -> str:
    """Advance one item to analyzed, skipped or failed.

    Fetch errors mark the item failed. Extraction that yields too little text
    marks it skipped. Classification errors fall back to a keyword-only
    analysis, so a fetched article always ends analyzed or skipped.

    Returns:
        The item outcome
    """
    db = ctx.db

    # Fetch
    emit_event(db, ctx.run_id, "debug", "FETCH", f"Fetching: {item.url}")
    try:
        result = ctx.fetcher.fetch(item.url)
    except FetchError as e:
        data = {"itemId": item.id, "url": item.url}
        if isinstance(e, HttpStatusError):
            data["statusCode"] = e.status_code
        emit_event(db, ctx.run_id, "error", "ERROR", f"Fetch failed for {item.url}: {e}", data)
        with db.session() as session:
            set_item_status(session, item.id, "failed", error_message=str(e))
        return FAILED

    with db.session() as session:
        set_item_status(session, item.id, "fetched", fetched_at=utcnow())

    # Extract
    emit_event(db, ctx.run_id, "debug", "EXTRACT", f"Extracting content from: {item.url}")
    article = extract_article(result.text, result.final_url, min_text_length=ctx.min_text_length)

    if article is None:
        emit_event(
            db, ctx.run_id, "warn", "EXTRACT",
            f"Extraction failed or content too short: {item.url}",
        )
        with db.session() as session:
            set_item_status(session, item.id, "skipped", error_message=EXTRACTION_FAILED_MESSAGE)
        return SKIPPED

    with db.session() as session:
        save_article(
            session,
            item.id,
            title=article.title,
            text=article.text,
            author=article.author,
            language=article.language,
            published_at=article.published_at,
        )
        set_item_status(session, item.id, "extracted")

    emit_event(
        db, ctx.run_id, "info", "EXTRACT",
        f'Extracted: "{article.title}" ({len(article.text)} chars)',
    )

    # Keyword prefilter
    emit_event(db, ctx.run_id, "debug", "PREFILTER", f"Checking relevance for: {article.title}")
    matched_topics = match_topics(f"{article.title} {article.text}", ctx.topics)

    if not matched_topics:
        emit_event(
            db, ctx.run_id, "info", "PREFILTER",
            f"No topic matches, skipping LLM: {article.title}",
        )
        _save_analysis(db, item.id, AnalysisRecord.keyword_prefilter())
        return ANALYZED

    emit_event(
        db, ctx.run_id, "info", "PREFILTER",
        f"Matched topics: {', '.join(matched_topics)}",
        {"topics": matched_topics},
    )

    # Classification and summarization
    emit_event(db, ctx.run_id, "debug", "CLASSIFY", f"Sending to LLM: {article.title}")
    topic_slugs = [topic.slug for topic in ctx.topics]

    try:
        output = ctx.client.classify_and_summarize(article.text, article.title, topic_slugs)
        record = AnalysisRecord.from_output(output, ctx.client.model_identity())
    except ClassificationError as e:
        emit_event(db, ctx.run_id, "error", "ERROR", f"LLM analysis failed: {e}")
        record = AnalysisRecord.error_fallback(matched_topics)
    except Exception as e:
        logger.exception("Unexpected classification error for %s", item.url)
        emit_event(db, ctx.run_id, "error", "ERROR", f"LLM analysis failed: {e}")
        record = AnalysisRecord.error_fallback(matched_topics)
    else:
        emit_event(
            db, ctx.run_id, "info", "SUMMARIZE",
            f"LLM analysis complete: relevant={str(record.relevant).lower()}, importance={record.importance}",
        )

    _save_analysis(db, item.id, record)
    return ANALYZED


def _save_analysis(db: Database, item_id: str, record: AnalysisRecord) -> None:
    with db.session() as session:
        save_analysis(
            session,
            item_id,
            relevant=record.relevant,
            topics=record.topics,
            importance=record.importance,
            summary_bullets=record.summary_bullets,
            why_it_matters=record.why_it_matters,
            model_version=record.model_version,
        )
        set_item_status(session, item_id, "analyzed")
