"""Tests for process_runs.orchestrator module."""

from unittest.mock import Mock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from classify_articles.classify_articles import ClassificationError
from classify_articles.models import AnalysisOutput
from digest_store.catalog import add_source
from digest_store.items import get_analysis, get_article, save_analysis, save_article, upsert_discovered_item
from digest_store.models import Item
from digest_store.runs import get_run
from process_runs.orchestrator import (
    RunSubmissionError,
    cancel_run,
    claim_next_run,
    execute_run,
    submit_discovery_run,
    submit_reanalysis_run,
    submit_run,
)
from run_events.run_events import poll_events

MODULE = "process_runs.process_item.extract_article"
FEED_URL = "https://news.example.com/feed"


def _client(model="test-model"):
    client = Mock()
    client.model_identity.return_value = model
    client.classify_and_summarize.return_value = AnalysisOutput(
        relevant=True,
        topics=["climate-carbon", "esg-regulation"],
        importance=80,
        summary_bullets=["New rules adopted.", "Scope 3 reporting required."],
        why_it_matters="Disclosure scope widens for large issuers.",
    )
    return client


def _events(db, run_id):
    return poll_events(db, run_id, limit=1000).events


def _items(db) -> dict[str, Item]:
    with db.session() as session:
        return {item.canonical_url: item for item in session.scalars(select(Item))}


def _execute(db, config, fetcher, client):
    run = claim_next_run(db)
    assert run is not None
    return execute_run(db, run, config, fetcher=fetcher, client=client)


class TestSubmit:
    def test_submit_discovery(self, db) -> None:
        run = submit_run(db, "discovery", source_ids=["a", "a", "b"])
        assert run.status == "queued"
        assert run.kind == "discovery"
        assert run.source_id_list == ["a", "b"]
        assert run.triggered_by == "cli"

    def test_submit_unknown_kind(self, db) -> None:
        with pytest.raises(RunSubmissionError):
            submit_run(db, "backfill")

    def test_reanalysis_rejects_missing_items(self, db) -> None:
        with db.session() as session:
            item, _ = upsert_discovered_item(session, None, "https://e.com/a", "https://e.com/a")
            item_id = item.id
        with pytest.raises(RunSubmissionError, match="Some item IDs not found: nope"):
            submit_reanalysis_run(db, [item_id, "nope"])
        assert claim_next_run(db) is None

    def test_reanalysis_dedups(self, db) -> None:
        with db.session() as session:
            item, _ = upsert_discovered_item(session, None, "https://e.com/a", "https://e.com/a")
            item_id = item.id
        run = submit_reanalysis_run(db, [item_id, item_id])
        assert run.item_id_list == [item_id]
        assert run.triggered_by == "dashboard"


class TestExecuteDiscoveryRun:
    def test_processes_each_item_to_terminal_state(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        client = _client()
        run = submit_discovery_run(seeded_db)

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), client)

        assert summary.status == "succeeded"
        assert (summary.processed, summary.failed, summary.skipped) == (2, 1, 1)

        items = _items(seeded_db)
        assert items["https://news.example.com/esg"].status == "analyzed"
        assert items["https://news.example.com/esg"].url == "https://news.example.com/esg?utm_source=rss"
        assert items["https://news.example.com/marathon"].status == "analyzed"
        assert items["https://news.example.com/gone"].status == "failed"
        assert items["https://news.example.com/gone"].error_message == "HTTP 404: Not Found"
        assert items["https://news.example.com/short"].status == "skipped"
        assert items["https://news.example.com/short"].error_message == "Content extraction failed"

        with seeded_db.session() as session:
            assert get_run(session, run.id).status == "succeeded"
            esg = get_analysis(session, items["https://news.example.com/esg"].id)
            assert esg.relevant is True
            assert esg.model_version == "test-model"
            other = get_analysis(session, items["https://news.example.com/marathon"].id)
            assert other.relevant is False
            assert other.model_version == "keyword-prefilter"

        # Only the prefilter-matched article reached the classifier
        assert client.classify_and_summarize.call_count == 1

        events = _events(seeded_db, run.id)
        assert events[0].message == "Using classification model: test-model"
        assert events[-1].type == "DONE"
        assert events[-1].level == "info"
        assert "Processed: 2, Failed: 1, Skipped: 1" in events[-1].message
        assert any(e.message == "Total new items to process: 4" for e in events)

    def test_rediscovered_items_are_not_reprocessed(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        with patch(MODULE, side_effect=fake_extract):
            submit_discovery_run(seeded_db)
            _execute(seeded_db, config, fake_fetcher(news_pages), _client())

            submit_discovery_run(seeded_db)
            fetcher = fake_fetcher(news_pages)
            summary = _execute(seeded_db, config, fetcher, _client())

        assert summary.status == "succeeded"
        assert (summary.processed, summary.failed, summary.skipped) == (0, 0, 0)
        fetcher.fetch.assert_called_once_with(FEED_URL)
        assert len(_items(seeded_db)) == 4

    def test_classification_error_falls_back(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        client = _client()
        client.classify_and_summarize.side_effect = ClassificationError("schema mismatch")
        run = submit_discovery_run(seeded_db)

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), client)

        assert summary.processed == 2
        item = _items(seeded_db)["https://news.example.com/esg"]
        assert item.status == "analyzed"
        with seeded_db.session() as session:
            analysis = get_analysis(session, item.id)
            assert analysis.model_version == "error-fallback"
            assert analysis.relevant is False
            assert analysis.importance == 50
            assert analysis.topic_list == ["climate-carbon"]

        errors = [e for e in _events(seeded_db, run.id) if e.type == "ERROR"]
        assert any("LLM analysis failed: schema mismatch" in e.message for e in errors)

    def test_offline_client_selected_from_config(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        run = submit_discovery_run(seeded_db)
        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), None)

        assert summary.status == "succeeded"
        assert _events(seeded_db, run.id)[0].message == "Using classification model: mock-llm-v1"

    def test_no_sources_succeeds_empty(self, seeded_db, config) -> None:
        run = submit_discovery_run(seeded_db)
        fetcher = Mock()

        summary = _execute(seeded_db, config, fetcher, _client())

        assert summary.status == "succeeded"
        assert (summary.processed, summary.failed, summary.skipped) == (0, 0, 0)
        fetcher.fetch.assert_not_called()
        messages = [e.message for e in _events(seeded_db, run.id)]
        assert "No enabled sources to process" in messages
        done = _events(seeded_db, run.id)[-1]
        assert (done.type, done.level) == ("DONE", "warn")

    def test_source_filter(self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract) -> None:
        with seeded_db.session() as session:
            add_source(session, "Other", "feed", ["https://other.example.com/feed"])
        submit_discovery_run(seeded_db, [feed_source])
        fetcher = fake_fetcher(news_pages)

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fetcher, _client())

        assert summary.status == "succeeded"
        assert "https://other.example.com/feed" not in [c.args[0] for c in fetcher.fetch.call_args_list]

    def test_discovery_failure_is_isolated(self, seeded_db, config, feed_source, fake_fetcher) -> None:
        run = submit_discovery_run(seeded_db)
        fetcher = fake_fetcher({FEED_URL: "<<<not a feed"})

        summary = _execute(seeded_db, config, fetcher, _client())

        assert summary.status == "succeeded"
        messages = [e.message for e in _events(seeded_db, run.id)]
        assert "Found 0 URLs from Example News" in messages

    def test_store_error_at_checkpoint_fails_only_that_item(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        config.worker.item_concurrency = 1
        run = submit_discovery_run(seeded_db)
        locked = OperationalError("SELECT status FROM runs", {}, Exception("database is locked"))
        # One check per source during discovery, one per item, one after processing
        checks = [False, locked, False, False, False, False]

        with patch(MODULE, side_effect=fake_extract), \
                patch("process_runs.orchestrator._is_canceled", side_effect=checks):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), _client())

        assert summary.status == "succeeded"
        assert (summary.processed, summary.failed, summary.skipped) == (1, 2, 1)
        esg = _items(seeded_db)["https://news.example.com/esg"]
        assert esg.status == "failed"
        assert "database is locked" in esg.error_message
        with seeded_db.session() as session:
            assert get_run(session, run.id).status == "succeeded"

    def test_failure_while_recording_item_error_is_contained(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher
    ) -> None:
        run = submit_discovery_run(seeded_db)

        with patch("process_runs.orchestrator.process_item", side_effect=RuntimeError("boom")), \
                patch("process_runs.orchestrator.set_item_status", side_effect=RuntimeError("store down")):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), _client())

        assert summary.status == "succeeded"
        assert summary.failed == 4
        with seeded_db.session() as session:
            assert get_run(session, run.id).status == "succeeded"
        last = _events(seeded_db, run.id)[-1]
        assert last.type == "DONE"
        assert "Failed: 4" in last.message

    @patch("process_runs.orchestrator.load_enabled_topics")
    def test_setup_failure_fails_run(self, mock_topics, seeded_db, config) -> None:
        mock_topics.side_effect = RuntimeError("topics table missing")
        run = submit_discovery_run(seeded_db)

        summary = _execute(seeded_db, config, Mock(), _client())

        assert summary.status == "failed"
        assert summary.error == "topics table missing"
        with seeded_db.session() as session:
            assert get_run(session, run.id).status == "failed"
        last = _events(seeded_db, run.id)[-1]
        assert last.type == "ERROR"
        assert last.message == "Run failed: topics table missing"

    def test_cancel_stops_new_items(
        self, seeded_db, config, feed_source, news_pages, fake_fetcher, fake_extract
    ) -> None:
        config.worker.item_concurrency = 1
        run = submit_discovery_run(seeded_db)
        client = _client()
        answer = client.classify_and_summarize.return_value

        def cancel_then_answer(*args):
            cancel_run(seeded_db, run.id)
            return answer

        client.classify_and_summarize.side_effect = cancel_then_answer

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), client)

        assert summary.status == "canceled"
        assert summary.processed == 1
        assert summary.not_started == 3
        with seeded_db.session() as session:
            assert get_run(session, run.id).status == "canceled"

        items = _items(seeded_db)
        assert items["https://news.example.com/esg"].status == "analyzed"
        assert items["https://news.example.com/marathon"].status == "new"

        last = _events(seeded_db, run.id)[-1]
        assert last.type == "DONE"
        assert last.level == "warn"


class TestExecuteReanalysisRun:
    def _analyzed_item(self, db) -> str:
        with db.session() as session:
            item, _ = upsert_discovered_item(
                session, None, "https://news.example.com/esg?utm_source=rss", "https://news.example.com/esg"
            )
            save_article(session, item.id, title="Old title", text="old text")
            save_analysis(
                session,
                item.id,
                relevant=False,
                topics=[],
                importance=0,
                summary_bullets=[],
                why_it_matters="old",
                model_version="keyword-prefilter",
            )
            return item.id

    def test_reprocesses_items(self, seeded_db, config, news_pages, fake_fetcher, fake_extract) -> None:
        item_id = self._analyzed_item(seeded_db)
        run = submit_reanalysis_run(seeded_db, [item_id])

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), _client())

        assert summary.status == "succeeded"
        assert summary.processed == 1
        with seeded_db.session() as session:
            assert get_article(session, item_id).title.startswith("Regulators finalized")
            analysis = get_analysis(session, item_id)
            assert analysis.model_version == "test-model"
            assert analysis.relevant is True
        assert any(e.message == "Reanalyzing 1 items" for e in _events(seeded_db, run.id))

    def test_empty_item_list(self, seeded_db, config) -> None:
        run = submit_reanalysis_run(seeded_db, [])
        summary = _execute(seeded_db, config, Mock(), _client())

        assert summary.status == "succeeded"
        assert summary.processed == 0
        messages = [e.message for e in _events(seeded_db, run.id)]
        assert "No items specified for reanalysis" in messages

    def test_item_deleted_after_submit(self, seeded_db, config, news_pages, fake_fetcher, fake_extract) -> None:
        item_id = self._analyzed_item(seeded_db)
        run = submit_reanalysis_run(seeded_db, [item_id])
        with seeded_db.session() as session:
            session.delete(session.get(Item, item_id))

        with patch(MODULE, side_effect=fake_extract):
            summary = _execute(seeded_db, config, fake_fetcher(news_pages), _client())

        assert summary.status == "succeeded"
        assert summary.processed == 0
        warnings = [e for e in _events(seeded_db, run.id) if e.level == "warn"]
        assert any(item_id in e.message for e in warnings)
