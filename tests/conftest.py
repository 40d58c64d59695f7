"""Shared fixtures: a temporary SQLite store and an offline config."""

from unittest.mock import Mock

import pytest

from classify_articles.taxonomy import DEFAULT_TOPICS
from common.config import Config
from digest_store.catalog import add_topic
from digest_store.connection import Database


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def seeded_db(db):
    with db.session() as session:
        for position, topic in enumerate(DEFAULT_TOPICS):
            add_topic(session, topic, position=position)
    return db


@pytest.fixture
def config():
    cfg = Config()
    cfg.llm.provider = "offline"
    cfg.fetch.per_host_interval_seconds = 0.0
    cfg.worker.item_concurrency = 2
    cfg.worker.poll_interval_seconds = 0.01
    return cfg


@pytest.fixture
def article_html():
    def _build(title: str = "Sample headline", body: str | None = None, extra_head: str = "") -> str:
        if body is None:
            body = " ".join(["This is a sentence about nothing in particular."] * 12)
        paragraphs = "".join(f"<p>{part.strip()}.</p>" for part in body.split(".") if part.strip())
        return (
            f'<html lang="en"><head><title>{title}</title>{extra_head}</head>'
            f"<body><article><h1>{title}</h1>{paragraphs}</article></body></html>"
        )

    return _build


@pytest.fixture
def http_response():
    def _build(status_code: int = 200, text: str = "", url: str = "https://example.com/", reason: str = "OK"):
        response = Mock()
        response.status_code = status_code
        response.reason = reason
        response.text = text
        response.content = text.encode("utf-8")
        response.url = url
        response.headers = {"Content-Type": "text/html; charset=utf-8"}
        return response

    return _build
