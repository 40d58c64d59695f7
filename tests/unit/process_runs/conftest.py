from unittest.mock import Mock

import pytest

from digest_store.catalog import add_source
from ingest_articles.fetch_articles.fetcher import HttpStatusError
from ingest_articles.models import ExtractedArticle, FetchResult

FEED_URL = "https://news.example.com/feed"

ESG_TEXT = (
    "Regulators finalized new climate disclosure rules on Tuesday. "
    "Large companies must now report scope 3 emissions across their value chains. "
    "Investors have pushed for the change for several years."
)
OTHER_TEXT = (
    "The city marathon drew record crowds on Sunday morning. "
    "Runners from forty countries took part in the race along the river. "
    "Organizers plan to expand the course next year."
)


def _rss(links: list[str]) -> str:
    entries = "".join(f"<item><title>{link}</title><link>{link}</link></item>" for link in links)
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>Feed</title>{entries}</channel></rss>'


@pytest.fixture
def fake_fetcher():
    """Build a fetcher double serving canned bodies; exceptions in the map are raised."""

    def _build(pages: dict) -> Mock:
        fetcher = Mock()

        def fetch(url):
            value = pages[url]
            if isinstance(value, Exception):
                raise value
            return FetchResult(
                url=url, final_url=url, status_code=200, content=value.encode("utf-8"), text=value
            )

        fetcher.fetch.side_effect = fetch
        return fetcher

    return _build


@pytest.fixture
def fake_extract():
    """Treat the fetched body as the article text; the first sentence becomes the title."""

    def _extract(html, url, min_text_length=100):
        if len(html) < min_text_length:
            return None
        return ExtractedArticle(title=html.split(".")[0], text=html, language="en")

    return _extract


@pytest.fixture
def feed_source(seeded_db):
    with seeded_db.session() as session:
        return add_source(session, "Example News", "feed", [FEED_URL]).id


@pytest.fixture
def news_pages():
    return {
        FEED_URL: _rss([
            "https://news.example.com/esg?utm_source=rss",
            "https://news.example.com/marathon",
            "https://news.example.com/gone",
            "https://news.example.com/short",
        ]),
        "https://news.example.com/esg?utm_source=rss": ESG_TEXT,
        "https://news.example.com/marathon": OTHER_TEXT,
        "https://news.example.com/gone": HttpStatusError(404, "Not Found"),
        "https://news.example.com/short": "Too short to keep.",
    }


@pytest.fixture
def rss_feed():
    return _rss
