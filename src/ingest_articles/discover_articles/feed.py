"""Syndication feed discovery."""

import logging

import feedparser

from ingest_articles.fetch_articles.fetcher import PoliteFetcher

logger = logging.getLogger(__name__)


def discover_from_feed(feed_url: str, fetcher: PoliteFetcher) -> list[str]:
    """Fetch an RSS/Atom feed and return each entry's link."""
    result = fetcher.fetch(feed_url)
    feed = feedparser.parse(result.content)

    if feed.bozo and not feed.entries:
        raise ValueError(f"Unparseable feed {feed_url}: {feed.get('bozo_exception')}")

    urls = []
    for entry in feed.entries:
        link = entry.get("link")
        if link:
            urls.append(link.strip())
        else:
            logger.debug("Feed entry without link in %s: %s", feed_url, entry.get("title", ""))

    return urls
