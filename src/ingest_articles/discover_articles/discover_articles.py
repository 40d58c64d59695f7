"""Source discovery: turn a source descriptor into canonical candidate URLs."""

import logging
from typing import Callable

from common.url import canonicalize_url
from ingest_articles.discover_articles.feed import discover_from_feed
from ingest_articles.discover_articles.page import discover_from_page
from ingest_articles.fetch_articles.fetcher import PoliteFetcher
from ingest_articles.models import FEED, PAGE, DiscoveredUrl, SourceConfig

logger = logging.getLogger(__name__)


def _discover_feed(source: SourceConfig, seed_url: str, fetcher: PoliteFetcher) -> list[str]:
    return discover_from_feed(seed_url, fetcher)


def _discover_page(source: SourceConfig, seed_url: str, fetcher: PoliteFetcher) -> list[str]:
    if source.selectors is None:
        logger.warning("Page source %s has no link selector, skipping %s", source.name, seed_url)
        return []
    page_url = source.selectors.list_page_url or seed_url
    return discover_from_page(page_url, source.selectors.link_selector, fetcher)


DISCOVERY_STRATEGIES: dict[str, Callable[[SourceConfig, str, PoliteFetcher], list[str]]] = {
    FEED: _discover_feed,
    PAGE: _discover_page,
}


def discover_urls(source: SourceConfig, fetcher: PoliteFetcher) -> list[DiscoveredUrl]:
    """Discover candidate URLs for a source.

    Each seed URL is tried independently; a failing seed is logged and
    skipped. Results are deduplicated by canonical URL, keeping first-seen order.
    """
    strategy = DISCOVERY_STRATEGIES.get(source.kind)
    if strategy is None:
        raise ValueError(f"Unknown source kind: {source.kind}")

    discovered: list[DiscoveredUrl] = []
    seen: set[str] = set()

    for seed_url in source.seed_urls:
        try:
            urls = strategy(source, seed_url, fetcher)
        except Exception as e:
            logger.error("Discovery failed for %s (%s): %s", source.name, seed_url, e)
            continue

        for url in urls:
            canonical_url = canonicalize_url(url)
            if canonical_url in seen:
                continue
            seen.add(canonical_url)
            discovered.append(DiscoveredUrl(url=url, canonical_url=canonical_url))

    logger.info("Discovered %d URLs from %s", len(discovered), source.name)
    return discovered
