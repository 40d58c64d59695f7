"""Listing-page discovery using a CSS link selector."""

import logging

from bs4 import BeautifulSoup

from common.url import is_valid_http_url, resolve_url
from ingest_articles.fetch_articles.fetcher import PoliteFetcher

logger = logging.getLogger(__name__)


def extract_links(html: str, page_url: str, link_selector: str) -> list[str]:
    """Apply a CSS selector to a page and return absolute http(s) hrefs."""
    soup = BeautifulSoup(html, "lxml")

    urls = []
    for element in soup.select(link_selector):
        href = element.get("href")
        if not href:
            continue
        absolute = resolve_url(href, page_url)
        if is_valid_http_url(absolute):
            urls.append(absolute)

    return urls


def discover_from_page(page_url: str, link_selector: str, fetcher: PoliteFetcher) -> list[str]:
    """Fetch one listing page and return the links matched by ``link_selector``."""
    result = fetcher.fetch(page_url)
    return extract_links(result.text, result.final_url or page_url, link_selector)
