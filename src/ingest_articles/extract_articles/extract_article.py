import json
import logging
from typing import Optional

import trafilatura
from lxml import etree
from lxml import html as lxml_html
from readability import Document

from common.datetime import parse_published_time
from ingest_articles.models import ExtractedArticle

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 100

# Checked in order; the first non-empty value wins
PUBLISHED_TIME_XPATHS = [
    "//meta[@property='article:published_time']/@content",
    "//meta[@property='og:article:published_time']/@content",
    "//meta[@name='pubdate']/@content",
    "//meta[@name='publishdate']/@content",
    "//meta[@name='date']/@content",
    "//meta[@itemprop='datePublished']/@content",
    "//time[@datetime]/@datetime",
]


def extract_article(
    html: str,
    url: str,
    min_text_length: int = MIN_TEXT_LENGTH,
) -> Optional[ExtractedArticle]:
    """
    Extract readable article content from raw HTML.

    Order:
    1. trafilatura
    2. readability-lxml

    Returns None when neither yields at least ``min_text_length`` characters of body text.
    """
    if not html or not html.strip():
        return None

    metadata = _read_page_metadata(html)

    article = None

    # 1. Try trafilatura
    try:
        article = extract_with_trafilatura(html, url)
    except Exception as e:
        logger.warning("trafilatura failed for %s: %s", url, e)

    # 2. Fallback to readability
    if article is None or len(article.text) < min_text_length:
        try:
            article = extract_with_readability(html, url) or article
        except Exception as e:
            logger.warning("readability failed for %s: %s", url, e)

    if article is None or len(article.text) < min_text_length:
        return None

    # Explicit page metadata takes precedence over extractor guesses
    published_at = parse_published_time(metadata.get("published_time")) or article.published_at
    return ExtractedArticle(
        title=article.title or metadata.get("title") or "",
        text=article.text,
        author=article.author or metadata.get("author"),
        language=article.language or metadata.get("language"),
        published_at=published_at,
        excerpt=article.excerpt,
    )


def extract_with_trafilatura(html: str, url: str) -> Optional[ExtractedArticle]:
    raw = trafilatura.extract(
        html,
        url=url,
        output_format="json",
        with_metadata=True,
        include_comments=False,
    )
    if not raw:
        return None

    data = json.loads(raw)
    text = _normalize_lines(data.get("text") or data.get("raw_text") or "")
    if not text:
        return None

    return ExtractedArticle(
        title=(data.get("title") or "").strip(),
        text=text,
        author=data.get("author") or None,
        language=data.get("language") or None,
        published_at=parse_published_time(data.get("date")),
        excerpt=data.get("excerpt") or None,
    )


def extract_with_readability(html: str, url: str) -> Optional[ExtractedArticle]:
    doc = Document(html, url=url)
    summary_html = doc.summary()

    tree = lxml_html.fromstring(summary_html)
    text = _normalize_lines(tree.text_content())
    if not text:
        return None

    return ExtractedArticle(
        title=(doc.short_title() or "").strip(),
        text=text,
    )


def _normalize_lines(text: str) -> str:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return "\n".join(lines)


def _read_page_metadata(html: str) -> dict[str, Optional[str]]:
    """Read publish time, author, language and title from the raw document."""
    try:
        tree = lxml_html.fromstring(html)
    except (etree.ParserError, ValueError) as e:
        logger.debug("Could not parse HTML for metadata: %s", e)
        return {}

    published_time = None
    for xpath in PUBLISHED_TIME_XPATHS:
        values = [v.strip() for v in tree.xpath(xpath) if v and v.strip()]
        if values:
            published_time = values[0]
            break

    authors = [v.strip() for v in tree.xpath("//meta[@name='author']/@content") if v.strip()]
    titles = [t.strip() for t in tree.xpath("//title/text()") if t.strip()]

    root = tree.getroottree().getroot()
    language = (root.get("lang") or "").strip() or None

    return {
        "published_time": published_time,
        "author": authors[0] if authors else None,
        "language": language,
        "title": titles[0] if titles else None,
    }
