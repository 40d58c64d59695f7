"""Data models for the ingest_articles pipeline stage."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

FEED = "feed"
PAGE = "page"

# Legacy source type names accepted when loading source configuration
SOURCE_KIND_ALIASES = {
    "feed": FEED,
    "rss": FEED,
    "atom": FEED,
    "page": PAGE,
    "html": PAGE,
    "browser": PAGE,
}


def normalize_source_kind(value: str) -> str:
    try:
        return SOURCE_KIND_ALIASES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown source kind: {value}") from None


@dataclass
class PageSelectors:
    """Link-selection rule for page sources."""
    link_selector: str
    list_page_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict | None) -> Optional["PageSelectors"]:
        if not data:
            return None
        link_selector = data.get("linkSelector") or data.get("link_selector")
        if not link_selector:
            return None
        return cls(
            link_selector=link_selector,
            list_page_url=data.get("listPageUrl") or data.get("list_page_url"),
        )

    def to_dict(self) -> dict:
        data = {"linkSelector": self.link_selector}
        if self.list_page_url:
            data["listPageUrl"] = self.list_page_url
        return data


@dataclass
class SourceConfig:
    """A configured news source."""
    id: str
    name: str
    kind: str
    seed_urls: list[str] = field(default_factory=list)
    selectors: Optional[PageSelectors] = None
    enabled: bool = True


@dataclass
class DiscoveredUrl:
    """Candidate article URL with its canonical identity key."""
    url: str
    canonical_url: str


@dataclass
class FetchResult:
    """Raw response body for a fetched URL."""
    url: str
    final_url: str
    status_code: int
    content: bytes
    text: str
    content_type: Optional[str] = None


@dataclass
class ExtractedArticle:
    """Readable article content extracted from raw HTML."""
    title: str
    text: str
    author: Optional[str] = None
    language: Optional[str] = None
    published_at: Optional[datetime] = None
    excerpt: Optional[str] = None
