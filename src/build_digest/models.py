"""Data models for digest assembly."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class DigestTopic:
    slug: str
    name: str


@dataclass
class DigestArticle:
    """One relevant analyzed article as it appears in a digest."""
    title: str
    url: str
    source: str
    published_at: Optional[datetime]
    summary_bullets: list[str]
    why_it_matters: str
    importance: int
    topics: list[DigestTopic] = field(default_factory=list)


@dataclass
class DigestStats:
    total_articles: int
    topic_count: int
    date_range: str


@dataclass
class DigestResult:
    html: str
    text: str
    stats: DigestStats
    articles: list[DigestArticle] = field(default_factory=list)
