"""Keyword prefilter deciding whether an article is worth sending to the LLM."""

import re
from functools import lru_cache

from classify_articles.models import TopicConfig


@lru_cache(maxsize=1024)
def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(keyword.lower())}\b", re.IGNORECASE)


def match_topics(text: str, topics: list[TopicConfig]) -> list[str]:
    """Return slugs of enabled topics with at least one whole-word keyword hit.

    Each topic stops at its first matching keyword. Output keeps taxonomy order.
    """
    matches = []
    for topic in topics:
        if not topic.enabled:
            continue
        for keyword in topic.keywords:
            if keyword and _keyword_pattern(keyword).search(text):
                matches.append(topic.slug)
                break
    return matches
