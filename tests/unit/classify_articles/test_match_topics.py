"""Tests for classify_articles.match_topics module."""

from classify_articles.match_topics import match_topics
from classify_articles.models import TopicConfig
from classify_articles.taxonomy import DEFAULT_TOPICS


class TestMatchTopics:
    def test_whole_word_only(self) -> None:
        topics = [TopicConfig(slug="gov", name="Gov", keywords=["board"])]
        assert match_topics("The board met on Monday.", topics) == ["gov"]
        assert match_topics("Passengers boarded the skateboard.", topics) == []

    def test_case_insensitive(self) -> None:
        topics = [TopicConfig(slug="climate", name="Climate", keywords=["Net Zero"])]
        assert match_topics("NET ZERO by 2050", topics) == ["climate"]

    def test_keeps_taxonomy_order(self) -> None:
        text = "A new solar farm will cut carbon emissions."
        assert match_topics(text, DEFAULT_TOPICS) == ["climate-carbon", "renewable-energy"]

    def test_skips_disabled_topics(self) -> None:
        topics = [
            TopicConfig(slug="a", name="A", keywords=["solar"], enabled=False),
            TopicConfig(slug="b", name="B", keywords=["solar"]),
        ]
        assert match_topics("solar", topics) == ["b"]

    def test_escapes_regex_characters(self) -> None:
        topics = [TopicConfig(slug="ai", name="AI", keywords=["a.i"])]
        assert match_topics("abi", topics) == []
        assert match_topics("rules on a.i today", topics) == ["ai"]

    def test_no_topics(self) -> None:
        assert match_topics("anything", []) == []
