"""Assemble a digest of relevant analyzed articles for a time window."""

import logging
from datetime import datetime

from sqlalchemy import select

from build_digest.models import DigestArticle, DigestResult, DigestStats, DigestTopic
from build_digest.render import format_date_range, render_html, render_text
from common.datetime import as_utc
from digest_store.catalog import load_topic_names
from digest_store.connection import Database
from digest_store.models import Analysis, Article, Item, Source, Topic

logger = logging.getLogger(__name__)


def load_digest_articles(db: Database, start: datetime, end: datetime) -> list[DigestArticle]:
    """Load analyzed, relevant articles discovered within [start, end], most important first."""
    start, end = as_utc(start), as_utc(end)
    with db.session() as session:
        topic_names = load_topic_names(session)
        rows = session.execute(
            select(Item, Article, Analysis, Source.name)
            .join(Article, Article.item_id == Item.id)
            .join(Analysis, Analysis.item_id == Item.id)
            .outerjoin(Source, Source.id == Item.source_id)
            .where(
                Item.status == "analyzed",
                Analysis.relevant.is_(True),
                Item.created_at >= start,
                Item.created_at <= end,
            )
            .order_by(Item.created_at.desc())
        ).all()

        articles = []
        for item, article, analysis, source_name in rows:
            articles.append(
                DigestArticle(
                    title=article.title or item.url,
                    url=item.url,
                    source=source_name or "Unknown source",
                    published_at=as_utc(article.published_at),
                    summary_bullets=analysis.bullet_list,
                    why_it_matters=analysis.why_it_matters,
                    importance=analysis.importance,
                    topics=[
                        DigestTopic(slug=slug, name=topic_names.get(slug, slug))
                        for slug in analysis.topic_list
                    ],
                )
            )

    # Stable sort keeps newest-first order among equal importance
    articles.sort(key=lambda a: a.importance, reverse=True)
    return articles


def group_by_topic(articles: list[DigestArticle], topic_order: list[str]) -> list[tuple[DigestTopic, list[DigestArticle]]]:
    """Group articles under each of their topics, in taxonomy order."""
    groups: dict[str, tuple[DigestTopic, list[DigestArticle]]] = {}
    for article in articles:
        for topic in article.topics:
            groups.setdefault(topic.slug, (topic, []))[1].append(article)

    rank = {slug: index for index, slug in enumerate(topic_order)}
    ordered = sorted(groups.items(), key=lambda kv: (rank.get(kv[0], len(rank)), kv[0]))
    return [group for _, group in ordered]


def build_digest(
    db: Database,
    start: datetime,
    end: datetime,
    group_topics: bool = False,
) -> DigestResult:
    articles = load_digest_articles(db, start, end)
    unique_topics = {topic.slug for article in articles for topic in article.topics}

    groups = None
    if group_topics:
        with db.session() as session:
            topic_order = list(
                session.scalars(select(Topic.slug).order_by(Topic.position.asc(), Topic.slug.asc()))
            )
        groups = group_by_topic(articles, topic_order)

    logger.info("Built digest with %d articles across %d topics", len(articles), len(unique_topics))

    return DigestResult(
        html=render_html(articles, start, end, groups),
        text=render_text(articles, start, end, groups),
        stats=DigestStats(
            total_articles=len(articles),
            topic_count=len(unique_topics),
            date_range=format_date_range(start, end),
        ),
        articles=articles,
    )
