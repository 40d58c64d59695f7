"""Source and topic catalog: loading enabled entries and seeding defaults."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from classify_articles.models import TopicConfig
from classify_articles.taxonomy import DEFAULT_TOPICS
from common.serialization import dump_json
from digest_store.items import dialect_insert
from digest_store.models import Source, Topic, new_id
from ingest_articles.discover_articles.sources import DEFAULT_SOURCES
from ingest_articles.models import PageSelectors, SourceConfig, normalize_source_kind

logger = logging.getLogger(__name__)


def load_enabled_topics(session: Session) -> list[TopicConfig]:
    rows = session.scalars(
        select(Topic).where(Topic.enabled.is_(True)).order_by(Topic.position.asc(), Topic.slug.asc())
    )
    return [
        TopicConfig(slug=row.slug, name=row.name, keywords=row.keyword_list, enabled=row.enabled)
        for row in rows
    ]


def load_topic_names(session: Session) -> dict[str, str]:
    """Map every topic slug (enabled or not) to its display name."""
    return {slug: name for slug, name in session.execute(select(Topic.slug, Topic.name))}


def load_enabled_sources(session: Session, source_ids: list[str] | None = None) -> list[SourceConfig]:
    stmt = select(Source).where(Source.enabled.is_(True)).order_by(Source.created_at.asc(), Source.name.asc())
    if source_ids is not None:
        stmt = stmt.where(Source.id.in_(source_ids))

    sources = []
    for row in session.scalars(stmt):
        try:
            kind = normalize_source_kind(row.kind)
        except ValueError:
            logger.warning("Skipping source %s with unknown kind %r", row.name, row.kind)
            continue
        sources.append(
            SourceConfig(
                id=row.id,
                name=row.name,
                kind=kind,
                seed_urls=row.seed_url_list,
                selectors=PageSelectors.from_dict(row.selector_dict),
                enabled=row.enabled,
            )
        )
    return sources


def add_source(
    session: Session,
    name: str,
    kind: str,
    seed_urls: list[str],
    selectors: PageSelectors | None = None,
    enabled: bool = True,
) -> Source:
    source = Source(
        name=name,
        kind=normalize_source_kind(kind),
        seed_urls=dump_json(seed_urls),
        selectors=dump_json(selectors.to_dict()) if selectors else None,
        enabled=enabled,
    )
    session.add(source)
    session.flush()
    return source


def add_topic(session: Session, topic: TopicConfig, position: int = 0) -> Topic:
    row = Topic(
        slug=topic.slug,
        name=topic.name,
        keywords=dump_json(topic.keywords),
        enabled=topic.enabled,
        position=position,
    )
    session.add(row)
    session.flush()
    return row


def seed_catalog(session: Session) -> tuple[int, int]:
    """Insert default topics and sources that are not present yet.

    Returns:
        Tuple of (topics_created, sources_created)
    """
    topics_created = 0
    for position, topic in enumerate(DEFAULT_TOPICS):
        stmt = dialect_insert(session, Topic).values(
            id=new_id(),
            slug=topic.slug,
            name=topic.name,
            keywords=dump_json(topic.keywords),
            enabled=topic.enabled,
            position=position,
        ).on_conflict_do_nothing(index_elements=["slug"])
        if session.execute(stmt).rowcount > 0:
            topics_created += 1
            logger.info("Created topic: %s", topic.name)
        else:
            logger.info("Topic exists: %s", topic.name)

    sources_created = 0
    for source in DEFAULT_SOURCES:
        stmt = dialect_insert(session, Source).values(
            id=new_id(),
            name=source["name"],
            kind=source["kind"],
            seed_urls=dump_json(source["seed_urls"]),
            selectors=None,
            enabled=True,
        ).on_conflict_do_nothing(index_elements=["name"])
        if session.execute(stmt).rowcount > 0:
            sources_created += 1
            logger.info("Created source: %s", source["name"])
        else:
            logger.info("Source exists: %s", source["name"])

    return topics_created, sources_created
