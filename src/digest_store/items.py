"""Item, Article and Analysis persistence."""

import logging
from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from common.datetime import utcnow
from common.serialization import dump_json
from digest_store.models import ITEM_STATUSES, Analysis, Article, Item, new_id

logger = logging.getLogger(__name__)


def dialect_insert(session: Session, model):
    """Dialect-specific INSERT supporting ON CONFLICT clauses."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise ValueError(f"Unsupported database dialect for upserts: {dialect}")


def upsert_discovered_item(
    session: Session,
    source_id: str | None,
    url: str,
    canonical_url: str,
) -> tuple[Item, bool]:
    """Insert an item keyed on canonical URL, leaving an existing row untouched.

    Returns:
        Tuple of (item, created)
    """
    stmt = dialect_insert(session, Item).values(
        id=new_id(),
        source_id=source_id,
        url=url,
        canonical_url=canonical_url,
        status="new",
        created_at=utcnow(),
    ).on_conflict_do_nothing(index_elements=["canonical_url"])
    result = session.execute(stmt)
    created = result.rowcount > 0

    item = session.execute(
        select(Item).where(Item.canonical_url == canonical_url).execution_options(populate_existing=True)
    ).scalar_one()
    return item, created


def get_item(session: Session, item_id: str) -> Item | None:
    return session.get(Item, item_id, populate_existing=True)


def get_items(session: Session, item_ids: list[str]) -> list[Item]:
    """Load items by id, preserving the order of ``item_ids`` and skipping unknown ids."""
    if not item_ids:
        return []
    rows = session.scalars(select(Item).where(Item.id.in_(item_ids)))
    by_id = {item.id: item for item in rows}
    return [by_id[item_id] for item_id in item_ids if item_id in by_id]


def missing_item_ids(session: Session, item_ids: list[str]) -> list[str]:
    if not item_ids:
        return []
    found = set(session.scalars(select(Item.id).where(Item.id.in_(item_ids))))
    return [item_id for item_id in item_ids if item_id not in found]


def set_item_status(
    session: Session,
    item_id: str,
    status: str,
    error_message: str | None = None,
    fetched_at: datetime | None = None,
) -> None:
    if status not in ITEM_STATUSES:
        raise ValueError(f"Unknown item status: {status}")

    values: dict = {"status": status, "error_message": error_message}
    if fetched_at is not None:
        values["fetched_at"] = fetched_at

    session.execute(
        update(Item)
        .where(Item.id == item_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def save_article(
    session: Session,
    item_id: str,
    title: str,
    text: str,
    author: str | None = None,
    language: str | None = None,
    published_at: datetime | None = None,
) -> None:
    """Insert or replace the article for an item."""
    values = {
        "title": title,
        "author": author,
        "text": text,
        "language": language,
        "published_at": published_at,
        "created_at": utcnow(),
    }
    stmt = dialect_insert(session, Article).values(
        id=new_id(),
        item_id=item_id,
        **values,
    ).on_conflict_do_update(index_elements=["item_id"], set_=values)
    session.execute(stmt)


def save_analysis(
    session: Session,
    item_id: str,
    relevant: bool,
    topics: list[str],
    importance: int,
    summary_bullets: list[str],
    why_it_matters: str,
    model_version: str,
) -> None:
    """Insert or replace the analysis for an item."""
    values = {
        "relevant": relevant,
        "topics": dump_json(list(topics)),
        "importance": importance,
        "summary_bullets": dump_json(list(summary_bullets)),
        "why_it_matters": why_it_matters,
        "model_version": model_version,
        "created_at": utcnow(),
    }
    stmt = dialect_insert(session, Analysis).values(
        id=new_id(),
        item_id=item_id,
        **values,
    ).on_conflict_do_update(index_elements=["item_id"], set_=values)
    session.execute(stmt)


def get_article(session: Session, item_id: str) -> Article | None:
    return session.execute(select(Article).where(Article.item_id == item_id)).scalar_one_or_none()


def get_analysis(session: Session, item_id: str) -> Analysis | None:
    return session.execute(select(Analysis).where(Analysis.item_id == item_id)).scalar_one_or_none()


def reset_items_for_reanalysis(session: Session, item_ids: list[str]) -> int:
    """Discard prior article/analysis rows and reset items to ``new``.

    Runs inside the caller's transaction, so either every item is reset or none is.
    """
    if not item_ids:
        return 0

    session.execute(delete(Analysis).where(Analysis.item_id.in_(item_ids)))
    session.execute(delete(Article).where(Article.item_id.in_(item_ids)))
    result = session.execute(
        update(Item)
        .where(Item.id.in_(item_ids))
        .values(status="new", fetched_at=None, error_message=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
