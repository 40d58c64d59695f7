"""SQLAlchemy models for the news digest store.

List and object fields (seed URLs, selectors, keywords, topic slugs,
summary bullets, event payloads) are stored as JSON text. The ``*_list`` /
``*_dict`` properties parse them fail-soft so callers always see native
values.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from common.datetime import utcnow
from common.serialization import load_json_dict, load_json_list

RUN_KINDS = ("discovery", "reanalysis")
RUN_STATUSES = ("queued", "running", "succeeded", "failed", "canceled")
TERMINAL_RUN_STATUSES = frozenset({"succeeded", "failed", "canceled"})
ITEM_STATUSES = ("new", "fetched", "extracted", "analyzed", "skipped", "failed")
SOURCE_KINDS = ("feed", "page")


def new_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class Source(Base):
    __tablename__ = "sources"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    kind: Mapped[str] = mapped_column(String(16), default="feed")
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    seed_urls: Mapped[str] = mapped_column(Text, default="[]")
    selectors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def seed_url_list(self) -> list[str]:
        return [u for u in load_json_list(self.seed_urls, "sources.seed_urls") if isinstance(u, str)]

    @property
    def selector_dict(self) -> dict | None:
        return load_json_dict(self.selectors, "sources.selectors")


class Topic(Base):
    __tablename__ = "topics"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    slug: Mapped[str] = mapped_column(String(100), unique=True)
    name: Mapped[str] = mapped_column(String(255))
    keywords: Mapped[str] = mapped_column(Text, default="[]")
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    @property
    def keyword_list(self) -> list[str]:
        return [k for k in load_json_list(self.keywords, "topics.keywords") if isinstance(k, str)]


class Run(Base):
    __tablename__ = "runs"
    __table_args__ = (Index("ix_runs_status_created_at", "status", "created_at"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    kind: Mapped[str] = mapped_column(String(16), default="discovery")
    status: Mapped[str] = mapped_column(String(16), default="queued")
    source_ids: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    item_ids: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    triggered_by: Mapped[str] = mapped_column(String(100), default="cli")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def source_id_list(self) -> list[str] | None:
        if self.source_ids is None:
            return None
        return [str(s) for s in load_json_list(self.source_ids, "runs.source_ids")]

    @property
    def item_id_list(self) -> list[str]:
        return [str(i) for i in load_json_list(self.item_ids, "runs.item_ids")]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_RUN_STATUSES


class Item(Base):
    __tablename__ = "items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    source_id: Mapped[Optional[str]] = mapped_column(
        String(32), ForeignKey("sources.id", ondelete="SET NULL"), nullable=True
    )
    url: Mapped[str] = mapped_column(Text)
    canonical_url: Mapped[str] = mapped_column(String(2048), unique=True)
    status: Mapped[str] = mapped_column(String(16), default="new", index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    fetched_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("items.id", ondelete="CASCADE"), unique=True
    )
    title: Mapped[str] = mapped_column(Text, default="")
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text)
    language: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Analysis(Base):
    __tablename__ = "analyses"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    item_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("items.id", ondelete="CASCADE"), unique=True
    )
    relevant: Mapped[bool] = mapped_column(Boolean, default=False)
    topics: Mapped[str] = mapped_column(Text, default="[]")
    importance: Mapped[int] = mapped_column(Integer, default=0)
    summary_bullets: Mapped[str] = mapped_column(Text, default="[]")
    why_it_matters: Mapped[str] = mapped_column(Text, default="")
    model_version: Mapped[str] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def topic_list(self) -> list[str]:
        return [str(t) for t in load_json_list(self.topics, "analyses.topics")]

    @property
    def bullet_list(self) -> list[str]:
        return [str(b) for b in load_json_list(self.summary_bullets, "analyses.summary_bullets")]


class RunEvent(Base):
    __tablename__ = "run_events"
    __table_args__ = (Index("ix_run_events_run_id_id", "run_id", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(32), ForeignKey("runs.id", ondelete="CASCADE"))
    ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    level: Mapped[str] = mapped_column(String(8))
    type: Mapped[str] = mapped_column(String(16))
    message: Mapped[str] = mapped_column(Text)
    data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def data_dict(self) -> dict | None:
        return load_json_dict(self.data, "run_events.data")
