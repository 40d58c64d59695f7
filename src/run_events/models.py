"""Data models for the run event log."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

EVENT_LEVELS = ("debug", "info", "warn", "error")
EVENT_TYPES = (
    "DISCOVER",
    "FETCH",
    "EXTRACT",
    "PREFILTER",
    "CLASSIFY",
    "SUMMARIZE",
    "DONE",
    "ERROR",
)
STREAM_END = "STREAM_END"


@dataclass
class EventRecord:
    """One immutable run event."""
    id: int
    run_id: str
    ts: datetime
    level: str
    type: str
    message: str
    data: Optional[dict[str, Any]] = None


@dataclass
class EventPage:
    """Events after a cursor plus the run's status at read time."""
    events: list[EventRecord]
    status: str
    is_complete: bool
    cursor: Optional[int]


@dataclass
class StreamEnd:
    """Synthetic marker closing an event stream."""
    status: str
    type: str = STREAM_END
