"""Data models for run processing."""

from dataclasses import dataclass
from typing import Optional

ANALYZED = "analyzed"
SKIPPED = "skipped"
FAILED = "failed"
NOT_STARTED = "not_started"


@dataclass
class ItemRef:
    """The parts of an Item the per-item pipeline needs."""
    id: str
    url: str


@dataclass
class RunSummary:
    """Outcome counters for one executed run."""
    run_id: str
    status: str
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    not_started: int = 0
    duration_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped + self.not_started

    def count(self, outcome: str) -> None:
        if outcome == ANALYZED:
            self.processed += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        elif outcome == FAILED:
            self.failed += 1
        elif outcome == NOT_STARTED:
            self.not_started += 1
        else:
            raise ValueError(f"Unknown item outcome: {outcome}")
