"""Helper functions for the build_digest CLI."""

from __future__ import annotations

import argparse
from datetime import date, datetime, timedelta, timezone

from common.cli_helpers import date_to_range, parse_date


def resolve_window(
    start_date: date | None,
    end_date: date | None,
    lookback_days: int,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Turn optional --start/--end dates into a UTC [start, end] window.

    The end date is inclusive. Without --start, the window reaches back
    ``lookback_days`` from the end.
    """
    now = now or datetime.now(timezone.utc)
    end = date_to_range(end_date)[1] if end_date else now
    start = date_to_range(start_date)[0] if start_date else end - timedelta(days=lookback_days)
    if start > end:
        raise ValueError("--start must not be after --end")
    return start, end


def parse_build_digest_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for news-digest-build."""

    parser = argparse.ArgumentParser(prog="news-digest-build")
    parser.add_argument("--config", default=None)
    parser.add_argument("--verbose", action="store_true")

    # Window options
    parser.add_argument(
        "--start",
        type=lambda v: parse_date(v, "start"),
        default=None,
        help="First day of the digest window (UTC, YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end",
        type=lambda v: parse_date(v, "end"),
        default=None,
        help="Last day of the digest window, inclusive (UTC, YYYY-MM-DD; default: now)",
    )
    parser.add_argument(
        "--lookback-days",
        type=int,
        default=None,
        help="Window length when --start is omitted (default: from config)",
    )

    # Output options
    parser.add_argument("--format", choices=["html", "text"], default="text")
    parser.add_argument("--group-by-topic", action="store_true", help="One section per topic")
    parser.add_argument("--output", default=None, help="Write to this file instead of stdout")

    return parser.parse_args(argv)
