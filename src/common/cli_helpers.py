"""Common CLI helper utilities."""

from __future__ import annotations

import argparse
import logging
from datetime import date, datetime, timedelta, timezone


def setup_logging(verbose: bool = False) -> None:
    """Configure standard logging format for CLI tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def parse_date(value: str, field_name: str = "date") -> date:
    """Parse a date string for argparse arguments.

    Args:
        value: Date string in YYYY-MM-DD format.
        field_name: Name of the field for error messages.

    Returns:
        Parsed date object.

    Raises:
        argparse.ArgumentTypeError: If the value is not a valid date.
    """
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{field_name} must be YYYY-MM-DD") from exc


def parse_csv_list(value: str | None) -> list[str] | None:
    """Split a comma-separated argument into a list, or None when empty."""
    if not value:
        return None
    parts = [part.strip() for part in value.split(",") if part.strip()]
    return parts or None


def date_to_range(d: date) -> tuple[datetime, datetime]:
    """Convert a date to a UTC datetime range covering the full day.

    Args:
        d: The date to convert.

    Returns:
        Tuple of (start, end) datetimes where start is midnight and end is midnight the next day.
    """
    start = datetime.combine(d, datetime.min.time(), tzinfo=timezone.utc)
    end = start + timedelta(days=1)
    return start, end
