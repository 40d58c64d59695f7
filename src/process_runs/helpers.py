"""Helper functions for the process_runs CLI."""

from __future__ import annotations

import argparse

from common.cli_helpers import parse_csv_list


def parse_process_runs_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for news-digest."""

    parser = argparse.ArgumentParser(prog="news-digest")
    parser.add_argument(
        "--config",
        default=None,
        help="Config name under common/configs (default: $CONFIG_ENV or 'default')",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Schema and catalog
    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("seed", help="Seed default topics and sources")

    # Run submission
    submit = subparsers.add_parser("submit", help="Queue a discovery run")
    submit.add_argument(
        "--sources",
        type=parse_csv_list,
        default=None,
        help="Comma-separated source ids (default: all enabled sources)",
    )
    submit.add_argument("--triggered-by", default="cli")

    reanalyze = subparsers.add_parser("reanalyze", help="Queue a reanalysis run for existing items")
    reanalyze.add_argument("item_ids", nargs="+", help="Item ids to reanalyze")
    reanalyze.add_argument("--triggered-by", default="cli")

    cancel = subparsers.add_parser("cancel", help="Cancel a queued or running run")
    cancel.add_argument("run_id")

    # Processing
    work = subparsers.add_parser("work", help="Poll for queued runs and process them")
    work.add_argument("--once", action="store_true", help="Process at most one queued run and exit")
    work.add_argument("--worker-id", default=None)
    work.add_argument(
        "--offline",
        action="store_true",
        help="Use the offline classification client regardless of config",
    )

    # Observation
    events = subparsers.add_parser("events", help="Print a run's events as JSON lines")
    events.add_argument("run_id")
    events.add_argument("--after", type=int, default=None, help="Only events with id greater than this cursor")
    events.add_argument("--follow", action="store_true", help="Stream until the run finishes")

    runs = subparsers.add_parser("runs", help="List recent runs")
    runs.add_argument("--limit", type=int, default=20)

    return parser.parse_args(argv)
