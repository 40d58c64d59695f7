"""CLI for building a digest from analyzed articles."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from build_digest.build_digest import build_digest
from build_digest.helpers import parse_build_digest_args, resolve_window
from common.cli_helpers import setup_logging
from common.config import load_config
from digest_store.connection import Database

load_dotenv()

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    args = parse_build_digest_args(argv)
    setup_logging(args.verbose)

    config = load_config(args.config)
    lookback_days = args.lookback_days if args.lookback_days is not None else config.digest.lookback_days

    try:
        start, end = resolve_window(args.start, args.end, lookback_days)
    except ValueError as e:
        logger.error("%s", e)
        return 1

    db = Database.from_config(config.database)
    try:
        digest = build_digest(
            db,
            start,
            end,
            group_topics=args.group_by_topic or config.digest.group_by_topic,
        )
    finally:
        db.dispose()

    if digest.stats.total_articles == 0:
        logger.warning("No relevant articles between %s", digest.stats.date_range)

    body = digest.html if args.format == "html" else digest.text

    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")
        logger.info(
            "Saved %s digest (%d articles, %d topics) to %s",
            args.format,
            digest.stats.total_articles,
            digest.stats.topic_count,
            path,
        )
    else:
        sys.stdout.write(body)

    return 0


if __name__ == "__main__":
    sys.exit(main())
