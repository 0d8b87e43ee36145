#!/usr/bin/env python3
"""CLI to run linkit-curator pipeline stages."""

import argparse
import json
import logging
import sys
from datetime import date

from db.database import init_db
from pipeline.daily import run_daily
from pipeline.errors import NoArticlesForWeek
from pipeline.ranking import rank_day
from pipeline.scheduler import run_scheduled, run_tracked
from pipeline.weekly import aggregate_week

logger = logging.getLogger(__name__)


def _print(result: dict) -> None:
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


def main() -> None:
    parser = argparse.ArgumentParser(description="Run linkit-curator pipeline stages")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    daily = sub.add_parser("daily", help="Fetch, score, store and rank today's articles")
    daily.add_argument("--source", action="append", dest="sources", help="Feed URL (repeatable, default: configured feeds)")
    daily.add_argument("--max-per-source", type=int, default=None, help="Articles kept per source")
    daily.add_argument("--no-ai", action="store_true", help="Use keyword scoring only")
    daily.add_argument("--force-refresh", action="store_true", help="Update articles already stored")

    rank = sub.add_parser("rank", help="Recompute daily ranks for a day")
    rank.add_argument("fetch_date", type=date.fromisoformat, help="YYYY-MM-DD")
    rank.add_argument("--source", default=None, help="Only rank this source name")

    weekly = sub.add_parser("weekly", help="Generate the newsletter for an ISO week")
    weekly.add_argument("--week", type=int, default=None, help="ISO week number (default: current)")
    weekly.add_argument("--year", type=int, default=None, help="ISO year (default: current)")

    sub.add_parser("cron", help="Run whichever stage is due right now")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    init_db()

    if args.command == "daily":
        kwargs = {
            "sources": args.sources,
            "enable_ai_scoring": False if args.no_ai else None,
            "force_refresh": args.force_refresh,
        }
        if args.max_per_source:
            kwargs["max_articles_per_source"] = args.max_per_source
        _, result = run_tracked("daily", run_daily, **kwargs)
        _print(result["summary"])
    elif args.command == "rank":
        ranked = rank_day(args.fetch_date, args.source)
        logger.info("Done. Ranked %d articles for %s", ranked, args.fetch_date)
    elif args.command == "weekly":
        if (args.week is None) != (args.year is None):
            parser.error("--week and --year must be given together")
        try:
            _, result = run_tracked("weekly", aggregate_week, week_number=args.week, year=args.year)
        except NoArticlesForWeek as e:
            logger.error("%s", e)
            sys.exit(1)
        except ValueError as e:
            parser.error(str(e))
        _print(result.get("summary") or result["entry"])
    else:
        _print(run_scheduled())


if __name__ == "__main__":
    main()
