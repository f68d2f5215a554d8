#!/usr/bin/env python3
"""Event Finder: command-line runner

Searches every configured provider, deduplicates, ranks, and prints one
page of results.

Usage:
    python -m eventfinder.main --location "New York"
    python -m eventfinder.main --lat 40.73 --lng -73.99 --radius 10 --sort distance
    python -m eventfinder.main --keyword jazz --json
"""

import argparse
import json
import logging
import os
import sys
from collections import defaultdict
from typing import List, Optional

from .aggregator import AggregatorService
from .config import DEFAULT_PAGE_SIZE, DEFAULT_RADIUS_MILES, Settings
from .errors import AggregationError, ConfigurationError
from .models import SORT_KEYS, AggregatedResult, Coordinates, SearchRequest

logger = logging.getLogger("eventfinder")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="eventfinder", description="Search local events across providers.")
    parser.add_argument("--keyword", "-k")
    parser.add_argument("--location", "-l", help="City or address text")
    parser.add_argument("--lat", type=float)
    parser.add_argument("--lng", type=float)
    parser.add_argument("--radius", type=float, default=DEFAULT_RADIUS_MILES, help="Miles")
    parser.add_argument("--start", dest="start_date_time", help="ISO start date/time")
    parser.add_argument("--end", dest="end_date_time", help="ISO end date/time")
    parser.add_argument("--category", "-c", action="append", default=[], dest="categories")
    parser.add_argument("--page", type=int, default=0)
    parser.add_argument("--size", type=int, default=DEFAULT_PAGE_SIZE)
    parser.add_argument("--sort", choices=SORT_KEYS)
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    return parser


def request_from_args(args: argparse.Namespace) -> SearchRequest:
    """Raises ValueError on inconsistent or out-of-range arguments."""
    coordinates = None
    if args.lat is not None or args.lng is not None:
        coordinates = Coordinates.parse(args.lat, args.lng)
        if coordinates is None:
            raise ValueError("--lat and --lng must both be given and valid")
    return SearchRequest(
        keyword=args.keyword,
        location=args.location,
        coordinates=coordinates,
        radius=args.radius,
        start_date_time=args.start_date_time,
        end_date_time=args.end_date_time,
        categories=tuple(args.categories),
        page=args.page,
        size=args.size,
        sort=args.sort,
    )


def _print_summary(result: AggregatedResult) -> None:
    """Print a text summary of one result page, grouped by date."""
    by_date = defaultdict(list)
    for e in result.events:
        by_date[e.date].append(e)

    print(f"\n{'='*60}")
    print(f"EVENTS: page {result.page + 1} of {max(result.total_pages, 1)} "
          f"({result.total_count} total)")
    print(f"{'='*60}")

    for d, events in by_date.items():
        print(f"\n━━━ {d.upper()} ━━━")
        for e in events:
            print(f"  {e.display_line}")

    counts = ", ".join(f"{name}: {n}" for name, n in result.source_counts.items())
    print(f"\n  Sources: {counts or 'none'}")
    print(f"  {result.performance.api_calls} API call(s), {result.performance.total_time:.0f}ms")
    print(f"{'='*60}\n")


def main(argv: Optional[List[str]] = None, service: Optional[AggregatorService] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("EVENTFINDER_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        request = request_from_args(args)
    except ValueError as e:
        logger.error(f"Invalid arguments: {e}")
        return 2

    service = service or AggregatorService(Settings.from_env())
    try:
        result = service.search_events_sync(request)
    except ConfigurationError as e:
        logger.error(str(e))
        return 2
    except AggregationError as e:
        logger.error(str(e))
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_summary(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
