#!/usr/bin/env python3
"""Fetch earthquakes for the configured region and print them.

Goes through the same data service the API uses, so the cache, the date
repair and the historical fallback all apply.

Usage:
    # Last day, magnitude 2 and above (defaults)
    python scripts/fetch_earthquakes.py

    # Last week, magnitude 4 and above
    python scripts/fetch_earthquakes.py --time-range week --min-magnitude 4

    # Historical search
    python scripts/fetch_earthquakes.py --historical --start 2024-01-01 --end 2024-03-31

    # Raw GeoJSON, bypassing the cache
    python scripts/fetch_earthquakes.py --json --no-cache

Environment:
    CONFIG_PATH: Path to config file (default: config/config.yaml)
    LOG_LEVEL: Logging level (default: WARNING)
"""

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from datetime import date, datetime, timezone

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from quakeview.core.config import Config
from quakeview.core.errors import FetchError
from quakeview.core.filters import (
    DateRange,
    Filters,
    Mode,
    TimeRange,
    default_filters,
    repair_filters,
    utc_today,
)
from quakeview.core.formatter import (
    format_error_message,
    format_event_summary,
    format_load_summary,
)
from quakeview.data_service import DataService
from quakeview.shell.config_loader import load_config_from_env

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "WARNING").upper(), logging.WARNING),
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def build_filters(args: argparse.Namespace, today: date, config: Config) -> Filters:
    """Build repaired filters from command-line arguments."""
    defaults = default_filters(
        today,
        min_magnitude=config.default_min_magnitude,
        lookback_days=config.default_lookback_days,
    )

    filters = Filters(
        mode=Mode.HISTORICAL if args.historical else Mode.REALTIME,
        time_range=TimeRange(args.time_range),
        min_magnitude=(
            defaults.min_magnitude if args.min_magnitude is None else args.min_magnitude
        ),
        date_range=DateRange(
            start=args.start or defaults.date_range.start,
            end=args.end or defaults.date_range.end,
        ),
    )

    return repair_filters(filters, today)


def main():
    parser = argparse.ArgumentParser(
        description="Fetch earthquakes for the configured region",
    )
    parser.add_argument(
        "--time-range",
        choices=[t.value for t in TimeRange],
        default=TimeRange.DAY.value,
        help="Real-time feed window (default: day)",
    )
    parser.add_argument(
        "--historical",
        action="store_true",
        help="Search a date range instead of the real-time feed",
    )
    parser.add_argument(
        "--start",
        type=parse_date,
        help="First day of the historical search (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--end",
        type=parse_date,
        help="Last day of the historical search (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--min-magnitude",
        type=float,
        help="Minimum magnitude (default from config)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config file",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Bypass the cache for this run",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the GeoJSON document instead of a listing",
    )

    args = parser.parse_args()

    config = load_config_from_env(args.config)
    if args.no_cache:
        config = replace(config, cache=replace(config.cache, backend="none"))

    today = utc_today(datetime.now(timezone.utc))
    filters = build_filters(args, today, config)

    service = DataService(config)

    try:
        collection = service.load(filters)
    except FetchError as e:
        print(format_error_message(e, is_historical=filters.is_historical), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(collection.to_geojson(), indent=2))
        return 0

    print(format_load_summary(collection, filters, config.region.name))
    for event in sorted(collection.events, key=lambda e: e.time_ms, reverse=True):
        print(f"  {format_event_summary(event)}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
