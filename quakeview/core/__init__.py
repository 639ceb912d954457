"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Filter repair (future dates, inverted ranges)
- Query building (real-time feed vs. historical search)
- Earthquake data parsing and normalization
- Cache keys and expiry policy
- Message formatting

All functions here are deterministic and have no I/O.
"""

from quakeview.core.cache_policy import CacheCategory, cache_category, cache_key, is_fresh
from quakeview.core.earthquake import EarthquakeCollection, SeismicEvent, parse_event
from quakeview.core.errors import (
    DecodeError,
    ErrorKind,
    FetchError,
    FetchTimeoutError,
    HttpError,
    NetworkError,
)
from quakeview.core.filters import DateRange, Filters, Mode, TimeRange, repair_filters
from quakeview.core.geo import BoundingBox, Region
from quakeview.core.normalize import normalize
from quakeview.core.query import HistoricalQuery, RealTimeQuery, build_query, fallback_query

__all__ = [
    # Filters
    "DateRange",
    "Filters",
    "Mode",
    "TimeRange",
    "repair_filters",
    # Geo
    "BoundingBox",
    "Region",
    # Earthquake
    "EarthquakeCollection",
    "SeismicEvent",
    "parse_event",
    # Query
    "HistoricalQuery",
    "RealTimeQuery",
    "build_query",
    "fallback_query",
    # Normalize
    "normalize",
    # Cache policy
    "CacheCategory",
    "cache_category",
    "cache_key",
    "is_fresh",
    # Errors
    "DecodeError",
    "ErrorKind",
    "FetchError",
    "FetchTimeoutError",
    "HttpError",
    "NetworkError",
]
