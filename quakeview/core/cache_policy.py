"""Cache keys, expiry policy and entry format - Pure functions.

The actual storage is handled by the imperative shell (cache stores).
This module only decides what a key looks like, how long an entry stays
readable and how entries are serialised.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from quakeview.core.earthquake import EarthquakeCollection, collection_from_geojson
from quakeview.core.filters import Filters, Mode
from quakeview.core.geo import Region


# Bump when the stored document format changes; older entries become misses
CACHE_SCHEMA_VERSION = 1

KEY_PREFIX = "earthquake_data"


class CacheCategory(str, Enum):
    """Expiry class of a cache entry."""
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    HISTORICAL = "historical"


MINUTE_MS = 60 * 1000

EXPIRY_MS: dict[CacheCategory, int] = {
    CacheCategory.HOUR: 5 * MINUTE_MS,
    CacheCategory.DAY: 15 * MINUTE_MS,
    CacheCategory.WEEK: 60 * MINUTE_MS,
    CacheCategory.HISTORICAL: 24 * 60 * MINUTE_MS,
}

DEFAULT_EXPIRY_MS = EXPIRY_MS[CacheCategory.DAY]


@dataclass(frozen=True)
class CacheEntry:
    """One stored collection.

    Attributes:
        key: Cache key the entry was written under
        category: Expiry class used when it was written
        stored_at_ms: Write time in epoch milliseconds
        payload: The cached collection
        schema_version: Document format version
    """
    key: str
    category: CacheCategory
    stored_at_ms: int
    payload: EarthquakeCollection
    schema_version: int = CACHE_SCHEMA_VERSION


@dataclass(frozen=True)
class CacheDiagnostic:
    """A cache failure that was absorbed instead of raised.

    Attributes:
        event: Short event name (e.g. "read_failed")
        key: Cache key involved
        error: Description of the underlying failure
    """
    event: str
    key: str
    error: str


def expiry_ms(category: Any) -> int:
    """Return the expiry duration of a category.

    Pure function. Unrecognised categories use the day duration.
    """
    try:
        category = CacheCategory(category)
    except ValueError:
        return DEFAULT_EXPIRY_MS
    return EXPIRY_MS.get(category, DEFAULT_EXPIRY_MS)


def is_fresh(stored_at_ms: int, now_ms: int, category: Any) -> bool:
    """Check if an entry written at stored_at_ms is still readable.

    Pure function.
    """
    return now_ms - stored_at_ms < expiry_ms(category)


def cache_category(filters: Filters) -> CacheCategory:
    """Return the expiry class for a set of filters.

    Pure function.
    """
    if filters.mode == Mode.HISTORICAL:
        return CacheCategory.HISTORICAL
    return CacheCategory(filters.time_range.value)


def format_magnitude(magnitude: float) -> str:
    """Render a magnitude canonically (2, 2.0 and 2.00 are the same).

    Pure function. The shortest round-tripping form is used, so distinct
    magnitudes never render alike.
    """
    # + 0.0 folds -0.0 into 0.0
    text = repr(float(magnitude) + 0.0)
    if text.endswith(".0"):
        text = text[:-2]
    return text


def region_key(region: Region) -> str:
    """Identify a region by its slug and its bounds.

    Pure function. A short digest of the bounds is appended so that moving
    the bounds under an unchanged slug never reuses old entries.

    Returns:
        e.g. "iran-1a2b3c4d"
    """
    bounds = region.bounds
    text = ",".join(repr(float(v)) for v in (
        bounds.min_latitude,
        bounds.max_latitude,
        bounds.min_longitude,
        bounds.max_longitude,
    ))
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]
    return f"{region.slug}-{digest}"


def cache_key(filters: Filters, region_slug: str = "") -> str:
    """Build the deterministic cache key for a set of filters.

    Pure function. Only fields meaningful for the filter mode take part:
    the time range for real-time, the date range for historical.

    Args:
        filters: Repaired filters
        region_slug: Region identifier (see region_key), so regions never
            share entries

    Returns:
        Cache key string
    """
    if filters.mode == Mode.HISTORICAL:
        span = (
            f"{filters.date_range.start.isoformat()}_"
            f"{filters.date_range.end.isoformat()}"
        )
    else:
        span = filters.time_range.value

    parts = [
        KEY_PREFIX,
        filters.mode.value,
        span,
        f"m{format_magnitude(filters.min_magnitude)}",
    ]
    if region_slug:
        parts.append(region_slug)

    return "_".join(parts)


def entry_to_document(entry: CacheEntry) -> dict[str, Any]:
    """Serialise a cache entry to a JSON-compatible document.

    Pure function.
    """
    return {
        "schema_version": entry.schema_version,
        "key": entry.key,
        "category": entry.category.value,
        "stored_at_ms": entry.stored_at_ms,
        "payload": entry.payload.to_geojson(),
    }


class SchemaMismatch(ValueError):
    """A stored document was written with another schema version."""


def entry_from_document(document: Mapping[str, Any]) -> CacheEntry:
    """Rebuild a cache entry from its stored document.

    Pure function.

    Raises:
        SchemaMismatch: If the document has another schema version
        ValueError, KeyError, TypeError, DecodeError: If it is malformed
    """
    version = document.get("schema_version")
    if version != CACHE_SCHEMA_VERSION:
        raise SchemaMismatch(
            f"schema version {version!r} != {CACHE_SCHEMA_VERSION}"
        )

    try:
        category = CacheCategory(document.get("category"))
    except ValueError:
        category = CacheCategory.DAY

    return CacheEntry(
        key=str(document["key"]),
        category=category,
        stored_at_ms=int(document["stored_at_ms"]),
        payload=collection_from_geojson(document["payload"]),
        schema_version=version,
    )
