"""Result normalization - Pure functions.

Turns a raw USGS payload into an EarthquakeCollection. Real-time feeds
are global and unfiltered, so their events are restricted here to the
region and minimum magnitude of the query. Historical searches are
already filtered upstream and pass through unchanged.
"""

from typing import Any

from quakeview.core.earthquake import (
    EarthquakeCollection,
    SeismicEvent,
    get_features,
    make_collection,
    parse_events,
)
from quakeview.core.filters import Mode
from quakeview.core.geo import is_within_bounds
from quakeview.core.query import ResolvedQuery


def matches_query(event: SeismicEvent, query: ResolvedQuery) -> bool:
    """Check if an event is inside the query region and magnitude floor.

    Pure function.
    """
    return (
        is_within_bounds(event.longitude, event.latitude, query.bounds)
        and event.magnitude >= query.min_magnitude
    )


def normalize(
    raw: Any,
    query: ResolvedQuery,
    source_url: str = "",
) -> EarthquakeCollection:
    """Normalize a raw payload for the query that produced it.

    Pure function. Malformed records are dropped; the collection count is
    always recomputed from the events kept.

    Args:
        raw: Decoded JSON payload from upstream
        query: The query the payload answers
        source_url: Requested URL, used when upstream metadata has none

    Returns:
        EarthquakeCollection

    Raises:
        DecodeError: If the payload has no features list
    """
    features = get_features(raw)
    events = parse_events(features)

    if query.mode == Mode.REALTIME:
        events = [e for e in events if matches_query(e, query)]

    return make_collection(events, raw, default_url=source_url)
