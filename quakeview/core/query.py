"""Query building - Pure functions.

Decides which upstream request answers a set of filters: one of the
global real-time summary feeds, or a bounded historical search. No network
or cache access happens here; the current date is passed in.
"""

from dataclasses import dataclass
from datetime import date

from quakeview.core.filters import (
    DateRange,
    Filters,
    Mode,
    TimeRange,
    repair_filters,
)
from quakeview.core.geo import BoundingBox


# Maximum number of events a historical search returns
HISTORICAL_LIMIT = 500

# USGS "orderby=time" returns newest first
HISTORICAL_ORDER_BY = "time"


@dataclass(frozen=True)
class RealTimeQuery:
    """Request for one of the global summary feeds.

    The feeds are neither magnitude- nor region-filtered upstream, so the
    bounds and minimum magnitude are applied after fetching.

    Attributes:
        time_range: Which feed (hour, day or week)
        min_magnitude: Minimum magnitude applied after fetching
        bounds: Region applied after fetching
    """
    time_range: TimeRange
    min_magnitude: float
    bounds: BoundingBox

    mode = Mode.REALTIME

    @property
    def filters(self) -> Filters:
        """The repaired filters this query answers."""
        return Filters(
            mode=Mode.REALTIME,
            time_range=self.time_range,
            min_magnitude=self.min_magnitude,
        )


@dataclass(frozen=True)
class HistoricalQuery:
    """Bounded search over a date range, filtered upstream.

    Attributes:
        start_date: First day searched
        end_date: Last day searched (never after today)
        min_magnitude: Minimum magnitude
        bounds: Region searched
        limit: Maximum number of results
        order_by: Upstream ordering
    """
    start_date: date
    end_date: date
    min_magnitude: float
    bounds: BoundingBox
    limit: int = HISTORICAL_LIMIT
    order_by: str = HISTORICAL_ORDER_BY

    mode = Mode.HISTORICAL

    @property
    def filters(self) -> Filters:
        """The repaired filters this query answers."""
        return Filters(
            mode=Mode.HISTORICAL,
            min_magnitude=self.min_magnitude,
            date_range=DateRange(start=self.start_date, end=self.end_date),
        )


ResolvedQuery = RealTimeQuery | HistoricalQuery


def build_query(
    filters: Filters,
    bounds: BoundingBox,
    today: date,
    limit: int = HISTORICAL_LIMIT,
) -> ResolvedQuery:
    """Resolve filters into an upstream query.

    Pure function. Filters are repaired again here with the same rule the
    presentation layer uses, so a future end date never reaches upstream.

    Args:
        filters: User filters
        bounds: Region of interest
        today: Current calendar date
        limit: Maximum results for historical searches

    Returns:
        RealTimeQuery or HistoricalQuery
    """
    filters = repair_filters(filters, today)

    if filters.mode == Mode.HISTORICAL:
        return HistoricalQuery(
            start_date=filters.date_range.start,
            end_date=filters.date_range.end,
            min_magnitude=filters.min_magnitude,
            bounds=bounds,
            limit=limit,
        )

    return RealTimeQuery(
        time_range=filters.time_range,
        min_magnitude=filters.min_magnitude,
        bounds=bounds,
    )


def fallback_query(query: ResolvedQuery) -> RealTimeQuery:
    """Build the real-time substitute for a failed historical query.

    Pure function. The date range is dropped; magnitude and bounds are kept.
    """
    return RealTimeQuery(
        time_range=TimeRange.WEEK,
        min_magnitude=query.min_magnitude,
        bounds=query.bounds,
    )
