"""User filter models and repair rules - Pure functions.

Filters describe what the user asked to see. They are never rejected:
out-of-range values (future end dates, inverted ranges, magnitudes outside
the scale) are repaired. The same repair function is used at the
presentation boundary and inside the query builder so both produce
identical results.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum


MIN_MAGNITUDE = 0.0
MAX_MAGNITUDE = 9.0

DEFAULT_MIN_MAGNITUDE = 2.0
DEFAULT_LOOKBACK_DAYS = 90


class Mode(str, Enum):
    """Which upstream source a request targets."""
    REALTIME = "realtime"
    HISTORICAL = "historical"


class TimeRange(str, Enum):
    """Look-back window of the real-time summary feeds."""
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range for historical queries.

    Attributes:
        start: First day of the range
        end: Last day of the range
    """
    start: date
    end: date


def _default_date_range() -> DateRange:
    today = utc_today()
    return DateRange(start=today - timedelta(days=DEFAULT_LOOKBACK_DAYS), end=today)


@dataclass(frozen=True)
class Filters:
    """User intent for a single load.

    Attributes:
        mode: Real-time feed or historical search
        time_range: Feed window, only meaningful in real-time mode
        min_magnitude: Minimum magnitude, domain [0, 9]
        date_range: Search window, only meaningful in historical mode
    """
    mode: Mode = Mode.REALTIME
    time_range: TimeRange = TimeRange.DAY
    min_magnitude: float = DEFAULT_MIN_MAGNITUDE
    date_range: DateRange = field(default_factory=_default_date_range)

    @property
    def is_historical(self) -> bool:
        return self.mode == Mode.HISTORICAL


def utc_today(now: datetime | None = None) -> date:
    """Return the current UTC calendar date.

    Args:
        now: Reference time (defaults to the current time)

    Returns:
        The date of `now` in UTC
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).date()


def clamp_magnitude(magnitude: float) -> float:
    """Clamp a magnitude into the supported [0, 9] domain.

    Pure function. NaN is not a magnitude and becomes the default.
    """
    magnitude = float(magnitude)
    if math.isnan(magnitude):
        return DEFAULT_MIN_MAGNITUDE
    return min(max(magnitude, MIN_MAGNITUDE), MAX_MAGNITUDE)


def clamp_date_range(date_range: DateRange, today: date) -> DateRange:
    """Repair a date range so it is non-empty and never in the future.

    Pure function. The end date is clamped to today first, then a start date
    later than the (clamped) end is pulled back to the end. Applying this
    twice is a no-op.

    Args:
        date_range: Range as entered by the user
        today: Current calendar date

    Returns:
        Repaired date range
    """
    end = min(date_range.end, today)
    start = min(date_range.start, end)

    if start == date_range.start and end == date_range.end:
        return date_range

    return DateRange(start=start, end=end)


def repair_filters(filters: Filters, today: date) -> Filters:
    """Repair every field of a Filters value.

    Pure function. Used both when the user changes filters and again when
    the query is built.

    Args:
        filters: Filters as entered by the user
        today: Current calendar date

    Returns:
        Filters with a valid date range and magnitude
    """
    date_range = clamp_date_range(filters.date_range, today)
    magnitude = clamp_magnitude(filters.min_magnitude)

    if date_range is filters.date_range and magnitude == filters.min_magnitude:
        return filters

    return replace(filters, date_range=date_range, min_magnitude=magnitude)


def default_filters(
    today: date,
    min_magnitude: float = DEFAULT_MIN_MAGNITUDE,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
) -> Filters:
    """Filters shown on first load.

    Real-time feed for the last day at magnitude 2 and above, with the
    historical range preset to the previous 90 days.

    Args:
        today: Current calendar date
        min_magnitude: Initial magnitude filter
        lookback_days: Length of the preset historical range

    Returns:
        Default Filters
    """
    return Filters(
        mode=Mode.REALTIME,
        time_range=TimeRange.DAY,
        min_magnitude=min_magnitude,
        date_range=DateRange(
            start=today - timedelta(days=lookback_days),
            end=today,
        ),
    )
