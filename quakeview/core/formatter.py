"""Message formatting - Pure functions.

This module turns collections and error kinds into the short strings the
presentation layer shows. Nothing in the data path depends on these.
All functions are pure with no side effects.
"""

from quakeview.core.earthquake import EarthquakeCollection, SeismicEvent
from quakeview.core.errors import ErrorKind, FetchError, HttpError
from quakeview.core.filters import Filters, Mode
from quakeview.core.cache_policy import format_magnitude


def format_event_summary(event: SeismicEvent) -> str:
    """Format a one-line summary of an event.

    Pure function.

    Args:
        event: Event to summarize

    Returns:
        One-line summary string
    """
    time_str = event.time.strftime("%Y-%m-%d %H:%M:%S UTC")
    place = event.place or "Unknown location"
    line = (
        f"M{event.magnitude:.1f} - {place} "
        f"at {time_str} (depth: {event.depth_km:.1f}km)"
    )
    if event.tsunami:
        line += " [tsunami]"
    return line


def describe_filters(filters: Filters) -> str:
    """Describe the window a set of filters covers.

    Pure function.

    Returns:
        e.g. "last day" or "2024-01-01 to 2024-03-31"
    """
    if filters.mode == Mode.HISTORICAL:
        return (
            f"{filters.date_range.start.isoformat()} to "
            f"{filters.date_range.end.isoformat()}"
        )
    return f"last {filters.time_range.value}"


def format_load_summary(
    collection: EarthquakeCollection,
    filters: Filters,
    region_name: str,
) -> str:
    """Summarise a loaded collection for a status message.

    Pure function.

    Args:
        collection: Loaded collection
        filters: Filters the collection was loaded for
        region_name: Display name of the region

    Returns:
        Summary string
    """
    return (
        f"Showing {collection.metadata.count} earthquakes in {region_name} "
        f"({describe_filters(filters)}) with magnitude "
        f"≥ {format_magnitude(filters.min_magnitude)}"
    )


_ERROR_MESSAGES = {
    ErrorKind.TIMEOUT: (
        "Request timed out. The USGS server might be experiencing high load."
    ),
    ErrorKind.NETWORK: (
        "Network error. Please check your internet connection and try again."
    ),
    ErrorKind.DECODE: "Invalid data received from the server.",
    ErrorKind.CACHE_UNAVAILABLE: "Local cache is unavailable.",
}


def format_error_message(error: FetchError, is_historical: bool = False) -> str:
    """Map a classified error to a short user-facing message.

    Pure function.

    Args:
        error: The classified error
        is_historical: Whether the failed load was a historical search

    Returns:
        Message suitable for a toast or error banner
    """
    if isinstance(error, HttpError):
        if error.status == 400 and is_historical:
            return (
                "Invalid date range. Please ensure your dates are valid "
                "and not in the future."
            )
        if error.status == 400:
            return "API parameter error. Please try again with different settings."
        if error.is_rate_limited:
            return "Too many requests. Please wait a moment and try again."
        return f"Server responded with {error.status}. Please try again later."

    return _ERROR_MESSAGES.get(
        error.kind,
        "Failed to load earthquake data. Please try again.",
    )
