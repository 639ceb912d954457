"""quakeview - earthquake data acquisition and caching for a map viewer.

The data service is the single entry point for presentation layers:

    from quakeview import DataService, Filters

    collection = DataService().load(Filters())
"""

from quakeview.core.earthquake import EarthquakeCollection, SeismicEvent
from quakeview.core.filters import DateRange, Filters, Mode, TimeRange
from quakeview.data_service import DataService

__all__ = [
    "DataService",
    "DateRange",
    "EarthquakeCollection",
    "Filters",
    "Mode",
    "SeismicEvent",
    "TimeRange",
]
