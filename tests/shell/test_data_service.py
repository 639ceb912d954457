"""Tests for the DataService module.

Tests the coordination between functional core and imperative shell.
Uses mocks for shell components to test orchestration logic.
"""

from datetime import date
from unittest.mock import Mock

import pytest
import responses

from quakeview.core.cache_policy import CacheCategory, region_key
from quakeview.core.config import USGS_FEED_BASE, USGS_QUERY_BASE, Config
from quakeview.core.earthquake import CollectionMetadata, EarthquakeCollection
from quakeview.core.errors import HttpError
from quakeview.core.filters import DateRange, Filters, Mode, TimeRange
from quakeview.core.geo import DEFAULT_REGION, IRAN_BOUNDS
from quakeview.core.query import HistoricalQuery, RealTimeQuery, fallback_query
from quakeview.data_service import DataService
from quakeview.shell.cache_store import MemoryCacheStore
from quakeview.shell.usgs_client import FetchResult, USGSClient


TODAY = date(2024, 6, 15)
IRAN = region_key(DEFAULT_REGION)


def make_feature(event_id, mag, lon, lat):
    return {
        "type": "Feature",
        "id": event_id,
        "properties": {"mag": mag, "place": f"near {event_id}", "time": 1718400000000},
        "geometry": {"type": "Point", "coordinates": [lon, lat, 10.0]},
    }


def make_payload(features):
    return {
        "type": "FeatureCollection",
        "metadata": {"generated": 1718400100000, "count": len(features)},
        "features": features,
    }


PAYLOAD = make_payload([
    make_feature("tehran", 4.1, 51.4, 35.7),
    make_feature("weak", 1.2, 56.3, 27.2),
    make_feature("tokyo", 6.0, 139.7, 35.7),
])


@pytest.fixture
def mock_client():
    return Mock(spec=USGSClient)


@pytest.fixture
def mock_cache():
    cache = Mock()
    cache.get.return_value = None
    return cache


@pytest.fixture
def service(mock_client, mock_cache):
    return DataService(
        config=Config(),
        usgs_client=mock_client,
        cache_store=mock_cache,
        today=lambda: TODAY,
    )


def serve(mock_client, payload=PAYLOAD, query=None):
    """Make the mock client answer with payload for its own query."""
    def execute(q, lookup_fallback=None):
        return FetchResult(payload=payload, query=query or q, url="https://example.com")
    mock_client.execute.side_effect = execute


class TestDataServiceLoad:
    """Tests for DataService.load()."""

    def test_realtime_day_end_to_end(self, service, mock_client, mock_cache):
        serve(mock_client)

        collection = service.load(Filters(Mode.REALTIME, TimeRange.DAY, 2.0))

        mock_client.execute.assert_called_once()
        assert mock_client.execute.call_args[0][0] == RealTimeQuery(TimeRange.DAY, 2.0, IRAN_BOUNDS)
        assert [e.id for e in collection.events] == ["tehran"]
        assert collection.metadata.count == 1
        mock_cache.put.assert_called_once_with(
            f"earthquake_data_realtime_day_m2_{IRAN}",
            CacheCategory.DAY,
            collection,
        )

    def test_cache_hit_skips_fetch(self, service, mock_client, mock_cache):
        cached = EarthquakeCollection(
            events=(),
            metadata=CollectionMetadata(generated_ms=0, url="", count=0),
        )
        mock_cache.get.return_value = cached

        result = service.load(Filters(Mode.REALTIME, TimeRange.HOUR, 2.0))

        assert result is cached
        mock_cache.get.assert_called_once_with(
            f"earthquake_data_realtime_hour_m2_{IRAN}",
            CacheCategory.HOUR,
        )
        mock_client.execute.assert_not_called()
        mock_cache.put.assert_not_called()

    def test_historical_filters_repaired_before_keying(self, service, mock_client, mock_cache):
        serve(mock_client)
        filters = Filters(
            mode=Mode.HISTORICAL,
            min_magnitude=12,
            date_range=DateRange(date(2024, 6, 1), date(2024, 12, 31)),
        )

        service.load(filters)

        query = mock_client.execute.call_args[0][0]
        assert query == HistoricalQuery(
            start_date=date(2024, 6, 1),
            end_date=TODAY,
            min_magnitude=9.0,
            bounds=IRAN_BOUNDS,
        )
        mock_cache.get.assert_called_once_with(
            f"earthquake_data_historical_2024-06-01_2024-06-15_m9_{IRAN}",
            CacheCategory.HISTORICAL,
        )

    def test_historical_keeps_all_records(self, service, mock_client):
        serve(mock_client)
        filters = Filters(
            mode=Mode.HISTORICAL,
            date_range=DateRange(date(2024, 1, 1), date(2024, 3, 1)),
        )

        collection = service.load(filters)

        assert len(collection.events) == 3

    def test_failure_is_raised_and_not_cached(self, service, mock_client, mock_cache):
        mock_client.execute.side_effect = HttpError(503)

        with pytest.raises(HttpError):
            service.load(Filters())

        mock_cache.put.assert_not_called()

    def test_fallback_cached_under_served_key(self, service, mock_client, mock_cache):
        historical = Filters(
            mode=Mode.HISTORICAL,
            min_magnitude=3.0,
            date_range=DateRange(date(2024, 1, 1), date(2024, 3, 1)),
        )
        fallback = fallback_query(HistoricalQuery(
            date(2024, 1, 1), date(2024, 3, 1), 3.0, IRAN_BOUNDS,
        ))
        serve(mock_client, query=fallback)

        collection = service.load(historical)

        assert [e.id for e in collection.events] == ["tehran"]
        mock_cache.put.assert_called_once_with(
            f"earthquake_data_realtime_week_m3_{IRAN}",
            CacheCategory.WEEK,
            collection,
        )

    def test_limit_from_config(self, mock_client, mock_cache):
        serve(mock_client)
        service = DataService(
            config=Config(historical_limit=50),
            usgs_client=mock_client,
            cache_store=mock_cache,
            today=lambda: TODAY,
        )

        service.load(Filters(mode=Mode.HISTORICAL, date_range=DateRange(TODAY, TODAY)))

        assert mock_client.execute.call_args[0][0].limit == 50

    def test_cached_fallback_returned_without_put(self, service, mock_client, mock_cache):
        week = EarthquakeCollection(
            events=(),
            metadata=CollectionMetadata(generated_ms=0, url="week", count=0),
        )
        fallback = fallback_query(HistoricalQuery(
            date(2024, 1, 1), date(2024, 3, 1), 2.0, IRAN_BOUNDS,
        ))

        def execute(q, lookup_fallback=None):
            cached = lookup_fallback(fallback)
            return FetchResult(payload=None, query=fallback, url=cached.metadata.url, cached=cached)
        mock_client.execute.side_effect = execute
        mock_cache.get.side_effect = [None, week]

        result = service.load(Filters(
            mode=Mode.HISTORICAL,
            date_range=DateRange(date(2024, 1, 1), date(2024, 3, 1)),
        ))

        assert result is week
        assert mock_cache.get.call_args[0] == (
            f"earthquake_data_realtime_week_m2_{IRAN}",
            CacheCategory.WEEK,
        )
        mock_cache.put.assert_not_called()


class TestDataServiceWithRealStores:
    """Wires the real client and memory cache against mocked HTTP."""

    @responses.activate
    def test_second_load_served_from_cache(self):
        responses.add(
            responses.GET,
            f"{USGS_FEED_BASE}/summary/all_week.geojson",
            json=PAYLOAD,
        )
        service = DataService(
            usgs_client=USGSClient(),
            cache_store=MemoryCacheStore(),
            today=lambda: TODAY,
        )
        filters = Filters(Mode.REALTIME, TimeRange.WEEK, 2.0)

        first = service.load(filters)
        second = service.load(filters)

        assert first == second
        assert len(responses.calls) == 1

    @responses.activate
    def test_fallback_does_not_answer_historical_key(self):
        responses.add(responses.GET, USGS_QUERY_BASE, body="Service Unavailable", status=503)
        responses.add(
            responses.GET,
            f"{USGS_FEED_BASE}/summary/all_week.geojson",
            json=PAYLOAD,
        )
        cache = MemoryCacheStore()
        service = DataService(usgs_client=USGSClient(), cache_store=cache, today=lambda: TODAY)
        historical = Filters(
            mode=Mode.HISTORICAL,
            date_range=DateRange(date(2024, 1, 1), date(2024, 3, 1)),
        )

        service.load(historical)

        assert cache.get(
            f"earthquake_data_historical_2024-01-01_2024-03-01_m2_{IRAN}",
            CacheCategory.HISTORICAL,
        ) is None
        assert cache.get(
            f"earthquake_data_realtime_week_m2_{IRAN}",
            CacheCategory.WEEK,
        ) is not None

    @responses.activate
    def test_cached_week_feed_answers_failed_search(self):
        responses.add(
            responses.GET,
            f"{USGS_FEED_BASE}/summary/all_week.geojson",
            json=PAYLOAD,
        )
        service = DataService(
            usgs_client=USGSClient(),
            cache_store=MemoryCacheStore(),
            today=lambda: TODAY,
        )
        week = service.load(Filters(Mode.REALTIME, TimeRange.WEEK, 2.0))

        responses.add(responses.GET, USGS_QUERY_BASE, body="Service Unavailable", status=503)
        historical = Filters(
            mode=Mode.HISTORICAL,
            date_range=DateRange(date(2024, 1, 1), date(2024, 3, 1)),
        )

        result = service.load(historical)

        assert result == week
        # One week feed fetch, one failed search, no second week fetch
        assert len(responses.calls) == 2
        assert responses.calls[1].request.url.startswith(USGS_QUERY_BASE)
