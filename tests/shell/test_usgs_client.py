"""Tests for the USGS API client.

Uses the `responses` library to mock HTTP requests.
"""

import itertools
from datetime import date
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from quakeview.core.config import USGS_FEED_BASE, USGS_QUERY_BASE
from quakeview.core.earthquake import CollectionMetadata, EarthquakeCollection
from quakeview.core.errors import (
    DecodeError,
    FetchTimeoutError,
    HttpError,
    NetworkError,
)
from quakeview.core.filters import Mode, TimeRange
from quakeview.core.geo import IRAN_BOUNDS
from quakeview.core.query import HistoricalQuery, RealTimeQuery, fallback_query
from quakeview.shell.usgs_client import USGSClient, is_fallback_eligible


DAY_FEED_URL = f"{USGS_FEED_BASE}/summary/all_day.geojson"
WEEK_FEED_URL = f"{USGS_FEED_BASE}/summary/all_week.geojson"

REALTIME_QUERY = RealTimeQuery(
    time_range=TimeRange.DAY,
    min_magnitude=2.0,
    bounds=IRAN_BOUNDS,
)

HISTORICAL_QUERY = HistoricalQuery(
    start_date=date(2024, 1, 1),
    end_date=date(2024, 3, 31),
    min_magnitude=4.5,
    bounds=IRAN_BOUNDS,
)

SAMPLE_GEOJSON = {
    "type": "FeatureCollection",
    "metadata": {"generated": 1703001700000, "count": 1},
    "features": [
        {
            "type": "Feature",
            "id": "us7000abcd",
            "properties": {"mag": 4.6, "place": "Bandar Abbas, Iran", "time": 1703001600000},
            "geometry": {"type": "Point", "coordinates": [56.3, 27.2, 10.0]},
        },
    ],
}


def query_params(call):
    return {k: v[0] for k, v in parse_qs(urlparse(call.request.url).query).items()}


class TestUSGSClientFetch:
    """Tests for USGSClient.fetch()."""

    @responses.activate
    def test_realtime_uses_summary_feed(self):
        responses.add(responses.GET, DAY_FEED_URL, json=SAMPLE_GEOJSON, status=200)

        result = USGSClient().fetch(REALTIME_QUERY)

        assert result.payload == SAMPLE_GEOJSON
        assert result.query == REALTIME_QUERY
        assert len(responses.calls) == 1
        assert responses.calls[0].request.url == DAY_FEED_URL

    @responses.activate
    def test_each_time_range_has_its_feed(self):
        for time_range in TimeRange:
            responses.add(
                responses.GET,
                f"{USGS_FEED_BASE}/summary/all_{time_range.value}.geojson",
                json=SAMPLE_GEOJSON,
            )

        client = USGSClient()
        for time_range in TimeRange:
            client.fetch(RealTimeQuery(time_range, 2.0, IRAN_BOUNDS))

        urls = [call.request.url for call in responses.calls]
        assert urls == [
            f"{USGS_FEED_BASE}/summary/all_hour.geojson",
            f"{USGS_FEED_BASE}/summary/all_day.geojson",
            f"{USGS_FEED_BASE}/summary/all_week.geojson",
        ]

    @responses.activate
    def test_historical_query_parameters(self):
        responses.add(responses.GET, USGS_QUERY_BASE, json=SAMPLE_GEOJSON)

        USGSClient().fetch(HISTORICAL_QUERY)

        assert query_params(responses.calls[0]) == {
            "format": "geojson",
            "starttime": "2024-01-01",
            "endtime": "2024-03-31",
            "minmagnitude": "4.5",
            "minlatitude": "25.0",
            "maxlatitude": "40.0",
            "minlongitude": "44.0",
            "maxlongitude": "63.0",
            "orderby": "time",
            "limit": "500",
        }

    @responses.activate
    def test_sends_headers(self):
        responses.add(responses.GET, DAY_FEED_URL, json=SAMPLE_GEOJSON)

        USGSClient(user_agent="TestAgent/2.0").fetch(REALTIME_QUERY)

        headers = responses.calls[0].request.headers
        assert headers["Accept"] == "application/json"
        assert headers["User-Agent"] == "TestAgent/2.0"

    @responses.activate
    def test_custom_feed_base(self):
        responses.add(
            responses.GET,
            "https://mirror.example.com/feeds/summary/all_day.geojson",
            json=SAMPLE_GEOJSON,
        )

        client = USGSClient(feed_base_url="https://mirror.example.com/feeds/")
        result = client.fetch(REALTIME_QUERY)

        assert result.url == "https://mirror.example.com/feeds/summary/all_day.geojson"


class TestUSGSClientErrors:
    """Every failure is classified into the error taxonomy."""

    @responses.activate
    def test_timeout(self):
        responses.add(responses.GET, DAY_FEED_URL, body=requests.exceptions.ReadTimeout())

        with pytest.raises(FetchTimeoutError):
            USGSClient().fetch(REALTIME_QUERY)

    @responses.activate
    def test_connection_error_is_network(self):
        responses.add(responses.GET, DAY_FEED_URL, body=requests.exceptions.ConnectionError())

        with pytest.raises(NetworkError):
            USGSClient().fetch(REALTIME_QUERY)

    @responses.activate
    def test_non_2xx_is_http_error_with_body(self):
        responses.add(responses.GET, DAY_FEED_URL, body="Service Unavailable", status=503)

        with pytest.raises(HttpError) as exc_info:
            USGSClient().fetch(REALTIME_QUERY)

        assert exc_info.value.status == 503
        assert exc_info.value.body == "Service Unavailable"

    @responses.activate
    def test_long_error_body_truncated(self):
        responses.add(responses.GET, DAY_FEED_URL, body="x" * 5000, status=500)

        with pytest.raises(HttpError) as exc_info:
            USGSClient().fetch(REALTIME_QUERY)

        assert len(exc_info.value.body) == 2000

    @responses.activate
    def test_invalid_json_is_decode_error(self):
        responses.add(responses.GET, DAY_FEED_URL, body="<html>oops</html>", status=200)

        with pytest.raises(DecodeError):
            USGSClient().fetch(REALTIME_QUERY)

    @responses.activate
    def test_missing_features_is_decode_error(self):
        responses.add(responses.GET, DAY_FEED_URL, json={"type": "FeatureCollection"})

        with pytest.raises(DecodeError):
            USGSClient().fetch(REALTIME_QUERY)

    @responses.activate
    def test_empty_features_is_success(self):
        responses.add(responses.GET, DAY_FEED_URL, json={"features": []})

        result = USGSClient().fetch(REALTIME_QUERY)

        assert result.payload["features"] == []

    @responses.activate
    def test_slow_body_past_deadline_is_timeout(self):
        responses.add(responses.GET, DAY_FEED_URL, json=SAMPLE_GEOJSON)
        # Deadline set at 0, every later reading is past 30 s
        clock = itertools.chain([0.0], itertools.repeat(31.0)).__next__

        with pytest.raises(FetchTimeoutError):
            USGSClient(timeout=30, clock=clock).fetch(REALTIME_QUERY)

    @responses.activate
    def test_body_within_deadline_succeeds(self):
        responses.add(responses.GET, DAY_FEED_URL, json=SAMPLE_GEOJSON)
        clock = itertools.chain([0.0], itertools.repeat(29.0)).__next__

        result = USGSClient(timeout=30, clock=clock).fetch(REALTIME_QUERY)

        assert len(result.payload["features"]) == 1


class TestFallbackEligibility:
    """Tests for is_fallback_eligible()."""

    def test_realtime_never_falls_back(self):
        assert not is_fallback_eligible(REALTIME_QUERY, FetchTimeoutError())
        assert not is_fallback_eligible(REALTIME_QUERY, HttpError(503))

    @pytest.mark.parametrize("error", [
        FetchTimeoutError(),
        NetworkError("offline"),
        DecodeError("bad json"),
        HttpError(500),
        HttpError(503),
        HttpError(429),
    ])
    def test_historical_eligible(self, error):
        assert is_fallback_eligible(HISTORICAL_QUERY, error)

    @pytest.mark.parametrize("status", [400, 404])
    def test_client_errors_not_eligible(self, status):
        assert not is_fallback_eligible(HISTORICAL_QUERY, HttpError(status))


class TestUSGSClientExecute:
    """Tests for USGSClient.execute() fallback handling."""

    @responses.activate
    def test_success_without_fallback(self):
        responses.add(responses.GET, USGS_QUERY_BASE, json=SAMPLE_GEOJSON)

        result = USGSClient().execute(HISTORICAL_QUERY)

        assert result.query == HISTORICAL_QUERY
        assert len(responses.calls) == 1

    @responses.activate
    def test_historical_failure_falls_back_once(self):
        responses.add(responses.GET, USGS_QUERY_BASE, status=503)
        responses.add(responses.GET, WEEK_FEED_URL, json=SAMPLE_GEOJSON)

        result = USGSClient().execute(HISTORICAL_QUERY)

        assert len(responses.calls) == 2
        assert responses.calls[1].request.url == WEEK_FEED_URL
        assert result.query == fallback_query(HISTORICAL_QUERY)
        assert result.query.mode == Mode.REALTIME
        assert result.query.min_magnitude == 4.5

    @responses.activate
    def test_fallback_failure_chained_to_original(self):
        responses.add(responses.GET, USGS_QUERY_BASE, body=requests.exceptions.ReadTimeout())
        responses.add(responses.GET, WEEK_FEED_URL, status=500)

        with pytest.raises(HttpError) as exc_info:
            USGSClient().execute(HISTORICAL_QUERY)

        assert exc_info.value.status == 500
        assert isinstance(exc_info.value.__cause__, FetchTimeoutError)
        assert len(responses.calls) == 2

    @responses.activate
    def test_bad_request_not_retried(self):
        responses.add(responses.GET, USGS_QUERY_BASE, body="bad starttime", status=400)

        with pytest.raises(HttpError) as exc_info:
            USGSClient().execute(HISTORICAL_QUERY)

        assert exc_info.value.status == 400
        assert len(responses.calls) == 1

    @responses.activate
    def test_realtime_failure_not_retried(self):
        responses.add(responses.GET, DAY_FEED_URL, status=503)

        with pytest.raises(HttpError):
            USGSClient().execute(REALTIME_QUERY)

        assert len(responses.calls) == 1

    @responses.activate
    def test_cached_fallback_skips_week_feed(self):
        responses.add(responses.GET, USGS_QUERY_BASE, status=503)
        week = EarthquakeCollection(
            events=(),
            metadata=CollectionMetadata(generated_ms=0, url=WEEK_FEED_URL, count=0),
        )
        asked = []

        def lookup(query):
            asked.append(query)
            return week

        result = USGSClient().execute(HISTORICAL_QUERY, lookup_fallback=lookup)

        assert asked == [fallback_query(HISTORICAL_QUERY)]
        assert result.cached is week
        assert result.payload is None
        assert result.url == WEEK_FEED_URL
        assert len(responses.calls) == 1

    @responses.activate
    def test_fallback_fetched_when_not_cached(self):
        responses.add(responses.GET, USGS_QUERY_BASE, status=503)
        responses.add(responses.GET, WEEK_FEED_URL, json=SAMPLE_GEOJSON)

        result = USGSClient().execute(HISTORICAL_QUERY, lookup_fallback=lambda q: None)

        assert result.cached is None
        assert len(responses.calls) == 2
