"""USGS API Client - Imperative Shell.

This module handles HTTP communication with the USGS earthquake feeds and
the FDSN event search. Transport failures are classified into the error
taxonomy of quakeview.core.errors at this boundary.
All I/O is contained here; business logic is in the core module.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import requests

from quakeview.core.config import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    USGS_FEED_BASE,
    USGS_QUERY_BASE,
)
from quakeview.core.earthquake import EarthquakeCollection, get_features
from quakeview.core.errors import (
    DecodeError,
    FetchError,
    FetchTimeoutError,
    HttpError,
    NetworkError,
)
from quakeview.core.filters import Mode
from quakeview.core.query import (
    HistoricalQuery,
    RealTimeQuery,
    ResolvedQuery,
    fallback_query,
)


logger = logging.getLogger(__name__)


# Error bodies are kept for diagnostics only
MAX_ERROR_BODY = 2000

CHUNK_SIZE = 64 * 1024

FallbackLookup = Callable[[RealTimeQuery], EarthquakeCollection | None]


@dataclass(frozen=True)
class FetchResult:
    """Raw payload together with the query that actually produced it.

    Attributes:
        payload: Decoded GeoJSON document (None when served from cache)
        query: Served query (the fallback query if a fallback happened)
        url: Requested URL
        cached: Collection found for the fallback query without fetching
    """
    payload: dict[str, Any] | None
    query: ResolvedQuery
    url: str
    cached: EarthquakeCollection | None = None


def is_fallback_eligible(query: ResolvedQuery, error: FetchError) -> bool:
    """Decide whether a failed query may be retried on the week feed.

    Only historical searches fall back. Timeouts, transport failures,
    undecodable bodies, rate limiting and server errors are eligible;
    other 4xx responses mean the search itself is wrong and are surfaced.
    """
    if query.mode != Mode.HISTORICAL:
        return False

    if isinstance(error, HttpError):
        return error.is_server_error or error.is_rate_limited

    return isinstance(error, (FetchTimeoutError, NetworkError, DecodeError))


class USGSClient:
    """Client for fetching earthquake data from USGS.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        feed_base_url: str = USGS_FEED_BASE,
        query_base_url: str = USGS_QUERY_BASE,
        timeout: int = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize USGS client.

        Args:
            feed_base_url: Base URL of the real-time summary feeds
            query_base_url: FDSN event query URL
            timeout: Request timeout in seconds
            user_agent: User-Agent header value
            session: HTTP session (created if not provided)
            clock: Monotonic clock used for the total request deadline
        """
        self.feed_base_url = feed_base_url.rstrip("/")
        self.query_base_url = query_base_url
        self.timeout = timeout
        self.clock = clock
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": user_agent,
        })

    def _feed_url(self, query: ResolvedQuery) -> str:
        """Build the summary feed URL for a real-time query."""
        return f"{self.feed_base_url}/summary/all_{query.time_range.value}.geojson"

    def _build_params(self, query: HistoricalQuery) -> dict[str, str]:
        """Build query parameters for a historical search.

        Args:
            query: Historical query

        Returns:
            Dict of URL query parameters
        """
        bounds = query.bounds
        return {
            "format": "geojson",
            "starttime": query.start_date.strftime("%Y-%m-%d"),
            "endtime": query.end_date.strftime("%Y-%m-%d"),
            "minmagnitude": str(query.min_magnitude),
            "minlatitude": str(bounds.min_latitude),
            "maxlatitude": str(bounds.max_latitude),
            "minlongitude": str(bounds.min_longitude),
            "maxlongitude": str(bounds.max_longitude),
            "orderby": query.order_by,
            "limit": str(query.limit),
        }

    def _get(self, url: str, params: dict[str, str] | None = None) -> tuple[dict[str, Any], str]:
        """Perform one GET and classify any failure.

        The timeout bounds the whole request: requests applies it to the
        connect and to each read, and the body is read in chunks against a
        deadline. The response is always closed so its connection goes back
        to the pool (or is dropped) even when the request fails part-way.

        Returns:
            Tuple of (decoded payload, final URL)

        Raises:
            FetchTimeoutError, NetworkError, HttpError, DecodeError
        """
        deadline = self.clock() + self.timeout
        try:
            with self.session.get(
                url, params=params, timeout=self.timeout, stream=True
            ) as response:
                final_url = response.url or url

                if not response.ok:
                    raise HttpError(response.status_code, _read_body(response))

                body = self._read_within(response, deadline)
        except requests.Timeout as e:
            raise FetchTimeoutError(f"no response within {self.timeout}s") from e
        except requests.RequestException as e:
            raise NetworkError(str(e)) from e

        try:
            payload = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"response is not JSON: {e}") from e

        # Missing features is a decode failure, not an empty success
        get_features(payload)

        return payload, final_url

    def _read_within(self, response: requests.Response, deadline: float) -> bytes:
        """Read the whole body, giving up once the deadline has passed."""
        chunks = []
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if self.clock() > deadline:
                raise FetchTimeoutError(
                    f"body not received within {self.timeout}s"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def fetch(self, query: ResolvedQuery) -> FetchResult:
        """Fetch the raw payload for one query, without fallback.

        This method performs HTTP I/O.

        Args:
            query: Resolved query

        Returns:
            FetchResult for this query

        Raises:
            FetchError: Classified failure
        """
        if query.mode == Mode.HISTORICAL:
            url, params = self.query_base_url, self._build_params(query)
        else:
            url, params = self._feed_url(query), None

        logger.info(
            "Fetching earthquakes from USGS",
            extra={"url": url, "params": params},
        )

        payload, final_url = self._get(url, params)

        logger.info(
            "Fetched %d features from USGS",
            len(payload["features"]),
        )

        return FetchResult(payload=payload, query=query, url=final_url)

    def execute(
        self,
        query: ResolvedQuery,
        lookup_fallback: FallbackLookup | None = None,
    ) -> FetchResult:
        """Fetch a query, falling back once to the week feed if allowed.

        A failed historical search is retried exactly once as a real-time
        week query with the same minimum magnitude. If that also fails its
        error is raised, chained to the original one.

        Before fetching the week feed, `lookup_fallback` is asked for a
        collection already held for it; if it has one no request is made.

        Args:
            query: Resolved query
            lookup_fallback: Returns a cached collection for a query, or None

        Returns:
            FetchResult (its query is the fallback query after a fallback)

        Raises:
            FetchError: Classified failure
        """
        try:
            return self.fetch(query)
        except FetchError as e:
            if not is_fallback_eligible(query, e):
                logger.error("USGS request failed: %s", e)
                raise

            logger.warning(
                "Historical search failed (%s), falling back to real-time week feed",
                e.kind.value,
            )
            original_error = e

        fallback = fallback_query(query)

        if lookup_fallback is not None:
            cached = lookup_fallback(fallback)
            if cached is not None:
                logger.info("Fallback served from cache")
                return FetchResult(
                    payload=None,
                    query=fallback,
                    url=cached.metadata.url,
                    cached=cached,
                )

        try:
            return self.fetch(fallback)
        except FetchError as fallback_error:
            logger.error(
                "Fallback to real-time feed failed: %s (original: %s)",
                fallback_error,
                original_error,
            )
            raise fallback_error from original_error

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()


def _read_body(response: requests.Response) -> str | None:
    """Read an error response body, best-effort."""
    try:
        text = response.text
    except (requests.RequestException, UnicodeDecodeError):
        return None
    return text[:MAX_ERROR_BODY] if text else None
