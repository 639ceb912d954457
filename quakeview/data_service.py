"""Data Service - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components:

    cache lookup -> build query -> fetch -> normalize -> cache store

It is the only interface presentation layers call.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable

from quakeview.core.cache_policy import cache_category, cache_key, region_key
from quakeview.core.config import Config
from quakeview.core.earthquake import EarthquakeCollection
from quakeview.core.errors import FetchError
from quakeview.core.filters import Filters, repair_filters, utc_today
from quakeview.core.normalize import normalize
from quakeview.core.query import RealTimeQuery, build_query
from quakeview.shell.cache_store import CacheStore, create_cache_store
from quakeview.shell.usgs_client import USGSClient


logger = logging.getLogger(__name__)


def _today() -> date:
    return utc_today(datetime.now(timezone.utc))


class DataService:
    """Loads earthquake collections for a set of filters.

    This class wires together:
    - USGS client (fetches raw payloads, historical fallback)
    - Core functions (filter repair, query building, normalization)
    - Cache store (time-boxed persistence)

    It holds no per-request state, so concurrent loads for different
    filters are safe. Concurrent loads for the same filters may both hit
    upstream; the last one to finish wins the cache entry.
    """

    def __init__(
        self,
        config: Config | None = None,
        usgs_client: USGSClient | None = None,
        cache_store: CacheStore | None = None,
        today: Callable[[], date] = _today,
    ) -> None:
        """Initialize data service with configuration.

        Args:
            config: Application configuration
            usgs_client: USGS client (created if not provided)
            cache_store: Cache store (created from config if not provided)
            today: Returns the current UTC calendar date
        """
        self.config = config or Config()
        self.usgs_client = usgs_client or USGSClient(
            feed_base_url=self.config.feed_base_url,
            query_base_url=self.config.query_base_url,
            timeout=self.config.request_timeout_seconds,
            user_agent=self.config.user_agent,
        )
        self.cache_store = cache_store or create_cache_store(self.config.cache)
        self.today = today

    def load(self, filters: Filters) -> EarthquakeCollection:
        """Load the earthquake collection for a set of filters.

        This is the main entry point that:
        1. Repairs the filters and resolves the upstream query
        2. Returns a fresh cached collection if there is one
        3. Otherwise fetches (with the historical fallback) and normalizes
        4. Caches the result under the key of the query actually served

        Args:
            filters: User filters

        Returns:
            EarthquakeCollection with metadata.count == len(events)

        Raises:
            FetchError: Classified failure; nothing is cached
        """
        today = self.today()
        region = self.config.region

        filters = repair_filters(filters, today)
        query = build_query(
            filters,
            region.bounds,
            today,
            limit=self.config.historical_limit,
        )

        key = cache_key(filters, region_key(region))
        category = cache_category(filters)

        cached = self.cache_store.get(key, category)
        if cached is not None:
            return cached

        try:
            result = self.usgs_client.execute(query, lookup_fallback=self._cached_for)
            if result.cached is not None:
                return result.cached
            collection = normalize(result.payload, result.query, source_url=result.url)
        except FetchError as e:
            logger.error("Failed to load earthquakes for %s: %s", key, e)
            raise

        if result.query != query:
            # Fallback data must not answer the historical key
            served = result.query.filters
            key = cache_key(served, region_key(region))
            category = cache_category(served)
            logger.warning("Serving fallback data cached under %s", key)

        self.cache_store.put(key, category, collection)

        logger.info(
            "Loaded %d earthquakes for %s",
            collection.metadata.count,
            key,
        )

        return collection

    def _cached_for(self, query: RealTimeQuery) -> EarthquakeCollection | None:
        """Look up a fresh cached collection for a fallback query."""
        region = region_key(self.config.region)
        return self.cache_store.get(
            cache_key(query.filters, region),
            cache_category(query.filters),
        )
