"""Refresh Scheduler - Imperative Shell.

Periodic re-loading of the active filters while in real-time mode. The
scheduler belongs to the presentation layer: the data service itself owns
no timer. Each filter change cancels the running task and starts a new
one, and results from a superseded task are dropped.
"""

import logging
import threading
from typing import Callable

from quakeview.core.config import DEFAULT_REFRESH_INTERVAL
from quakeview.core.earthquake import EarthquakeCollection
from quakeview.core.errors import FetchError
from quakeview.core.filters import Filters, Mode


logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Re-invokes a loader on a fixed interval for the active filters.

    Historical filters are not refreshed automatically; `refresh_now`
    still loads them on demand.
    """

    def __init__(
        self,
        load: Callable[[Filters], EarthquakeCollection],
        on_result: Callable[[EarthquakeCollection, Filters], None],
        on_error: Callable[[FetchError, Filters], None] | None = None,
        interval_seconds: float = DEFAULT_REFRESH_INTERVAL,
    ) -> None:
        """Initialize refresh scheduler.

        Args:
            load: Loads a collection for filters (usually DataService.load)
            on_result: Receives each collection for the current filters
            on_error: Receives each classified failure for the current filters
            interval_seconds: Seconds between automatic refreshes
        """
        self.load = load
        self.on_result = on_result
        self.on_error = on_error
        self.interval_seconds = interval_seconds

        self._lock = threading.Lock()
        self._generation = 0
        self._filters: Filters | None = None
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None

    @property
    def filters(self) -> Filters | None:
        """The active filters."""
        return self._filters

    @property
    def is_running(self) -> bool:
        """Whether an automatic refresh task is active."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def _cancel_locked(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None

    def set_filters(self, filters: Filters) -> None:
        """Make filters active, replacing any running refresh task.

        Args:
            filters: New active filters
        """
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._filters = filters

            if filters.mode != Mode.REALTIME:
                logger.debug("Historical filters, auto-refresh off")
                return

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(self._generation, filters, stop_event),
                name=f"refresh-{self._generation}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()

        logger.info(
            "Auto-refresh every %ss for %s feed",
            self.interval_seconds,
            filters.time_range.value,
        )

    def refresh_now(self) -> None:
        """Load the active filters immediately in the calling thread."""
        with self._lock:
            generation, filters = self._generation, self._filters

        if filters is None:
            logger.debug("No active filters, nothing to refresh")
            return

        self._refresh(generation, filters)

    def stop(self) -> None:
        """Cancel automatic refreshing and drop pending results."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def _run(
        self,
        generation: int,
        filters: Filters,
        stop_event: threading.Event,
    ) -> None:
        while not stop_event.wait(self.interval_seconds):
            self._refresh(generation, filters)

    def _refresh(self, generation: int, filters: Filters) -> None:
        try:
            collection = self.load(filters)
        except FetchError as e:
            if not self._is_current(generation):
                return
            logger.warning("Refresh failed: %s", e)
            if self.on_error is not None:
                self._deliver(self.on_error, e, filters)
            return
        except Exception:
            # Keep the refresh loop alive on unclassified failures
            logger.exception("Refresh failed unexpectedly")
            return

        if not self._is_current(generation):
            logger.debug("Dropping result for superseded filters")
            return

        self._deliver(self.on_result, collection, filters)

    def _deliver(self, callback: Callable, value: object, filters: Filters) -> None:
        try:
            callback(value, filters)
        except Exception:
            logger.exception("Refresh callback failed")
