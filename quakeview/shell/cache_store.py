"""Cache Stores - Imperative Shell.

This module persists normalized earthquake collections keyed by query
parameters. Stores never raise: read failures, corrupt documents and
schema mismatches degrade to a cache miss, write failures are dropped.
Every absorbed failure is logged and reported as a CacheDiagnostic.

Key and expiry policy live in quakeview.core.cache_policy.
"""

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable

from quakeview.core.cache_policy import (
    CacheCategory,
    CacheDiagnostic,
    CacheEntry,
    SchemaMismatch,
    entry_from_document,
    entry_to_document,
    is_fresh,
)
from quakeview.core.config import CacheConfig
from quakeview.core.earthquake import EarthquakeCollection
from quakeview.core.errors import CacheUnavailableError


logger = logging.getLogger(__name__)


DiagnosticListener = Callable[[CacheDiagnostic], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheStore:
    """Time-boxed key -> collection store.

    Subclasses provide `_read` and `_write` for one storage medium; this
    class applies the expiry policy and absorbs every failure.
    """

    def __init__(
        self,
        clock: Callable[[], int] = _now_ms,
        on_diagnostic: DiagnosticListener | None = None,
    ) -> None:
        """Initialize cache store.

        Args:
            clock: Returns the current time in epoch milliseconds
            on_diagnostic: Called with each absorbed failure
        """
        self.clock = clock
        self.on_diagnostic = on_diagnostic

    def _read(self, key: str) -> dict[str, Any] | None:
        """Return the stored document for key, or None if absent."""
        raise NotImplementedError

    def _write(self, key: str, document: dict[str, Any]) -> None:
        """Store the document for key, replacing any previous one."""
        raise NotImplementedError

    def _report(self, event: str, key: str, error: Exception | str) -> None:
        diagnostic = CacheDiagnostic(event=event, key=key, error=str(error))

        logger.warning(
            "Cache %s for %s: %s",
            event,
            key,
            diagnostic.error,
            extra={"cache_event": event, "cache_key": key},
        )

        if self.on_diagnostic is not None:
            try:
                self.on_diagnostic(diagnostic)
            except Exception:
                logger.exception("Cache diagnostic listener failed")

    def get(self, key: str, category: CacheCategory) -> EarthquakeCollection | None:
        """Return the cached collection if present and not expired.

        Args:
            key: Cache key
            category: Expiry class deciding how long the entry is readable

        Returns:
            Cached collection, or None on miss, expiry or any failure
        """
        try:
            document = self._read(key)
        except Exception as e:
            self._report("read_failed", key, e)
            return None

        if document is None:
            logger.debug("Cache miss for %s", key)
            return None

        try:
            entry = entry_from_document(document)
        except SchemaMismatch as e:
            self._report("schema_mismatch", key, e)
            return None
        except Exception as e:
            self._report("decode_failed", key, e)
            return None

        if not is_fresh(entry.stored_at_ms, self.clock(), category):
            logger.debug("Cache entry for %s expired", key)
            return None

        logger.info("Cache hit for %s", key)
        return entry.payload

    def put(
        self,
        key: str,
        category: CacheCategory,
        collection: EarthquakeCollection,
    ) -> None:
        """Store a collection, best-effort.

        Args:
            key: Cache key
            category: Expiry class recorded with the entry
            collection: Collection to store
        """
        entry = CacheEntry(
            key=key,
            category=category,
            stored_at_ms=self.clock(),
            payload=collection,
        )

        try:
            self._write(key, entry_to_document(entry))
        except Exception as e:
            self._report("write_failed", key, e)
            return

        logger.info("Cached %d earthquakes under %s", len(collection), key)


class NullCacheStore(CacheStore):
    """Store that never holds anything (caching disabled)."""

    def _read(self, key: str) -> dict[str, Any] | None:
        return None

    def _write(self, key: str, document: dict[str, Any]) -> None:
        pass


class MemoryCacheStore(CacheStore):
    """Process-local store guarded by a lock."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._documents: dict[str, str] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            raw = self._documents.get(key)
        return None if raw is None else json.loads(raw)

    def _write(self, key: str, document: dict[str, Any]) -> None:
        raw = json.dumps(document)
        with self._lock:
            self._documents[key] = raw


class FileCacheStore(CacheStore):
    """Persistent local store: one JSON document per key in a directory.

    Documents are written to a temporary file and moved into place with
    os.replace, so a reader sees either the old or the new document.
    """

    def __init__(self, directory: str | Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheUnavailableError(f"cannot read {path}: {e}") from e

    def _write(self, key: str, document: dict[str, Any]) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.directory, prefix=".tmp-", suffix=".json"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheUnavailableError(f"cannot write {path}: {e}") from e


def create_cache_store(
    config: CacheConfig,
    on_diagnostic: DiagnosticListener | None = None,
) -> CacheStore:
    """Build the cache store selected by configuration.

    Args:
        config: Cache configuration
        on_diagnostic: Called with each absorbed cache failure

    Returns:
        CacheStore for the configured backend
    """
    backend = config.backend

    if backend == "firestore":
        from quakeview.shell.firestore_client import FirestoreCacheStore, FirestoreConfig

        return FirestoreCacheStore(
            FirestoreConfig(
                database=config.firestore_database,
                collection=config.firestore_collection,
            ),
            on_diagnostic=on_diagnostic,
        )

    if backend == "memory":
        return MemoryCacheStore(on_diagnostic=on_diagnostic)

    if backend == "none":
        return NullCacheStore(on_diagnostic=on_diagnostic)

    if backend != "file":
        logger.warning("Unknown cache backend %r, using file cache", backend)

    return FileCacheStore(config.directory, on_diagnostic=on_diagnostic)
