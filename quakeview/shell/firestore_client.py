"""Firestore Cache Store - Imperative Shell.

This module persists cached earthquake collections in Google Cloud
Firestore, so several viewer instances can share one cache.

Document structure (one document per cache key):
{
    "schema_version": 1,
    "key": "earthquake_data_realtime_day_m2_iran-<bounds digest>",
    "category": "day",
    "stored_at_ms": <epoch ms>,
    "payload": <GeoJSON FeatureCollection>
}

All I/O is contained here; expiry logic is in the core module.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any

from google.cloud import firestore

from quakeview.shell.cache_store import CacheStore


logger = logging.getLogger(__name__)


# Default collection name for cached collections
DEFAULT_COLLECTION = "earthquake_cache"


@dataclass
class FirestoreConfig:
    """Configuration for the Firestore cache store.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        collection: Firestore collection name
    """
    project_id: str | None = None
    database: str | None = None
    collection: str = DEFAULT_COLLECTION


class FirestoreCacheStore(CacheStore):
    """Cache store backed by a Firestore collection.

    Each write replaces the whole document, so reads never see a partial
    entry.
    """

    def __init__(
        self,
        config: FirestoreConfig | None = None,
        client: firestore.Client | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize Firestore cache store.

        Args:
            config: Firestore configuration
            client: Firestore client (created lazily if not provided)
        """
        super().__init__(**kwargs)
        self.config = config or FirestoreConfig()
        self._client = client

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client

    def _get_doc_ref(self, key: str) -> Any:
        """Get reference to the document holding a cache key.

        Keys are hashed because document IDs may not contain '/'.
        """
        doc_id = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return (
            self.client
            .collection(self.config.collection)
            .document(doc_id)
        )

    def _read(self, key: str) -> dict[str, Any] | None:
        doc = self._get_doc_ref(key).get()

        if not doc.exists:
            return None

        return doc.to_dict()

    def _write(self, key: str, document: dict[str, Any]) -> None:
        self._get_doc_ref(key).set(document)
