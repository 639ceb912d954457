"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- USGS client (HTTP)
- Cache stores (local files, Firestore)
- Configuration loading (environment/files)
- Refresh scheduling (threads)

Keep this layer thin and simple. All business logic should be in core.
"""

from quakeview.shell.cache_store import (
    CacheStore,
    FileCacheStore,
    MemoryCacheStore,
    NullCacheStore,
    create_cache_store,
)
from quakeview.shell.config_loader import load_config, load_config_from_env
from quakeview.shell.refresh_scheduler import RefreshScheduler
from quakeview.shell.usgs_client import FetchResult, USGSClient

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "MemoryCacheStore",
    "NullCacheStore",
    "create_cache_store",
    "load_config",
    "load_config_from_env",
    "RefreshScheduler",
    "FetchResult",
    "USGSClient",
]
