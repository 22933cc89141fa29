"""Bounded cache of open vector-store collection handles.

Backed by ``cachetools.LRUCache`` so a long-running worker touching many
documents keeps only the most recently used handles.  A
``threading.Lock`` guards every access because store calls run in worker
threads via ``asyncio.to_thread``.  A handle evicted here is simply
re-opened on next use; correctness never depends on a hit.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

import structlog
from cachetools import LRUCache

logger = structlog.get_logger(logger_name=__name__)


class CollectionHandleCache:
    """Thread-safe LRU map from collection name to backend handle.

    Parameters
    ----------
    max_size:
        Maximum number of handles kept before the least recently used one
        is dropped.
    """

    def __init__(self, max_size: int = 256) -> None:
        self._cache: LRUCache[str, Any] = LRUCache(maxsize=max_size)
        self._lock = threading.Lock()

    def get(self, name: str) -> Any | None:
        with self._lock:
            return self._cache.get(name)

    def put(self, name: str, handle: Any) -> None:
        with self._lock:
            self._cache[name] = handle

    def get_or_open(self, name: str, opener: Callable[[str], Any]) -> Any:
        """Return the cached handle or open, cache and return a new one.

        *opener* runs outside the lock; two racing callers may both open
        the collection, and the last one to finish wins the slot.
        """
        handle = self.get(name)
        if handle is not None:
            logger.debug("collection_cache_hit", collection=name)
            return handle
        handle = opener(name)
        self.put(name, handle)
        logger.debug("collection_cache_miss", collection=name)
        return handle

    def evict(self, name: str) -> None:
        """Drop *name* if present."""
        with self._lock:
            self._cache.pop(name, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
