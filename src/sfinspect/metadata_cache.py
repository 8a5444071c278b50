"""In-process TTL cache for object describe metadata.

Entries are keyed by ``instance_url + ":" + object_name`` with no URL
normalisation, so ``https://x`` and ``https://x/`` are separate instances.
Expired entries are dropped lazily when read; there is no background sweep.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .models import ConnectionDescriptor, ObjectMetadata

if TYPE_CHECKING:
    from .api import SalesforceAPI

_logger = logging.getLogger(__name__)

DEFAULT_TTL = 10 * 60.0


def cache_key(instance_url: str, object_name: str) -> str:
    return f"{instance_url}:{object_name}"


@dataclass(frozen=True)
class CacheEntry:
    data: ObjectMetadata
    timestamp: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.timestamp < self.ttl


class MetadataCache:
    """Thread-safe describe cache, one per process (built by the caller).

    ``clock`` returns seconds; inject a fake one in tests.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, instance_url: str, object_name: str) -> Optional[ObjectMetadata]:
        key = cache_key(instance_url, object_name)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_valid(self._clock()):
                return entry.data
            del self._entries[key]
        _logger.debug("Evicted expired metadata for %s", key)
        return None

    def put(
        self,
        instance_url: str,
        object_name: str,
        metadata: ObjectMetadata,
        ttl: Optional[float] = None,
    ) -> None:
        entry = CacheEntry(
            data=metadata,
            timestamp=self._clock(),
            ttl=self.ttl if ttl is None else ttl,
        )
        with self._lock:
            self._entries[cache_key(instance_url, object_name)] = entry

    def get_or_fetch(
        self,
        api: SalesforceAPI,
        conn: ConnectionDescriptor,
        object_name: str,
    ) -> ObjectMetadata:
        """Return cached metadata, describing the object on a miss.

        The fetch happens outside the lock; two concurrent misses may both
        call describe and the later put wins.
        """
        cached = self.get(conn.instance_url, object_name)
        if cached is not None:
            _logger.debug("Metadata cache hit: %s", object_name)
            return cached

        _logger.debug("Metadata cache miss: %s", object_name)
        metadata = api.get_object_metadata(conn, object_name)
        self.put(conn.instance_url, object_name, metadata)
        return metadata

    def invalidate_instance(self, instance_url: str) -> int:
        """Drop every entry for one instance URL; returns how many went."""
        prefix = f"{instance_url}:"
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for k in doomed:
                del self._entries[k]
        _logger.debug("Invalidated %d metadata entries for %s", len(doomed), instance_url)
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        """Counts of valid and expired-but-not-yet-evicted entries."""
        with self._lock:
            now = self._clock()
            valid = sum(1 for e in self._entries.values() if e.is_valid(now))
            total = len(self._entries)
        return {"total": total, "valid": valid, "expired": total - valid}
