"""
Process-local key/value cache with caller-driven TTL checks.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.logging import get_logger


Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and the clock reading at which it was stored."""

    key: str
    data: Any
    stored_at: float


class CacheStore:
    """In-memory cache table keyed by string.

    There is no eviction: entries live until the process exits. Callers
    decide freshness with ``is_fresh`` using the TTL for their key class.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock: Clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry] = {}
        self.logger = get_logger("comics.cache_store")

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under ``key``, if any."""
        return self._entries.get(key)

    def set(self, key: str, data: Any) -> CacheEntry:
        """Store ``data`` under ``key``, replacing any prior entry.

        A replaced key moves to the end of insertion order.
        """
        entry = CacheEntry(key=key, data=data, stored_at=self._clock())
        self._entries.pop(key, None)
        self._entries[key] = entry
        self.logger.debug("Cache entry stored", key=key, size=len(self._entries))
        return entry

    def is_fresh(self, entry: CacheEntry, ttl: float) -> bool:
        """True while the entry is younger than ``ttl`` seconds."""
        return self._clock() - entry.stored_at < ttl

    def entries(self) -> List[Tuple[str, CacheEntry]]:
        """Snapshot of ``(key, entry)`` pairs in insertion order."""
        return list(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
