"""
Comics caching package.

Provides the process-local cache store used by the comic service. Entries
are replaced atomically on write; freshness is decided by the caller per
key class.
"""

from .cache_store import CacheEntry, CacheStore

__all__ = ["CacheEntry", "CacheStore"]
