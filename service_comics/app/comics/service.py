"""
Comic service coordinating the cache store and the provider client.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

from shared.errors import (
    ComicNotFoundError,
    InvalidComicIDError,
    RandomComicError,
    TransportError,
    UpstreamNotFoundError,
    ValidationError,
)
from shared.logging import get_logger

from service_comics.app.adapters.xkcd_client import XkcdClient
from service_comics.app.caching.cache_store import CacheStore
from service_comics.app.comics.models import Comic, SearchResult, normalize_comic

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


LATEST_KEY = "latest"
DEFAULT_LATEST_TTL = 300.0
DEFAULT_SEARCH_POOL_SIZE = 100
DEFAULT_MAX_QUERY_LENGTH = 100
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def comic_key(comic_id: int) -> str:
    return f"comic-{comic_id}"


class ComicService:
    """Read-through cache over the xkcd provider.

    The latest comic is refreshed once its TTL has elapsed. Comics fetched
    by id are kept for the life of the process because published comics
    never change. Concurrent misses on the same key share one fetch.
    """

    def __init__(
        self,
        client: XkcdClient,
        cache: Optional[CacheStore] = None,
        *,
        latest_ttl_seconds: float = DEFAULT_LATEST_TTL,
        search_pool_size: int = DEFAULT_SEARCH_POOL_SIZE,
        max_query_length: int = DEFAULT_MAX_QUERY_LENGTH,
        rng: Optional[random.Random] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else CacheStore()
        self.latest_ttl_seconds = latest_ttl_seconds
        self.search_pool_size = search_pool_size
        self.max_query_length = max_query_length
        self.rng = rng or random.Random()
        self.metrics = metrics
        self.logger = get_logger("comics.service")
        self._inflight: Dict[str, asyncio.Future] = {}

    async def get_latest(self) -> Comic:
        """Return the newest comic, served from cache while fresh."""
        entry = self.cache.get(LATEST_KEY)
        if entry is not None and self.cache.is_fresh(entry, self.latest_ttl_seconds):
            self._record_lookup(LATEST_KEY, hit=True)
            return entry.data

        self._record_lookup(LATEST_KEY, hit=False)
        return await self._single_flight(LATEST_KEY, self._load_latest)

    async def get_by_id(self, comic_id: Any) -> Comic:
        """Return a comic by id; cached entries are served regardless of age."""
        if not _is_valid_comic_id(comic_id):
            raise InvalidComicIDError(comic_id)

        key = comic_key(comic_id)
        entry = self.cache.get(key)
        if entry is not None:
            self._record_lookup("comic", hit=True)
            return entry.data

        self._record_lookup("comic", hit=False)
        return await self._single_flight(key, lambda: self._load_comic(comic_id))

    async def get_random(self) -> Comic:
        """Return a comic drawn uniformly from [1, latest id]."""
        try:
            latest = await self.get_latest()
            comic_id = self.rng.randint(1, latest.id)
            self.logger.debug("Random comic selected", comic_id=comic_id, latest_id=latest.id)
            return await self.get_by_id(comic_id)
        except Exception as exc:
            self.logger.warning("Random comic lookup failed", error=str(exc), error_type=type(exc).__name__)
            raise RandomComicError(exc) from exc

    async def search(
        self,
        query: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        """Search the most recently cached comics by title or transcript.

        Only comics already in the cache are scanned. ``total`` counts every
        match in the scanned pool; ``results`` holds the requested page.
        """
        page = DEFAULT_PAGE if page is None else page
        limit = DEFAULT_LIMIT if limit is None else limit
        self._validate_search(query, page, limit)

        matches = [comic for comic in self.recent_comics() if comic.matches(query)]
        offset = (page - 1) * limit

        result = SearchResult(
            query=query,
            results=matches[offset:offset + limit],
            total=len(matches),
            page=page,
            limit=limit,
        )
        self.logger.debug(
            "Search completed",
            query=query,
            page=page,
            limit=limit,
            total=result.total,
        )
        return result

    def recent_comics(self) -> List[Comic]:
        """Most recently cached comics, newest first, unique by id."""
        seen = set()
        comics: List[Comic] = []
        for _, entry in reversed(self.cache.entries()):
            comic = entry.data
            if not isinstance(comic, Comic) or comic.id in seen:
                continue
            seen.add(comic.id)
            comics.append(comic)
            if len(comics) >= self.search_pool_size:
                break
        return comics

    async def _load_latest(self) -> Comic:
        try:
            payload = await self.client.fetch_latest()
        except UpstreamNotFoundError as exc:
            raise TransportError(
                "Latest comic endpoint returned 404",
                status_code=404,
                details={"url": exc.url}
            ) from exc

        comic = normalize_comic(payload)
        self.cache.set(LATEST_KEY, comic)
        if comic_key(comic.id) not in self.cache:
            self.cache.set(comic_key(comic.id), comic)
        self.logger.info("Latest comic refreshed", comic_id=comic.id)
        return comic

    async def _load_comic(self, comic_id: int) -> Comic:
        try:
            payload = await self.client.fetch_comic(comic_id)
        except UpstreamNotFoundError as exc:
            raise ComicNotFoundError(comic_id) from exc

        comic = normalize_comic(payload)
        self.cache.set(comic_key(comic_id), comic)
        self.logger.info("Comic cached", comic_id=comic_id)
        return comic

    async def _single_flight(self, key: str, loader: Callable[[], Awaitable[Comic]]) -> Comic:
        """Run ``loader`` once per key; concurrent callers await the same task."""
        pending = self._inflight.get(key)
        if pending is not None:
            self.logger.debug("Joining in-flight fetch", key=key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(loader())
        self._inflight[key] = task
        task.add_done_callback(lambda _: self._inflight.pop(key, None))
        return await asyncio.shield(task)

    def _validate_search(self, query: Any, page: Any, limit: Any) -> None:
        if not isinstance(query, str) or not 1 <= len(query) <= self.max_query_length:
            raise ValidationError(
                f"Query must be between 1 and {self.max_query_length} characters",
                {"field": "q"}
            )
        if not _is_positive_int(page):
            raise ValidationError("Page must be a positive integer", {"field": "page"})
        if not _is_positive_int(limit):
            raise ValidationError("Limit must be a positive integer", {"field": "limit"})

    def _record_lookup(self, cache_type: str, *, hit: bool) -> None:
        self.logger.debug("Cache lookup", cache_type=cache_type, hit=hit)
        if self.metrics is not None:
            metric = "cache_hits_total" if hit else "cache_misses_total"
            self.metrics.increment_counter(metric, cache_type=cache_type)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def _is_valid_comic_id(value: Any) -> bool:
    return _is_positive_int(value)
