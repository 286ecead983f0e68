"""
Comics service for the Comics Access Service.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from shared.base_service import BaseService
from shared.config import ComicsConfig, get_config
from shared.errors import InvalidComicIDError
from shared.retry import RetryConfig

from service_comics.app.adapters.xkcd_client import XkcdClient
from service_comics.app.caching.cache_store import CacheStore
from service_comics.app.comics.service import ComicService


class ComicsAPIService(BaseService):
    """HTTP surface over a single ComicService instance."""

    def __init__(
        self,
        config: Optional[ComicsConfig] = None,
        comic_service: Optional[ComicService] = None,
    ):
        config = config or get_config()
        self.validation_messages = {
            "q": f"Query must be between 1 and {config.search_max_query_length} characters",
            "page": "Page must be a positive integer",
            "limit": f"Limit must be between 1 and {config.search_max_limit}",
        }
        super().__init__(config.service_name, config)

        self.comic_service = comic_service or self._build_comic_service()

        self._setup_comic_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.comics_service = self

    def _build_comic_service(self) -> ComicService:
        """Wire the provider client and cache from configuration."""
        client = XkcdClient(
            self.config.xkcd_base_url,
            timeout=self.config.request_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=self.config.upstream_max_attempts,
                base_delay=self.config.upstream_retry_base_delay,
                max_delay=self.config.upstream_retry_max_delay,
                jitter=True
            ),
            metrics=self.metrics,
        )
        return ComicService(
            client,
            CacheStore(),
            latest_ttl_seconds=self.config.latest_ttl_seconds,
            search_pool_size=self.config.search_pool_size,
            max_query_length=self.config.search_max_query_length,
            metrics=self.metrics,
        )

    def _setup_comic_routes(self):
        """Set up comic routes. Fixed paths are registered before /{comic_id}."""
        router = APIRouter()
        comics = self.comic_service
        max_limit = self.config.search_max_limit
        default_limit = self.config.search_default_limit

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Comics Access Service",
                "version": "1.0.0",
                "endpoints": ["/latest", "/random", "/search", "/{id}"],
                "prefix": self.config.api_prefix,
            }

        @router.get("/latest")
        async def get_latest():
            comic = await comics.get_latest()
            return comic.to_dict()

        @router.get("/random")
        async def get_random():
            comic = await comics.get_random()
            return comic.to_dict()

        @router.get("/search")
        async def search(
            q: str = Query(...),
            page: int = Query(1, ge=1),
            limit: int = Query(default_limit, ge=1, le=max_limit),
        ):
            result = await comics.search(q.strip(), page, limit)
            return result.to_dict()

        @router.get("/{comic_id}")
        async def get_comic(comic_id: str):
            comic = await comics.get_by_id(_parse_comic_id(comic_id))
            return comic.to_dict()

        self.app.include_router(router, prefix=self.config.api_prefix.rstrip("/"))

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report cache occupancy."""
        return {"cache": "ok", "cache_entries": len(self.comic_service.cache)}


def _parse_comic_id(raw: str) -> int:
    """Parse a path id; anything but a plain positive integer is rejected."""
    if not (raw.isascii() and raw.isdigit()):
        raise InvalidComicIDError(raw)
    return int(raw)


def create_app(config: Optional[ComicsConfig] = None):
    """Create comics service application."""
    service = ComicsAPIService(config)
    return service.app


if __name__ == "__main__":
    service = ComicsAPIService()
    service.run()
