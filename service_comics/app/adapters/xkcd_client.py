"""
xkcd provider client for the Comics Service.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.errors import TransportError, UpstreamNotFoundError
from shared.retry import retry_on_exception, RetryConfig

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_BASE_URL = "https://xkcd.com"


class XkcdClient:
    """Fetches raw comic payloads from the provider.

    Outcomes are classified into success, ``UpstreamNotFoundError`` (404)
    and ``TransportError`` (anything else). Transport failures are retried
    with jittered backoff; a 404 is never retried.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 10.0,
        retry_config: Optional[RetryConfig] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("comics.xkcd_client")

        self.retry_config = retry_config or RetryConfig(
            max_attempts=2,
            base_delay=0.25,
            max_delay=2.0,
            exponential_base=2.0,
            jitter=True
        )
        self._fetch_with_retry = retry_on_exception((TransportError,), config=self.retry_config)(self._fetch_once)

    def latest_url(self) -> str:
        """URL of the provider's latest comic."""
        return f"{self.base_url}/info.0.json"

    def comic_url(self, comic_id: int) -> str:
        """URL of a single comic by id."""
        return f"{self.base_url}/{comic_id}/info.0.json"

    async def fetch(self, url: str) -> Dict[str, Any]:
        """GET ``url`` and return the decoded JSON object."""
        return await self._fetch_with_retry(url)

    async def fetch_latest(self) -> Dict[str, Any]:
        return await self.fetch(self.latest_url())

    async def fetch_comic(self, comic_id: int) -> Dict[str, Any]:
        return await self.fetch(self.comic_url(comic_id))

    async def _fetch_once(self, url: str) -> Dict[str, Any]:
        """Single attempt with outcome classification."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            self.logger.error("Provider request failed", url=url, error=str(exc))
            self._record("error")
            raise TransportError(
                f"Request to provider failed: {exc}",
                details={"url": url, "reason": type(exc).__name__}
            ) from exc

        if response.status_code == 404:
            self.logger.info("Provider comic not found", url=url)
            self._record("not_found")
            raise UpstreamNotFoundError(url)

        if not response.is_success:
            self.logger.error(
                "Provider request returned unexpected status",
                url=url,
                status_code=response.status_code,
                reason=response.reason_phrase
            )
            self._record("error")
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                details={"url": url, "reason": response.reason_phrase}
            )

        try:
            payload = response.json()
        except ValueError as exc:
            self.logger.error("Provider returned invalid JSON", url=url, error=str(exc))
            self._record("error")
            raise TransportError(
                "Provider returned invalid JSON",
                status_code=response.status_code,
                details={"url": url}
            ) from exc

        if not isinstance(payload, dict):
            self._record("error")
            raise TransportError(
                "Provider returned an unexpected payload",
                status_code=response.status_code,
                details={"url": url, "payload_type": type(payload).__name__}
            )

        self.logger.debug("Provider payload retrieved", url=url)
        self._record("success")
        return payload

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("upstream_requests_total", outcome=outcome)
