"""
Unit tests for the Comics main service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_comics.app.caching.cache_store import CacheStore
from service_comics.app.comics.service import ComicService
from service_comics.app.main import ComicsAPIService, create_app
from shared.config import ComicsConfig
from shared.errors import OperationalError, TransportError, UpstreamNotFoundError
from shared.test_helpers import create_comic_payload


PREFIX = "/api/comics"


class TestComicsAPIService:
    """Test cases for ComicsAPIService."""

    @pytest.fixture
    def mock_client(self):
        client = MagicMock()
        client.fetch_latest = AsyncMock(return_value=create_comic_payload(2900))
        client.fetch_comic = AsyncMock(side_effect=lambda comic_id: create_comic_payload(comic_id))
        return client

    @pytest.fixture
    def comics_service(self, mock_client):
        comic_service = ComicService(mock_client, CacheStore())
        return ComicsAPIService(ComicsConfig(), comic_service=comic_service)

    @pytest.fixture
    def client(self, comics_service):
        """Create test client."""
        return TestClient(comics_service.app)

    def test_create_app(self):
        app = create_app(ComicsConfig())

        assert isinstance(app.state.comics_service, ComicsAPIService)

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "comics"

    def test_health_endpoint_reports_cache(self, client):
        client.get(f"{PREFIX}/latest")

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["dependencies"]["cache_entries"] == 2

    def test_metrics_endpoint(self, client):
        client.get(f"{PREFIX}/latest")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get(f"{PREFIX}/latest", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get(f"{PREFIX}/latest")

        assert response.headers["X-Request-ID"]

    # ------------------------------------------------------------------ #
    # /latest
    # ------------------------------------------------------------------ #

    def test_latest(self, client):
        response = client.get(f"{PREFIX}/latest")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == 2900
        assert set(data) == {"id", "title", "img", "alt", "transcript", "year", "month", "day", "safe_title"}

    def test_latest_transport_error(self, client, mock_client):
        mock_client.fetch_latest.side_effect = TransportError("HTTP 502: Bad Gateway", status_code=502)

        response = client.get(f"{PREFIX}/latest")

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal Server Error",
            "message": "Something went wrong on our end",
        }

    # ------------------------------------------------------------------ #
    # /{id}
    # ------------------------------------------------------------------ #

    def test_comic_by_id(self, client, mock_client):
        response = client.get(f"{PREFIX}/614")

        assert response.status_code == 200
        assert response.json()["id"] == 614
        mock_client.fetch_comic.assert_awaited_once_with(614)

    @pytest.mark.parametrize("comic_id", ["0", "abc", "-5", "1.5"])
    def test_comic_invalid_id(self, client, mock_client, comic_id):
        response = client.get(f"{PREFIX}/{comic_id}")

        assert response.status_code == 400
        assert response.json() == {
            "error": "Invalid comic ID",
            "message": "Comic ID must be a positive integer",
        }
        mock_client.fetch_comic.assert_not_awaited()

    def test_comic_not_found(self, client, mock_client):
        mock_client.fetch_comic.side_effect = UpstreamNotFoundError("https://xkcd.com/99999/info.0.json")

        response = client.get(f"{PREFIX}/99999")

        assert response.status_code == 404
        assert response.json() == {
            "error": "Comic not found",
            "message": "The requested comic does not exist",
        }

    def test_comic_transport_error(self, client, mock_client):
        mock_client.fetch_comic.side_effect = TransportError("HTTP 500: Internal Server Error", status_code=500)

        response = client.get(f"{PREFIX}/5")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal Server Error"

    # ------------------------------------------------------------------ #
    # /random
    # ------------------------------------------------------------------ #

    def test_random(self, client):
        response = client.get(f"{PREFIX}/random")

        assert response.status_code == 200
        assert 1 <= response.json()["id"] <= 2900

    def test_random_not_found_is_500(self, client, mock_client):
        mock_client.fetch_comic.side_effect = UpstreamNotFoundError("https://xkcd.com/404/info.0.json")

        with patch.object(ComicService, "get_latest", new_callable=AsyncMock) as mock_latest:
            mock_latest.return_value = MagicMock(id=405)
            response = client.get(f"{PREFIX}/random")

        assert response.status_code == 500
        assert response.json()["message"] == "Something went wrong on our end"

    # ------------------------------------------------------------------ #
    # /search
    # ------------------------------------------------------------------ #

    def test_search_empty_cache(self, client):
        response = client.get(f"{PREFIX}/search", params={"q": "xkcd", "page": 2, "limit": 5})

        assert response.status_code == 200
        assert response.json() == {
            "query": "xkcd",
            "results": [],
            "total": 0,
            "pagination": {"page": 2, "limit": 5, "totalPages": 0},
        }

    def test_search_finds_cached_comics(self, client):
        client.get(f"{PREFIX}/latest")
        client.get(f"{PREFIX}/1")

        response = client.get(f"{PREFIX}/search", params={"q": "Comic"})

        data = response.json()
        assert response.status_code == 200
        assert [comic["id"] for comic in data["results"]] == [1, 2900]
        assert data["pagination"] == {"page": 1, "limit": 10, "totalPages": 1}

    def test_search_trims_query(self, client):
        response = client.get(f"{PREFIX}/search", params={"q": "  xkcd  "})

        assert response.json()["query"] == "xkcd"

    @pytest.mark.parametrize("params,message", [
        ({}, "Query must be between 1 and 100 characters"),
        ({"q": "   "}, "Query must be between 1 and 100 characters"),
        ({"q": "x" * 101}, "Query must be between 1 and 100 characters"),
        ({"q": "xkcd", "page": 0}, "Page must be a positive integer"),
        ({"q": "xkcd", "page": "two"}, "Page must be a positive integer"),
        ({"q": "xkcd", "limit": 51}, "Limit must be between 1 and 50"),
        ({"q": "xkcd", "limit": 0}, "Limit must be between 1 and 50"),
    ])
    def test_search_validation_errors(self, client, params, message):
        response = client.get(f"{PREFIX}/search", params=params)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation Error"
        assert data["message"] == message

    # ------------------------------------------------------------------ #
    # Central error handling
    # ------------------------------------------------------------------ #

    def test_operational_error_uses_explicit_status(self, comics_service):
        with patch.object(ComicService, "get_latest", new_callable=AsyncMock) as mock_latest:
            mock_latest.side_effect = OperationalError("Provider maintenance window", status_code=503)
            response = TestClient(comics_service.app).get(f"{PREFIX}/latest")

        assert response.status_code == 503
        data = response.json()
        assert data["error"] == "Provider maintenance window"
        assert "timestamp" in data

    def test_unclassified_error_is_masked(self, comics_service):
        with patch.object(ComicService, "get_latest", new_callable=AsyncMock) as mock_latest:
            mock_latest.side_effect = RuntimeError("database password is hunter2")
            client = TestClient(comics_service.app, raise_server_exceptions=False)
            response = client.get(f"{PREFIX}/latest", headers={"X-Request-ID": "req-500"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Internal Server Error",
            "message": "Something went wrong on our end",
        }
        assert "hunter2" not in response.text
        assert response.headers["X-Request-ID"] == "req-500"
        assert comics_service.metrics.get_sample_value(
            "http_requests_total", method="GET", endpoint=f"{PREFIX}/latest", status_code="500"
        ) == 1.0
        assert comics_service.metrics.get_sample_value(
            "errors_total", error_type="RuntimeError", service="comics"
        ) == 1.0

    def test_malformed_provider_payload_keeps_request_context(self, client, comics_service, mock_client):
        mock_client.fetch_latest.return_value = {"num": 1}

        response = client.get(f"{PREFIX}/latest", headers={"X-Request-ID": "abc"})

        assert response.status_code == 500
        assert response.json()["error"] == "Internal Server Error"
        assert response.headers["X-Request-ID"] == "abc"
        assert comics_service.metrics.get_sample_value(
            "http_request_duration_seconds_count", method="GET", endpoint=f"{PREFIX}/latest"
        ) == 1.0

    def test_unmatched_path_uses_fixed_endpoint_label(self, client, comics_service):
        client.get("/no/such/path")
        client.get("/another/missing/path")

        assert comics_service.metrics.get_sample_value(
            "http_requests_total", method="GET", endpoint="unmatched", status_code="404"
        ) == 2.0
        assert "/no/such/path" not in comics_service.metrics.render().decode()

    def test_validation_messages_follow_config(self):
        config = ComicsConfig(search_max_query_length=20, search_max_limit=5)
        client = TestClient(ComicsAPIService(config).app)

        missing = client.get(f"{PREFIX}/search")
        too_long = client.get(f"{PREFIX}/search", params={"q": "x" * 21})
        big_limit = client.get(f"{PREFIX}/search", params={"q": "xkcd", "limit": 6})

        assert missing.json()["message"] == "Query must be between 1 and 20 characters"
        assert too_long.json()["message"] == "Query must be between 1 and 20 characters"
        assert big_limit.json()["message"] == "Limit must be between 1 and 5"
