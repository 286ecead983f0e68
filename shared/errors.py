"""
Shared error handling for the Comics Access Service.

Failures form a closed set of exception classes. The HTTP layer turns them
into responses with ``build_error_response``, which dispatches on type.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel


INTERNAL_ERROR_MESSAGE = "Something went wrong on our end"


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: Optional[str] = None
    details: Optional[Any] = None
    timestamp: Optional[str] = None


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ComicServiceError(Exception):
    """Base exception for Comics service failures."""

    code = "COMIC_SERVICE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        self.timestamp = _utc_timestamp()
        super().__init__(message)


class ValidationError(ComicServiceError):
    """Malformed input rejected before any I/O."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class InvalidComicIDError(ComicServiceError):
    """Comic identifier is not a positive integer."""

    code = "INVALID_COMIC_ID"

    def __init__(self, comic_id: Any = None):
        super().__init__("Invalid comic ID", {"comic_id": repr(comic_id)})
        self.comic_id = comic_id


class ComicNotFoundError(ComicServiceError):
    """The provider confirmed that the comic does not exist."""

    code = "COMIC_NOT_FOUND"

    def __init__(self, comic_id: int):
        super().__init__("Comic not found", {"comic_id": comic_id})
        self.comic_id = comic_id


class UpstreamNotFoundError(ComicServiceError):
    """The provider answered 404 for a URL."""

    code = "UPSTREAM_NOT_FOUND"

    def __init__(self, url: str):
        super().__init__(f"Not found: {url}", {"url": url, "status_code": 404})
        self.url = url


class TransportError(ComicServiceError):
    """Network or provider infrastructure failure."""

    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str = "Upstream request failed",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if status_code is not None:
            details.setdefault("status_code", status_code)
        super().__init__(message, details)
        self.status_code = status_code


class OperationalError(ComicServiceError):
    """Deliberately raised domain error with an explicit HTTP status."""

    code = "OPERATIONAL_ERROR"

    def __init__(self, message: str, status_code: int, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = status_code


class RandomComicError(ComicServiceError):
    """Any failure raised while serving a random comic."""

    code = "RANDOM_COMIC_ERROR"

    def __init__(self, cause: Exception):
        super().__init__(
            f"Failed to fetch random comic: {cause}",
            {"cause": type(cause).__name__}
        )
        self.cause = cause


def build_error_response(exc: BaseException) -> Tuple[int, Dict[str, Any]]:
    """Map a failure to an HTTP status code and JSON body.

    Unclassified failures are masked behind a generic 500 so that no
    internal detail reaches the client.
    """
    if isinstance(exc, ValidationError):
        status_code = 400
        body = ErrorResponse(error="Validation Error", message=exc.message, details=exc.details or None)
    elif isinstance(exc, ComicNotFoundError):
        status_code = 404
        body = ErrorResponse(error="Comic not found", message="The requested comic does not exist")
    elif isinstance(exc, InvalidComicIDError):
        status_code = 400
        body = ErrorResponse(error="Invalid comic ID", message="Comic ID must be a positive integer")
    elif isinstance(exc, OperationalError):
        status_code = exc.status_code
        body = ErrorResponse(error=exc.message, timestamp=exc.timestamp)
    else:
        status_code = 500
        body = ErrorResponse(error="Internal Server Error", message=INTERNAL_ERROR_MESSAGE)

    return status_code, body.model_dump(exclude_none=True)
