"""
Base service class for the Comics Access Service.
"""

from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST
from typing import Dict, Any, Optional
import time
import os

from shared.config import ComicsConfig, get_config
from shared.logging import configure_logging, get_logger, get_request_id, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import ComicServiceError, ValidationError, build_error_response


class BaseService:
    """Base service class with common functionality."""

    # Query/path parameter name -> client-facing validation message
    validation_messages: Dict[str, str] = {}

    def __init__(self, service_name: str, config: Optional[ComicsConfig] = None):
        self.service_name = service_name
        self.config = config or get_config()
        self.port = self.config.port
        self.logger = get_logger(f"{service_name}.api")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Comics Access Service - {self.service_name.title()}",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if self.config.env == "local" else [],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        @self.app.middleware("http")
        async def add_request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            start_time = time.time()

            try:
                response = await call_next(request)
            except Exception as exc:
                response = self._error_response(request, exc)

            try:
                duration = time.time() - start_time

                # Route templates only, so unknown paths share one label value
                route = request.scope.get("route")
                endpoint = getattr(route, "path", None) or "unmatched"

                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=endpoint,
                    status_code=response.status_code,
                    duration=duration
                )

                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2)
                )

                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            try:
                dependencies = await self._check_dependencies()
                self.metrics.record_health_check("ok")

                return {
                    "service": self.service_name,
                    "status": "ok",
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Route parameter shape errors through the central handler."""
            errors = jsonable_encoder(exc.errors())
            return self._error_response(request, ValidationError(
                self._validation_message(errors),
                {"errors": errors}
            ))

        @self.app.exception_handler(ComicServiceError)
        async def comic_service_exception_handler(request: Request, exc: ComicServiceError):
            """Handle classified service failures."""
            return self._error_response(request, exc)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle unclassified exceptions."""
            return self._error_response(request, exc)

    def _validation_message(self, errors) -> str:
        """Pick the client-facing message for the first failing parameter."""
        for error in errors:
            loc = error.get("loc") or ()
            field = loc[-1] if loc else None
            if field in self.validation_messages:
                return self.validation_messages[field]
        if errors:
            return errors[0].get("msg", "Validation failed")
        return "Validation failed"

    def _error_response(self, request: Request, exc: Exception) -> JSONResponse:
        """Log a failure and render it via the shared error formatter."""
        status_code, body = build_error_response(exc)
        log = self.logger.error if status_code >= 500 else self.logger.warning
        log(
            "Error occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url),
            method=request.method,
            request_id=get_request_id(),
            status_code=status_code,
            exc_info=exc if status_code >= 500 else False,
        )
        self.metrics.record_error(type(exc).__name__)
        return JSONResponse(status_code=status_code, content=body)

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
