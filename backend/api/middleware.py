"""
API middleware stack.

- Request ID injection (X-Request-ID header)
- Structured request/response logging
- Domain and global exception handlers
- CORS configuration
"""
from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shared.config import get_settings
from shared.errors import InvalidCallsign, RecordNotFound, RefreshBusy
from shared.utils.logging import get_logger

logger = get_logger(__name__)

QUIET_PATHS = ("/health", "/metrics", "/api/logs")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id (client-supplied X-Request-ID or a fresh one),
    binds it into the structlog context for everything logged while handling
    the request, and logs one ``http_request`` line per call.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        path = request.url.path
        start = time.monotonic()

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "http_request_error",
                    method=request.method,
                    path=path,
                    duration_ms=round((time.monotonic() - start) * 1000, 2),
                    error=str(exc),
                    exc_info=True,
                )
                raise

            # The log viewer polls /api/logs; logging it would feed the file it reads.
            if path not in QUIET_PATHS:
                logger.info(
                    "http_request",
                    method=request.method,
                    path=path,
                    status=response.status_code,
                    duration_ms=round((time.monotonic() - start) * 1000, 2),
                    client=request.client.host if request.client else "unknown",
                )

        response.headers["X-Request-ID"] = request_id
        return response


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def setup_exception_handlers(app: FastAPI) -> None:
    """Register domain and global exception handlers."""

    @app.exception_handler(InvalidCallsign)
    async def invalid_callsign_handler(request: Request, exc: InvalidCallsign) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RecordNotFound)
    async def not_found_record_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(RefreshBusy)
    async def refresh_busy_handler(request: Request, exc: RefreshBusy) -> JSONResponse:
        return _error(429, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "invalid request") if errors else "invalid request"
        return _error(400, message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            request_id=request_id,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "request_id": request_id,
            },
        )

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return _error(404, "not found")


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware."""
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def setup_middleware(app: FastAPI) -> None:
    """Apply all middleware to the FastAPI app in the correct order."""
    # Starlette runs the last-added middleware first; CORS stays outermost for preflight.
    app.add_middleware(RequestContextMiddleware)
    setup_cors(app)
    setup_exception_handlers(app)
