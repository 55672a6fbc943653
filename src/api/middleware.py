"""API middleware: CORS, request logging with request ids, and error handling.

# ─── MIDDLEWARE STACK ────────────────────────────────────────────────
#
#   create_app() adds, in order:
#     ErrorHandlingMiddleware     (innermost, next to the routes)
#     RequestLoggingMiddleware
#     CORSMiddleware              (outermost)
#
#   Request:   CORS -> RequestLogging -> ErrorHandling -> route
#
# RequestLoggingMiddleware binds ``request_id`` into structlog's context
# vars before the route runs, so every ocr_* event emitted while a
# screenshot is processed carries the id of the upload that caused it.
# ErrorHandlingMiddleware turns ScreenTextError into an ErrorResponse,
# so the logging layer always sees a real status code.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse
from src.utils.errors import (
    ConfigurationError,
    ImageFormatError,
    ProviderUnavailableError,
    ScreenTextError,
)
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Polled by load balancers; logged at debug to keep the access log readable.
_QUIET_PATHS = frozenset({"/api/v1/health"})

# Most specific class first.
_STATUS_BY_ERROR: tuple[tuple[type[ScreenTextError], int], ...] = (
    (ImageFormatError, 415),
    (ProviderUnavailableError, 503),
    (ConfigurationError, 500),
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware for browser clients uploading screenshots.

    The API is read-and-upload only, so just GET, POST and OPTIONS are
    allowed.  Credentials are only allowed with an explicit origin list;
    browsers reject them together with the ``*`` wildcard anyway.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )


# ---------------------------------------------------------------------------
# Request logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and log it once it completes."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            path = request.url.path
            log = _logger.debug if path in _QUIET_PATHS else _logger.info
            log(
                "http_request",
                method=request.method,
                path=path,
                status=response.status_code if response else 500,
                upload_bytes=request.headers.get("content-length"),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id")


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def status_for_error(exc: ScreenTextError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``ScreenTextError`` into a JSON :class:`ErrorResponse`.

    Provider problems never reach this layer; the decision engine turns
    them into attempts.  What does arrive is an unusable upload (415), a
    missing backend (503) or a fault such as ``FallbackGenerationError``
    (500).  Tracebacks stay in the server log.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except ScreenTextError as exc:
            status_code = status_for_error(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=request.url.path,
                status=status_code,
                exc_info=status_code >= 500,
            )
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())
