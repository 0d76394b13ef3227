"""
API middleware stack.

- Request ID injection (X-Request-ID header)
- Structured request/response logging
- Domain error → JSON response mapping
- CORS configuration
"""
from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from shared.config import Environment, get_settings
from shared.errors import ScoreboardError, ValidationError
from shared.utils.logging import get_logger

logger = get_logger(__name__)

_QUIET_PATHS = ("/health", "/ready", "/metrics")
_HTTP_ERROR_CODES = {404: "not_found", 405: "method_not_allowed"}


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Injects a unique X-Request-ID header into every request/response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one structured line per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start = time.monotonic()
        response = await call_next(request)
        logger.info(
            "http_request",
            method=request.method,
            path=path,
            status=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            request_id=getattr(request.state, "request_id", "unknown"),
            client=request.client.host if request.client else "unknown",
        )
        return response


def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": message,
            "request_id": getattr(request.state, "request_id", "unknown"),
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(ScoreboardError)
    async def domain_error_handler(request: Request, exc: ScoreboardError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log("request_rejected", path=request.url.path, error=exc.code, detail=exc.message)
        return _error_response(request, exc.status_code, exc.code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return _error_response(request, exc.status_code, code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg', 'invalid')}" if field else first.get("msg", "Invalid request body")
        return _error_response(request, ValidationError.status_code, ValidationError.code, message)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            request_id=getattr(request.state, "request_id", "unknown"),
            exc_info=True,
        )
        return _error_response(request, 500, "internal_server_error", "An unexpected error occurred")


def setup_cors(app: FastAPI) -> None:
    """Configure CORS middleware."""
    settings = get_settings()
    origins = settings.cors_origins
    if settings.environment == Environment.PRODUCTION and origins == ["*"]:
        logger.warning("cors_wildcard_in_production")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )


def setup_middleware(app: FastAPI) -> None:
    """Apply all middleware to the FastAPI app in the correct order."""
    setup_cors(app)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    setup_exception_handlers(app)
