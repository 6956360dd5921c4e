"""
FastAPI middleware for observability and operational safety.

This module provides:
- Request/Response logging with request_id propagation
- Per-client rate limiting for the API routes
- Request body size limit

Middleware Stack Order (in main.py, outermost first):
    1. LoggingMiddleware (captures everything, including rejected requests)
    2. BodySizeLimitMiddleware
    3. RateLimitMiddleware
    4. CORS Middleware
    5. Application routes
"""
import logging
import math
import time
import uuid
from typing import Callable, Optional

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from api.responses import error_response
from core.logging_config import clear_request_id, set_request_id
from core.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# =============================================================================
# LOGGING MIDDLEWARE
# =============================================================================

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/Response logging middleware with request_id propagation.

    - Generates a short request_id for each request
    - Logs request start and completion with duration
    - Adds X-Request-ID header to responses
    """

    # Paths to exclude from detailed logging (reduce noise)
    EXCLUDED_PATHS = {"/api/health", "/api/ready", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        set_request_id(request_id)

        method = request.method
        path = request.url.path
        start_time = time.perf_counter()

        if path not in self.EXCLUDED_PATHS:
            logger.info(
                "Request started",
                extra={
                    "method": method,
                    "path": path,
                    "query": str(request.query_params) if request.query_params else None,
                }
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed with exception",
                extra={"method": method, "path": path, "error": str(e)}
            )
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            clear_request_id()

        if path not in self.EXCLUDED_PATHS:
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                "Request completed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                    "request_id": request_id,
                }
            )

        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# RATE LIMIT MIDDLEWARE
# =============================================================================

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects clients that exceed the request budget with 429.

    Only paths under ``path_prefix`` are counted; the client key is the
    remote address.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_requests: int = 100,
        window_seconds: int = 900,
        path_prefix: str = "/api",
        limiter: Optional[RateLimiter] = None,
    ):
        super().__init__(app)
        self.path_prefix = path_prefix
        self.limiter = limiter or RateLimiter(max_requests=max_requests, window_seconds=window_seconds)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        client_key = request.client.host if request.client else "unknown"
        allowed, retry_after = self.limiter.is_allowed(client_key)
        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"client": client_key, "retry_after": retry_after}
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=error_response("Too many requests, please try again later"),
                headers={"Retry-After": str(math.ceil(retry_after))},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.get_remaining(client_key))
        return response


# =============================================================================
# BODY SIZE LIMIT MIDDLEWARE
# =============================================================================

class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests whose declared Content-Length exceeds ``max_bytes`` with 413."""

    def __init__(self, app: ASGIApp, max_bytes: int = 1048576):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.max_bytes:
            logger.warning(
                "Request body too large",
                extra={"content_length": int(content_length), "max_bytes": self.max_bytes}
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content=error_response("Request body is too large"),
            )
        return await call_next(request)
