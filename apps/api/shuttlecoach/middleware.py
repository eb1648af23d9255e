"""
Production Middleware
=====================

Rate limiting and request logging.

Usage:
    from shuttlecoach.middleware import setup_middleware
    setup_middleware(app)
"""

import hashlib
import logging
import time
import uuid
from collections import defaultdict
from typing import Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shuttlecoach.config import settings

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> str:
    """Extract client IP, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First IP in the list is the original client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


# =============================================================================
# REQUEST LOGGING
# =============================================================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with timing and metadata, and tags the response with
    an ``X-Request-ID`` header.
    """

    # Probes are not logged
    EXCLUDE_PATHS = {"/health", "/ready", "/live", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDE_PATHS:
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            status_code = response.status_code if response else 500

            log_data = {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": str(request.query_params) if request.query_params else None,
                "status": status_code,
                "duration_ms": round(duration_ms, 2),
                "client_ip": _client_ip(request),
            }

            if status_code >= 500:
                logger.error("Request: %s", log_data)
            elif status_code >= 400:
                logger.warning("Request: %s", log_data)
            else:
                logger.info("Request: %s", log_data)

            if response:
                response.headers["X-Request-ID"] = request_id


# =============================================================================
# RATE LIMITING
# =============================================================================

class InMemoryRateLimiter:
    """
    In-memory sliding window rate limiter.

    State is per process; each instance of the service limits on its own.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        burst_limit: int = 100,
        window_seconds: int = 60,
    ):
        self.requests_per_minute = requests_per_minute
        self.burst_limit = burst_limit
        self.window_seconds = window_seconds

        # {client_key: [timestamp, ...]}
        self._requests: Dict[str, list] = defaultdict(list)
        self._last_cleanup = time.time()

    def is_allowed(self, client_key: str) -> tuple[bool, int]:
        """
        Check if request is allowed.

        Returns:
            (is_allowed, requests_remaining)
        """
        now = time.time()
        window_start = now - self.window_seconds

        # Sweep idle keys once per window
        if now - self._last_cleanup >= self.window_seconds:
            self.cleanup()

        requests = self._requests[client_key]
        requests[:] = [r for r in requests if r > window_start]

        if len(requests) >= min(self.requests_per_minute, self.burst_limit):
            return False, 0

        requests.append(now)
        return True, max(0, self.requests_per_minute - len(requests))

    def cleanup(self):
        """Remove expired entries to prevent memory growth."""
        now = time.time()
        window_start = now - self.window_seconds
        self._last_cleanup = now

        for key in list(self._requests.keys()):
            self._requests[key] = [r for r in self._requests[key] if r > window_start]
            if not self._requests[key]:
                del self._requests[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware.

    Limits requests per authenticated subject, or per client IP for
    anonymous calls.
    """

    EXEMPT_PATHS = {"/health", "/ready", "/live", "/docs", "/openapi.json"}

    def __init__(
        self,
        app: FastAPI,
        requests_per_minute: int = 60,
        burst_limit: int = 100,
    ):
        super().__init__(app)
        self.limiter = InMemoryRateLimiter(
            requests_per_minute=requests_per_minute,
            burst_limit=burst_limit,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        client_key = self._get_client_key(request)
        is_allowed, remaining = self.limiter.is_allowed(client_key)

        if not is_allowed:
            logger.warning("Rate limit exceeded for %s", client_key)
            retry_after = self.limiter.window_seconds
            return ORJSONResponse(
                status_code=429,
                content={
                    "detail": {
                        "error": "rate_limit_exceeded",
                        "message": "Too many requests. Please slow down.",
                        "retry_after": retry_after,
                    }
                },
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    def _get_client_key(self, request: Request) -> str:
        subject = request.headers.get(settings.auth_subject_header)
        if subject:
            # Hash the subject so raw ids never reach the logs
            return f"subject:{hashlib.sha256(subject.encode()).hexdigest()[:12]}"
        return f"ip:{_client_ip(request)}"


# =============================================================================
# SETUP FUNCTION
# =============================================================================

def setup_middleware(app: FastAPI) -> None:
    """Configure CORS, rate limiting and request logging on the app."""
    cors_origins = settings.cors_origins_list

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining"],
    )

    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_minute=int(settings.rate_limit_requests),
            burst_limit=int(settings.rate_limit_burst),
        )

    # Outermost, so rejected requests are logged too
    app.add_middleware(RequestLoggingMiddleware)

    logger.info(
        "Middleware configured: rate_limit=%s (%s/min), cors_origins=%d origins",
        "enabled" if settings.rate_limit_enabled else "disabled",
        settings.rate_limit_requests,
        len(cors_origins),
    )
