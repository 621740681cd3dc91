"""
API Middleware

- Request logging, with the request id bound into every log line
- Per-client rate limiting (in memory, per worker)
- Security headers
"""

import asyncio
import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Iterable, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id and logs start, finish and duration of each request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        logger.info("Request started", client=request.client.host if request.client else None)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", duration_ms=round((time.perf_counter() - started) * 1000, 2))
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info("Request completed", status_code=response.status_code, duration_ms=duration_ms)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms}ms"
        return response


class SlidingWindowLimiter:
    """
    Counts hits per key over the last ``window_seconds``.

    ``hit`` records the attempt only when it is allowed.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Forget clients whose newest hit has left the window."""
        for key in [k for k, hits in self._hits.items() if not hits or now - hits[-1] >= self.window_seconds]:
            del self._hits[key]
        self._last_sweep = now

    async def hit(self, key: str) -> Tuple[bool, int]:
        """Returns (allowed, remaining)."""
        now = self.clock()
        async with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()

            if len(hits) >= self.max_requests:
                if not hits:
                    del self._hits[key]
                return False, 0

            hits.append(now)
            return True, self.max_requests - len(hits)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients over the limit with 429; health and metrics paths are exempt"""

    def __init__(
        self,
        app,
        max_requests: int = 100,
        window_seconds: int = 60,
        exempt_prefixes: Iterable[str] = ("/api/v1/health", "/metrics"),
    ):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(max_requests, window_seconds)
        self.exempt_prefixes = tuple(exempt_prefixes)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(self.exempt_prefixes):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        allowed, remaining = await self.limiter.hit(client)
        limit_headers = {
            "X-RateLimit-Limit": str(self.limiter.max_requests),
            "X-RateLimit-Remaining": str(remaining),
        }

        if not allowed:
            logger.warning("Rate limit exceeded", client=client)
            return JSONResponse(
                status_code=429,
                content={"detail": {"message": "Rate limit exceeded", "code": "RateLimited"}},
                headers={"Retry-After": str(self.limiter.window_seconds), **limit_headers},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers; reports are never cached by intermediaries"""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        if request.url.path.endswith("/report") or "/reports/" in request.url.path:
            response.headers["Cache-Control"] = "no-store"
        return response
