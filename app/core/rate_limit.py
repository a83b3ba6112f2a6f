"""
Per-IP limit on the whole /api surface (100 requests per 15 minutes by default).

Counters live in a `limits` storage: memory:// for a single process, or
redis://... when several workers must share them (RATE_LIMIT_STORAGE_URI).
"""
import logging
import time
from typing import Callable, Iterable, Optional

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from limits import parse
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.core.config import settings

logger = logging.getLogger(__name__)


class APIRateLimiter:
    def __init__(self, limit: str, storage_uri: str = "memory://", namespace: str = "api"):
        self.item = parse(limit)
        self.storage = storage_from_string(storage_uri)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.namespace = namespace

    @property
    def retry_after(self) -> str:
        unit = self.item.GRANULARITY.name
        return f"{self.item.multiples} {unit}s" if self.item.multiples != 1 else f"1 {unit}"

    def hit(self, key: str) -> bool:
        return self.strategy.hit(self.item, self.namespace, key)

    def headers(self, key: str) -> dict:
        stats = self.strategy.get_window_stats(self.item, self.namespace, key)
        return {
            "RateLimit-Limit": str(self.item.amount),
            "RateLimit-Remaining": str(max(stats.remaining, 0)),
            "RateLimit-Reset": str(max(int(stats.reset_time - time.time()), 0)),
        }

    def reset(self) -> None:
        self.storage.reset()


api_rate_limiter = APIRateLimiter(settings.API_RATE_LIMIT, settings.RATE_LIMIT_STORAGE_URI)


class APIRateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects callers over the limit with 429 {error, retryAfter}; adds RateLimit-* headers."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: APIRateLimiter,
        path_prefix: str = "/api",
        exempt_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.exempt_paths = set(exempt_paths or ())

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if not path.startswith(self.path_prefix) or path in self.exempt_paths:
            return await call_next(request)

        key = request.client.host if request.client else "unknown"
        if not self.limiter.hit(key):
            logger.warning("[RATE LIMIT] %s over the API limit on %s %s", key, request.method, path)
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "success": False,
                    "error": "Too many requests from this IP, please try again later.",
                    "code": "RATE_LIMITED",
                    "retryAfter": self.limiter.retry_after,
                },
                headers=self.limiter.headers(key),
            )

        response = await call_next(request)
        response.headers.update(self.limiter.headers(key))
        return response
