"""Per-client request limits over fixed Redis windows."""

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from vca.redis_client import get_redis

logger = structlog.get_logger()

_UNLIMITED_PATHS = frozenset({"/health", "/ready"})


def client_address(request: Request) -> str:
    """First hop of X-Forwarded-For when the site proxy sets it, else the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.limit = requests_per_window
        self.window_seconds = window_seconds

    def _limit_headers(self, used: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.limit - used)),
        }

    async def _hit(self, client: str) -> int | None:
        """Count one request for ``client`` in the current window; None when Redis is unusable."""
        key = f"ratelimit:{client}:{int(time.time()) // self.window_seconds}"
        try:
            pipe = get_redis().pipeline()
        except RuntimeError:
            return None
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        try:
            used, _ = await pipe.execute()
        except RedisError as e:
            logger.warning("rate_limit_unavailable", error=str(e))
            return None
        return int(used)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _UNLIMITED_PATHS:
            return await call_next(request)

        client = client_address(request)
        used = await self._hit(client)
        if used is None:
            return await call_next(request)

        if used > self.limit:
            logger.info("rate_limited", client=client, path=request.url.path)
            return JSONResponse(
                status_code=429,
                content={"detail": "Too many requests; try again shortly"},
                headers={"Retry-After": str(self.window_seconds), **self._limit_headers(used)},
            )

        response = await call_next(request)
        response.headers.update(self._limit_headers(used))
        return response
