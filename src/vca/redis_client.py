"""Shared Redis client.

The cohort API keeps no data in Redis; the client backs the request rate
limiter and the readiness probe. Both run without it: the limiter lets
requests through and ``/ready`` reports the service as degraded.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
    _client = None


def get_redis() -> redis.Redis:
    """Return the client, or raise RuntimeError when startup never connected one."""
    if _client is None:
        raise RuntimeError("Redis client is not configured")
    return _client


async def ping_redis() -> str:
    """Ping Redis; returns "ok" or the error text."""
    try:
        await get_redis().ping()
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"
