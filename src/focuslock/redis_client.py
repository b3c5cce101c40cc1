"""Redis client used for rate-limit counters and the readiness probe.

Redis is optional at runtime: nothing in the student workflow depends on it,
so callers treat a missing or unreachable client as "skip".
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

_client: redis.Redis | None = None


async def init_redis(url: str, max_connections: int = 20) -> None:
    """Create the shared client. Connections are opened lazily."""
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
    """Return the shared client. Raises RuntimeError before ``init_redis``."""
    if _client is None:
        msg = "Redis not initialized"
        raise RuntimeError(msg)
    return _client


async def check_redis() -> str:
    """Readiness check result: ``"ok"`` or ``"error: ..."``."""
    try:
        await get_redis().ping()
    except (RuntimeError, RedisError, OSError) as exc:
        return f"error: {exc}"
    return "ok"
