"""Optional Redis client: rate-limit counters and pub/sub event fan-out.

The API runs without Redis when ``BETTHAT_REDIS_URL`` is empty; callers get
``None`` from ``get_redis_or_none`` and skip the Redis-backed behaviour.
"""

import json
from typing import Any

import redis.asyncio as redis
import structlog

logger = structlog.get_logger()

CHANNEL_BET_RESOLVED = "pubsub:bet_resolved"
CHANNEL_ACHIEVEMENT_TIER = "pubsub:achievement_tier"

_pool: redis.Redis | None = None


async def init_redis(url: str | None) -> None:
    """Create the client, or leave Redis disabled when no URL is configured."""
    global _pool  # noqa: PLW0603
    if not url:
        logger.info("redis_disabled")
        return
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )


async def close_redis() -> None:
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the Redis client. Raises RuntimeError when Redis is disabled or not initialized."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_redis_or_none() -> redis.Redis | None:
    """FastAPI dependency: the client, or None when Redis is disabled."""
    return _pool


async def publish_event(client: Any, channel: str, payload: dict[str, Any]) -> None:  # noqa: ANN401
    """Publish a JSON event. A missing client is a no-op; failures are logged, never raised."""
    if client is None:
        return
    try:
        await client.publish(channel, json.dumps(payload, default=str))
    except Exception:
        logger.warning("event_publish_failed", channel=channel, exc_info=True)
