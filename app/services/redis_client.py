from typing import Optional

import redis

from app.config.settings import settings

_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Return the shared Redis client (built lazily, connects on first command)."""
    global _client
    if _client is None:
        _client = redis.Redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
    return _client


def close_redis() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
