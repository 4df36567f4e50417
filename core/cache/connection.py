"""Redis connection helpers shared by caches, backoff store and queues."""
import logging
from typing import Optional
from urllib.parse import urlparse

from redis import Redis

logger = logging.getLogger(__name__)


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


def create_redis_connection(
    redis_url: str,
    password: Optional[str] = None,
    decode_responses: bool = True,
    socket_timeout: int = 5
) -> Redis:
    """
    Create a Redis client.

    Caches use decode_responses=True. RQ pickles job payloads and needs a
    separate connection with decode_responses=False.
    """
    conn = Redis.from_url(
        redis_url,
        password=password,
        decode_responses=decode_responses,
        socket_connect_timeout=socket_timeout,
        socket_timeout=socket_timeout
    )
    logger.info(f"Redis client created for {_sanitize_url(redis_url)}")
    return conn
