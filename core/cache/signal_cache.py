"""Signal Cache Service - short-lived cache of refreshed raw signal values."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from redis import Redis, RedisError

from core.scorer.models import SignalInput

logger = logging.getLogger(__name__)

# 24 hours in seconds
SIGNAL_CACHE_TTL_SECONDS = 24 * 60 * 60


class SignalCacheService:
    """
    Keeps per (provider, user) raw signal values warm for later scoring
    runs and admin backfills. Keys: signal:{provider}:{user_id}.
    """

    def __init__(self, redis_conn: Redis, ttl_seconds: int = SIGNAL_CACHE_TTL_SECONDS):
        self._redis = redis_conn
        self.ttl_seconds = ttl_seconds

    def _make_key(self, provider: str, user_id: str) -> str:
        return f"signal:{provider}:{user_id}"

    def set_signal(
        self,
        provider: str,
        user_id: str,
        signal: SignalInput,
        ttl_seconds: Optional[int] = None
    ) -> None:
        """
        Cache a signal value with TTL.

        Unlike reads, a failed write raises RedisError: the cached value is
        the whole output of a refresh job.
        """
        ttl = ttl_seconds or self.ttl_seconds
        cache_entry = {
            "key": signal.key,
            "raw_value": signal.raw_value,
            "cached_at": datetime.now(timezone.utc).isoformat(),
            "ttl_seconds": ttl
        }
        self._redis.setex(self._make_key(provider, user_id), ttl, json.dumps(cache_entry))
        logger.debug(f"Cached {provider} signal for {user_id} (TTL: {ttl}s)")

    def get_entry(self, provider: str, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            data = self._redis.get(self._make_key(provider, user_id))
        except RedisError as e:
            logger.warning(f"Error reading signal cache: {e}")
            return None

        if not data:
            return None
        try:
            return json.loads(data)
        except (TypeError, ValueError):
            logger.warning(f"Corrupt signal cache entry for {provider}:{user_id}")
            return None

    def get_signal(self, provider: str, user_id: str) -> Optional[SignalInput]:
        entry = self.get_entry(provider, user_id)
        if not entry:
            return None
        try:
            return SignalInput(key=entry["key"], raw_value=float(entry["raw_value"]))
        except (KeyError, TypeError, ValueError):
            return None

    def delete_signal(self, provider: str, user_id: str) -> bool:
        try:
            self._redis.delete(self._make_key(provider, user_id))
            return True
        except RedisError as e:
            logger.warning(f"Error deleting from signal cache: {e}")
            return False
