"""Weight Cache Service - Redis read-through cache for scoring weights."""
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError
from redis import Redis, RedisError

from core.exceptions import ConfigError
from core.scorer.models import WeightConfig

logger = logging.getLogger(__name__)

WEIGHTS_CACHE_KEY = "scoring:weights"
WEIGHTS_CACHE_TTL_SECONDS = 300  # 5 minutes


def validate_weight_rows(rows: Iterable[Any]) -> List[WeightConfig]:
    """
    Validate loosely-typed weight rows into WeightConfig.

    Malformed rows (missing fields, NaN, weight outside [0, 1], ...) are
    rejected with an error log. Duplicate keys keep the first row.
    """
    weights: List[WeightConfig] = []
    seen = set()
    for row in rows:
        try:
            weight = WeightConfig.model_validate(row)
        except ValidationError as e:
            key = row.get('key') if isinstance(row, dict) else None
            logger.error(f"Rejecting malformed scoring weight row {key!r}: {e.errors()}")
            continue

        if weight.key in seen:
            logger.warning(f"Duplicate scoring weight key '{weight.key}', keeping the first")
            continue

        seen.add(weight.key)
        weights.append(weight)
    return weights


class WeightCacheService:
    """
    Read-through cache of scoring weights in front of the persistent store.

    Staleness is bounded by the TTL. Administrative edits call invalidate()
    before they are considered complete.
    """

    def __init__(
        self,
        redis_conn: Redis,
        weight_loader: Callable[[], List[Dict[str, Any]]],
        ttl_seconds: int = WEIGHTS_CACHE_TTL_SECONDS
    ):
        """
        Args:
            redis_conn: Redis client (decode_responses=True)
            weight_loader: Loads raw weight rows from the persistent store
            ttl_seconds: Cache entry lifetime
        """
        self._redis = redis_conn
        self._weight_loader = weight_loader
        self.ttl_seconds = ttl_seconds

    def get_weights(self) -> List[WeightConfig]:
        """
        Return validated weights, from cache when fresh.

        Raises:
            ConfigError: If the store is unreachable or holds no usable weights
        """
        cached = self._read_cache()
        if cached is not None:
            return cached

        try:
            rows = self._weight_loader()
        except Exception as e:
            raise ConfigError(f"Unable to load scoring weights: {e}") from e

        weights = validate_weight_rows(rows)
        if not weights:
            raise ConfigError("No valid scoring weights configured")

        self._write_cache(weights)
        return weights

    def invalidate(self) -> None:
        """
        Drop the cached weights.

        Raises:
            ConfigError: If the cache entry could not be deleted
        """
        try:
            self._redis.delete(WEIGHTS_CACHE_KEY)
            logger.info("Scoring weights cache invalidated")
        except RedisError as e:
            raise ConfigError(f"Failed to invalidate scoring weights cache: {e}") from e

    def _read_cache(self) -> Optional[List[WeightConfig]]:
        try:
            data = self._redis.get(WEIGHTS_CACHE_KEY)
        except RedisError as e:
            logger.warning(f"Error reading weights cache, falling back to store: {e}")
            return None

        if not data:
            logger.debug("Weights cache miss")
            return None

        try:
            rows = json.loads(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt weights cache entry, reloading: {e}")
            return None

        weights = validate_weight_rows(rows if isinstance(rows, list) else [])
        if not weights:
            return None

        logger.debug(f"Weights cache hit ({len(weights)} weights)")
        return weights

    def _write_cache(self, weights: List[WeightConfig]) -> None:
        try:
            payload = json.dumps([w.model_dump() for w in weights])
            self._redis.set(WEIGHTS_CACHE_KEY, payload, ex=self.ttl_seconds)
        except RedisError as e:
            logger.warning(f"Error writing weights cache: {e}")
