"""Cache Module - Caching services."""
from core.cache.connection import create_redis_connection
from core.cache.weight_cache import (
    WeightCacheService,
    validate_weight_rows,
    WEIGHTS_CACHE_KEY,
    WEIGHTS_CACHE_TTL_SECONDS,
)
from core.cache.signal_cache import SignalCacheService, SIGNAL_CACHE_TTL_SECONDS

__all__ = [
    'create_redis_connection',
    'WeightCacheService',
    'validate_weight_rows',
    'WEIGHTS_CACHE_KEY',
    'WEIGHTS_CACHE_TTL_SECONDS',
    'SignalCacheService',
    'SIGNAL_CACHE_TTL_SECONDS',
]
