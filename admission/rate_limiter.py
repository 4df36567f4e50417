#!/usr/bin/env python3
"""
Sliding-window rate limiter shared by every worker of a queue.

Each granted execution is a member of a Redis sorted set scored by its
timestamp. A Lua script trims entries older than the window, counts the
rest and either admits the caller or reports how long until the oldest
entry leaves the window. The script runs atomically so concurrent workers
never over-admit.
"""

import logging
import time
import uuid
from typing import Callable

from redis import Redis

from core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

# Returns 0 when admitted, else milliseconds until a slot frees up
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
if count < limit then
    redis.call('ZADD', key, now, member)
    redis.call('PEXPIRE', key, window)
    return 0
end

local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local wait = tonumber(oldest[2]) + window - now
if wait < 1 then
    wait = 1
end
return wait
"""


class SlidingWindowRateLimiter:
    """
    At most max_jobs grants per window_seconds, across all processes.

    acquire() blocks until a slot is granted, failing fast once the total
    wait would exceed max_wait_seconds.
    """

    KEY_PREFIX = "queue:rate_limit:"

    def __init__(
        self,
        redis_conn: Redis,
        name: str,
        max_jobs: int,
        window_seconds: float,
        max_wait_seconds: float = 120.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.name = name
        self.max_jobs = max_jobs
        self.window_seconds = window_seconds
        self.max_wait_seconds = max_wait_seconds
        self.key = f"{self.KEY_PREFIX}{name}"
        self._clock = clock
        self._sleep = sleep
        self._script = redis_conn.register_script(SLIDING_WINDOW_SCRIPT)

    def try_acquire(self) -> float:
        """Try once. Returns 0 if granted, else seconds until a slot frees."""
        now_ms = int(self._clock() * 1000)
        member = f"{now_ms}-{uuid.uuid4().hex}"
        wait_ms = self._script(
            keys=[self.key],
            args=[now_ms, int(self.window_seconds * 1000), self.max_jobs, member]
        )
        return max(0.0, float(wait_ms) / 1000.0)

    def acquire(self) -> float:
        """
        Block until a slot is granted. Returns the total time waited.

        Raises:
            RateLimitExceededError: If waiting would exceed max_wait_seconds
        """
        waited = 0.0
        while True:
            wait = self.try_acquire()
            if wait <= 0:
                return waited

            if waited + wait > self.max_wait_seconds:
                raise RateLimitExceededError(self.name, waited)

            logger.info(f"Rate limit reached for '{self.name}', waiting {wait:.1f}s")
            self._sleep(wait)
            waited += wait
