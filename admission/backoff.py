#!/usr/bin/env python3
"""
Backoff Store - per (user, provider) refresh throttle kept in Redis.

Independent of the job queue's own retry policy: queue retries cover one
job's attempts, this store protects an external provider from being
hammered for the same user across many jobs.

State per key refresh:backoff:{provider}:{user_id}:
    {"attempts": int, "next_retry_at": epoch seconds}
"""

import json
import logging
import math
import time
from dataclasses import dataclass, asdict
from typing import Callable, Optional

from redis import Redis

logger = logging.getLogger(__name__)


def compute_backoff_delay(attempts: int, initial_delay: float, max_delay: float) -> float:
    """
    Delay after the given number of consecutive failures.

    initial, 2*initial, 4*initial, ... capped at max_delay.
    """
    if attempts <= 0:
        return 0.0
    return float(min(initial_delay * (2 ** (attempts - 1)), max_delay))


@dataclass
class BackoffState:
    attempts: int = 0
    next_retry_at: float = 0.0

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, data) -> Optional["BackoffState"]:
        if not data:
            return None
        try:
            raw = json.loads(data)
            return cls(attempts=int(raw['attempts']), next_retry_at=float(raw['next_retry_at']))
        except (TypeError, ValueError, KeyError):
            logger.warning(f"Ignoring corrupt backoff state: {data!r}")
            return None


class BackoffStore:
    """Exponential per (user, provider) throttle with atomic updates."""

    KEY_PREFIX = "refresh:backoff:"

    def __init__(
        self,
        redis_conn: Redis,
        initial_delay_seconds: float = 30.0,
        max_delay_seconds: float = 3600.0,
        max_attempts: int = 16,
        clock: Callable[[], float] = time.time
    ):
        self._redis = redis_conn
        self.initial_delay_seconds = initial_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.max_attempts = max(1, max_attempts)
        self._clock = clock

    def _make_key(self, user_id: str, provider: str) -> str:
        return f"{self.KEY_PREFIX}{provider}:{user_id}"

    def get_state(self, user_id: str, provider: str) -> Optional[BackoffState]:
        return BackoffState.from_json(self._redis.get(self._make_key(user_id, provider)))

    def should_attempt(self, user_id: str, provider: str) -> bool:
        """True when there is no backoff state or its retry time has passed."""
        state = self.get_state(user_id, provider)
        if state is None:
            return True
        return self._clock() >= state.next_retry_at

    def record_failure(self, user_id: str, provider: str) -> BackoffState:
        """
        Bump the failure counter and push next_retry_at out.

        The read-modify-write runs under WATCH/MULTI; redis-py retries the
        callable when a concurrent writer touches the key.
        """
        key = self._make_key(user_id, provider)

        def _update(pipe) -> BackoffState:
            current = BackoffState.from_json(pipe.get(key))
            previous = current.attempts if current else 0
            attempts = min(previous + 1, self.max_attempts)
            delay = compute_backoff_delay(attempts, self.initial_delay_seconds, self.max_delay_seconds)
            state = BackoffState(attempts=attempts, next_retry_at=self._clock() + delay)

            pipe.multi()
            pipe.set(key, state.to_json(), ex=max(1, math.ceil(2 * delay)))
            return state

        state = self._redis.transaction(_update, key, value_from_callable=True)
        logger.info(
            f"Backoff for {provider}:{user_id} now {state.attempts} failure(s), "
            f"next retry at {state.next_retry_at:.0f}"
        )
        return state

    def record_success(self, user_id: str, provider: str) -> None:
        self._redis.delete(self._make_key(user_id, provider))
