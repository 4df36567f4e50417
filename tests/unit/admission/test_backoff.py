"""
Tests for the per (user, provider) backoff store.

Redis is a Mock whose WATCH/MULTI transaction runs the callable against
an in-memory dict.
"""
import json
import unittest
from unittest.mock import Mock

from admission.backoff import BackoffState, BackoffStore, compute_backoff_delay


class TestComputeBackoffDelay(unittest.TestCase):

    def test_sequence_doubles_until_cap(self):
        delays = [compute_backoff_delay(n, 30, 3600) for n in range(1, 12)]

        self.assertEqual(delays[:8], [30, 60, 120, 240, 480, 960, 1920, 3600])
        self.assertTrue(all(d == 3600 for d in delays[7:]))
        for previous, current in zip(delays, delays[1:]):
            self.assertGreaterEqual(current, previous)
            self.assertLessEqual(current, 3600)
            if current < 3600:
                self.assertEqual(current, previous * 2)

    def test_no_failures_no_delay(self):
        self.assertEqual(compute_backoff_delay(0, 30, 3600), 0.0)

    def test_large_attempt_counts_stay_capped(self):
        self.assertEqual(compute_backoff_delay(500, 30, 3600), 3600)


class TestBackoffStore(unittest.TestCase):

    def setUp(self):
        self.store = {}
        self.now = [1_000_000.0]

        self.pipe = Mock()
        self.pipe.get.side_effect = self.store.get
        self.pipe.set.side_effect = lambda key, value, ex=None: self.store.__setitem__(key, value)

        self.redis = Mock()
        self.redis.get.side_effect = self.store.get
        self.redis.delete.side_effect = lambda key: self.store.pop(key, None)
        self.redis.transaction.side_effect = (
            lambda func, *watches, value_from_callable=False: func(self.pipe)
        )

        self.backoff = BackoffStore(
            self.redis,
            initial_delay_seconds=30,
            max_delay_seconds=3600,
            max_attempts=16,
            clock=lambda: self.now[0],
        )

    def test_01_no_state_allows_attempt(self):
        self.assertTrue(self.backoff.should_attempt("user-1", "source-control"))
        self.assertIsNone(self.backoff.get_state("user-1", "source-control"))

    def test_02_first_failure(self):
        state = self.backoff.record_failure("user-1", "source-control")

        self.assertEqual(state.attempts, 1)
        self.assertEqual(state.next_retry_at, self.now[0] + 30)

        key = "refresh:backoff:source-control:user-1"
        self.redis.transaction.assert_called_once()
        self.assertEqual(self.redis.transaction.call_args[0][1], key)
        self.assertTrue(self.redis.transaction.call_args[1]['value_from_callable'])
        self.pipe.multi.assert_called_once()
        self.assertEqual(self.pipe.set.call_args[1], {'ex': 60})
        self.assertEqual(json.loads(self.store[key]), {'attempts': 1, 'next_retry_at': self.now[0] + 30})

    def test_03_throttled_until_next_retry(self):
        self.backoff.record_failure("user-1", "source-control")

        self.assertFalse(self.backoff.should_attempt("user-1", "source-control"))
        self.now[0] += 29
        self.assertFalse(self.backoff.should_attempt("user-1", "source-control"))
        self.now[0] += 1
        self.assertTrue(self.backoff.should_attempt("user-1", "source-control"))

    def test_04_consecutive_failures_double_delay(self):
        self.backoff.record_failure("user-1", "problem-count")
        state = self.backoff.record_failure("user-1", "problem-count")

        self.assertEqual(state.attempts, 2)
        self.assertEqual(state.next_retry_at, self.now[0] + 60)
        self.assertEqual(self.pipe.set.call_args[1], {'ex': 120})

    def test_05_attempts_capped(self):
        backoff = BackoffStore(self.redis, 30, 3600, max_attempts=3, clock=lambda: self.now[0])
        for _ in range(6):
            state = backoff.record_failure("user-1", "competitive-rating")

        self.assertEqual(state.attempts, 3)
        self.assertEqual(state.next_retry_at, self.now[0] + 120)

    def test_06_success_clears_state(self):
        self.backoff.record_failure("user-1", "source-control")
        self.backoff.record_success("user-1", "source-control")

        self.assertTrue(self.backoff.should_attempt("user-1", "source-control"))
        self.assertIsNone(self.backoff.get_state("user-1", "source-control"))

        state = self.backoff.record_failure("user-1", "source-control")
        self.assertEqual(state.attempts, 1)

    def test_07_keys_are_per_user_and_provider(self):
        self.backoff.record_failure("user-1", "source-control")

        self.assertTrue(self.backoff.should_attempt("user-2", "source-control"))
        self.assertTrue(self.backoff.should_attempt("user-1", "problem-count"))

    def test_08_corrupt_state_is_ignored(self):
        self.store["refresh:backoff:source-control:user-1"] = "nonsense"
        self.assertTrue(self.backoff.should_attempt("user-1", "source-control"))


class TestBackoffState(unittest.TestCase):

    def test_json(self):
        state = BackoffState(attempts=3, next_retry_at=12.5)
        self.assertEqual(BackoffState.from_json(state.to_json()), state)
        self.assertIsNone(BackoffState.from_json(None))
        self.assertIsNone(BackoffState.from_json('{"attempts": 1}'))
