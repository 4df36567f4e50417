#!/usr/bin/env python3
"""
Admission Queues - RQ queues with idempotent enqueue and per-key execution locks.

Two named queues are used:
    verification  - one job per application, id "verify-{application_id}"
    refresh-data  - one job per (user, provider), never deduplicated

Jobs retry with exponential delays via rq.Retry. Jobs that exhaust their
attempts stay in RQ's FailedJobRegistry until requeued or expired.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from redis import Redis
from redis.exceptions import LockError
from rq import Queue, Retry
from rq.exceptions import InvalidJobOperation, NoSuchJobError
from rq.job import Job, JobStatus

from core.config_loader import QueueSettings
from core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

VERIFICATION_TASK = 'admission.tasks.process_verification_task'
REFRESH_TASK = 'admission.tasks.process_refresh_task'

# A job in one of these states still runs without operator action
LIVE_STATUSES = (JobStatus.QUEUED, JobStatus.STARTED, JobStatus.SCHEDULED, JobStatus.DEFERRED)


def verification_job_id(application_id: Any) -> str:
    return f"verify-{application_id}"


class AdmissionQueue:
    """
    One RQ queue plus its idempotency bookkeeping.

    Enqueue claims queue:{name}:claim:{key} with SET NX EX. While the claim
    exists, further enqueues with the same key are no-ops. Workers take a
    second, shorter lock around execution so at most one attempt per key
    runs at a time.
    """

    def __init__(self, redis_conn: Redis, settings: QueueSettings):
        """
        Args:
            redis_conn: Redis client with decode_responses=False (RQ pickles payloads)
            settings: Retry, timeout and TTL settings for this queue
        """
        self._redis = redis_conn
        self.settings = settings
        self.name = settings.name
        self.queue = Queue(settings.name, connection=redis_conn)

    def _claim_key(self, key: str) -> str:
        return f"queue:{self.name}:claim:{key}"

    def _lock_key(self, key: str) -> str:
        return f"queue:{self.name}:lock:{key}"

    def _retry_policy(self) -> Optional[Retry]:
        if self.settings.attempts <= 1:
            return None
        return Retry(max=self.settings.attempts - 1, interval=self.settings.retry_intervals())

    def enqueue(
        self,
        func: str,
        payload: Dict[str, Any],
        idempotency_key: Optional[str] = None
    ) -> Optional[Job]:
        """
        Enqueue a job.

        Returns:
            The RQ job, or None when another job with the same
            idempotency key is already queued or running
        """
        if idempotency_key:
            claimed = self._redis.set(
                self._claim_key(idempotency_key), b"1", nx=True,
                ex=self.settings.claim_ttl_seconds
            )
            if not claimed:
                logger.info(f"Job {idempotency_key} already claimed on '{self.name}', skipping")
                return None
            if not self._prepare_job_id(idempotency_key):
                logger.info(f"Job {idempotency_key} still pending on '{self.name}', skipping")
                return None

        try:
            job = self.queue.enqueue(
                func,
                payload,
                job_id=idempotency_key,
                retry=self._retry_policy(),
                job_timeout=self.settings.job_timeout_seconds,
                result_ttl=self.settings.result_ttl_seconds,
                failure_ttl=self.settings.failure_ttl_seconds,
                meta={'idempotency_key': idempotency_key} if idempotency_key else None,
            )
        except Exception:
            if idempotency_key:
                self.release(idempotency_key)
            raise

        logger.info(f"Queued job {job.id} on '{self.name}'")
        return job

    def _fetch_job(self, job_id: str) -> Optional[Job]:
        try:
            return Job.fetch(job_id, connection=self._redis)
        except NoSuchJobError:
            return None

    def _prepare_job_id(self, job_id: str) -> bool:
        """
        Make job_id reusable for a fresh enqueue.

        Returns False when a job under this id is still live, which happens
        when the claim expired before the job ran. A dead job under this id
        is dropped from the failed registry so a later requeue cannot run
        the key a second time.
        """
        existing = self._fetch_job(job_id)
        if existing is None:
            return True

        status = existing.get_status(refresh=False)
        if status in LIVE_STATUSES:
            return False
        if status == JobStatus.FAILED:
            self.queue.failed_job_registry.remove(existing)
            logger.info(f"Superseding dead job {job_id} on '{self.name}'")
        return True

    def release(self, idempotency_key: str) -> None:
        """Drop the enqueue claim so the key can be queued again."""
        self._redis.delete(self._claim_key(idempotency_key))

    @contextmanager
    def execution_slot(self, idempotency_key: str) -> Iterator[bool]:
        """
        Hold the per-key execution lock for the duration of the block.

        Yields False when another worker is already executing this key.
        The lock expires after job_timeout_seconds if the holder dies.
        """
        lock = self._redis.lock(
            self._lock_key(idempotency_key),
            timeout=self.settings.job_timeout_seconds,
            blocking=False
        )
        acquired = lock.acquire()
        try:
            yield bool(acquired)
        finally:
            if acquired:
                try:
                    lock.release()
                except LockError:
                    logger.warning(f"Execution lock for {idempotency_key} expired before release")

    def dead_job_ids(self) -> List[str]:
        """Ids of jobs that exhausted every attempt."""
        return self.queue.failed_job_registry.get_job_ids()

    def requeue_dead_job(self, job_id: str) -> Optional[Job]:
        """
        Move a failed job back onto the queue and restore its claim.

        Returns:
            The requeued job, or None when another job already holds the
            same idempotency key

        Raises:
            NotFoundError: If the job is not in the failed registry
        """
        registry = self.queue.failed_job_registry
        job = self._fetch_job(job_id) if job_id in registry else None
        if job is None:
            raise NotFoundError("Dead job", job_id)

        idempotency_key = (job.meta or {}).get('idempotency_key')
        if idempotency_key:
            claimed = self._redis.set(
                self._claim_key(idempotency_key), b"1", nx=True,
                ex=self.settings.claim_ttl_seconds
            )
            if not claimed:
                logger.warning(f"Not requeueing {job_id}: {idempotency_key} is already claimed on '{self.name}'")
                return None

        try:
            job = registry.requeue(job_id)
        except (InvalidJobOperation, NoSuchJobError) as e:
            if idempotency_key:
                self.release(idempotency_key)
            raise NotFoundError("Dead job", job_id) from e

        logger.info(f"Requeued dead job {job_id} on '{self.name}'")
        return job

    def get_queue_status(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'queued': self.queue.count,
            'started': self.queue.started_job_registry.count,
            'scheduled': self.queue.scheduled_job_registry.count,
            'dead': self.queue.failed_job_registry.count,
        }
