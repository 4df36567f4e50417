#!/usr/bin/env python3
"""
Admission Service - enqueue-side operations used by the API and the CLI.

Usage:
    service = context.admission_service
    service.request_verification(application_id)
    service.backfill(status="UNDER_REVIEW")   # e.g. after a weight change
    service.schedule_refresh_cycle()
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from admission.queues import (
    AdmissionQueue,
    VERIFICATION_TASK,
    REFRESH_TASK,
    verification_job_id,
)
from core.cache.signal_cache import SignalCacheService
from core.exceptions import NotFoundError
from core.providers import ProviderRegistry
from core.scorer.models import SignalInput
from database.uow import admission_uow

logger = logging.getLogger(__name__)


class AdmissionService:

    def __init__(
        self,
        session_factory: sessionmaker,
        verification_queue: AdmissionQueue,
        refresh_queue: AdmissionQueue,
        providers: ProviderRegistry,
        signal_cache: SignalCacheService
    ):
        self.session_factory = session_factory
        self.verification_queue = verification_queue
        self.refresh_queue = refresh_queue
        self.providers = providers
        self.signal_cache = signal_cache

    def request_verification(self, application_id: Any) -> Optional[str]:
        """
        Queue verification for one application and mark it PROCESSING.

        Returns:
            The job id, or None if a verification for it is already pending

        Raises:
            NotFoundError: If the application does not exist
        """
        with admission_uow(self.session_factory) as repo:
            application = repo.applications.get_by_id(application_id)
            if application is None:
                raise NotFoundError("Application", application_id)
            current_status = application.status

        return self._enqueue_verification(str(application_id), current_status)

    def backfill(self, status: str = "UNDER_REVIEW") -> int:
        """Re-queue verification for every application in the given status."""
        with admission_uow(self.session_factory) as repo:
            application_ids = repo.applications.list_ids_by_status(status)

        enqueued = 0
        for application_id in application_ids:
            if self._enqueue_verification(application_id, status):
                enqueued += 1

        logger.info(f"Backfill queued {enqueued}/{len(application_ids)} {status} applications")
        return enqueued

    def _enqueue_verification(self, application_id: str, current_status: str) -> Optional[str]:
        job = self.verification_queue.enqueue(
            VERIFICATION_TASK,
            {'application_id': application_id},
            idempotency_key=verification_job_id(application_id),
        )
        if job is None:
            return None

        with admission_uow(self.session_factory) as repo:
            repo.applications.mark_processing(application_id, expected_status=current_status)
        return job.id

    def enqueue_refresh(self, user_id: Any, provider: str) -> str:
        """
        Raises:
            ValueError: If the provider name is unknown
        """
        self.providers.get_provider(provider)
        job = self.refresh_queue.enqueue(
            REFRESH_TASK,
            {'user_id': str(user_id), 'provider': provider},
        )
        return job.id

    def schedule_refresh_cycle(self) -> int:
        """Queue one refresh per (user, provider) with a linked identity."""
        with admission_uow(self.session_factory) as repo:
            pairs = [
                (str(user.id), provider.provider_name)
                for user in repo.users.list_with_linked_identities()
                for provider in self.providers
                if provider.identifier_from_user(user)
            ]

        for user_id, provider_name in pairs:
            self.enqueue_refresh(user_id, provider_name)

        logger.info(f"Scheduled {len(pairs)} signal refresh jobs")
        return len(pairs)

    def get_cached_signal(self, user_id: Any, provider: str) -> Optional[SignalInput]:
        return self.signal_cache.get_signal(provider, str(user_id))
