"""
Admission Module

Asynchronous verification and signal-refresh jobs for the admission
scoring pipeline.

Usage:
    from core.app_context import AppContext

    context = AppContext.build(load_config())
    context.admission_service.request_verification(application_id)

    # Workers
    python -m admission.worker
"""

from admission.backoff import BackoffStore, BackoffState, compute_backoff_delay
from admission.rate_limiter import SlidingWindowRateLimiter
from admission.queues import (
    AdmissionQueue,
    verification_job_id,
    VERIFICATION_TASK,
    REFRESH_TASK,
)
from admission.verification import VerificationPipeline, VerificationOutcome
from admission.refresh import RefreshPipeline
from admission.service import AdmissionService
from admission.admin import WeightAdminService

__all__ = [
    'BackoffStore',
    'BackoffState',
    'compute_backoff_delay',
    'SlidingWindowRateLimiter',
    'AdmissionQueue',
    'verification_job_id',
    'VERIFICATION_TASK',
    'REFRESH_TASK',
    'VerificationPipeline',
    'VerificationOutcome',
    'RefreshPipeline',
    'AdmissionService',
    'WeightAdminService',
]
