#!/usr/bin/env python3
"""
RQ task entry points.

Workers import these by dotted path. Each worker process builds one
AppContext lazily on its first job and reuses it afterwards.

Error policy:
    NotFoundError -> logged and dropped (job completes, no retry)
    anything else -> propagates to RQ, which retries and finally parks the
                     job in the failed registry
"""

import logging
import os
from typing import Any, Dict, Optional

from rq import get_current_job

from admission.queues import verification_job_id
from core.exceptions import NotFoundError

logger = logging.getLogger(__name__)

_worker_context = None


def get_worker_context():
    """Build (once per process) the wired dependencies for task execution."""
    global _worker_context
    if _worker_context is None:
        from core.app_context import AppContext
        from core.config_loader import load_config

        config_path = os.environ.get('ADMISSION_CONFIG', 'config.yaml')
        _worker_context = AppContext.build(load_config(config_path))
    return _worker_context


def _is_last_attempt() -> bool:
    job = get_current_job()
    if job is None:
        return True
    return not job.retries_left


def process_verification_task(payload: Dict[str, Any], context=None) -> Dict[str, Any]:
    """
    Score one application.

    Args:
        payload: {"application_id": str}
        context: AppContext, defaults to the per-process worker context
    """
    application_id = str(payload.get('application_id') or '').strip()
    if not application_id:
        logger.error(f"Dropping verification job with invalid payload: {payload}")
        return {'status': 'dropped'}

    context = context or get_worker_context()
    queue = context.verification_queue
    key = verification_job_id(application_id)

    try:
        context.verification_limiter.acquire()
        with queue.execution_slot(key) as acquired:
            if not acquired:
                logger.info(f"Verification {key} already running elsewhere, skipping")
                return {'status': 'skipped', 'application_id': application_id}
            outcome = context.verification_pipeline.run(application_id)
    except NotFoundError as e:
        logger.warning(f"Dropping verification job {key}: {e}")
        queue.release(key)
        return {'status': 'dropped', 'application_id': application_id}
    except Exception as e:
        logger.error(f"Verification job {key} failed: {e}")
        if _is_last_attempt():
            queue.release(key)
        raise

    queue.release(key)
    return {'status': 'completed', **outcome.to_dict()}


def process_refresh_task(payload: Dict[str, Any], context=None) -> Dict[str, Any]:
    """
    Refresh one cached signal.

    Args:
        payload: {"user_id": str, "provider": str}
        context: AppContext, defaults to the per-process worker context
    """
    user_id: Optional[str] = payload.get('user_id')
    provider = payload.get('provider')
    if not user_id or not provider:
        logger.error(f"Dropping refresh job with invalid payload: {payload}")
        return {'status': 'dropped'}

    context = context or get_worker_context()
    context.refresh_limiter.acquire()

    try:
        signal = context.refresh_pipeline.run(str(user_id), provider)
    except NotFoundError as e:
        logger.warning(f"Dropping refresh job for {provider}:{user_id}: {e}")
        return {'status': 'dropped', 'user_id': user_id, 'provider': provider}

    if signal is None:
        return {'status': 'skipped', 'user_id': user_id, 'provider': provider}
    return {
        'status': 'completed',
        'user_id': user_id,
        'provider': provider,
        'raw_value': signal.raw_value,
    }
