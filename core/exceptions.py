#!/usr/bin/env python3
"""
Exception taxonomy for the admission scoring pipeline.

ProviderError is the only non-fatal error: it is reduced to "signal absent"
at the fetch-orchestration boundary. Everything else propagates to the job
queue, which retries and finally moves the job to the failed registry.
NotFoundError is the exception to retrying - jobs hitting it are dropped.
"""

from typing import Any, Optional


class AdmissionException(Exception):
    """Base exception for admission pipeline errors."""
    pass


class ProviderError(AdmissionException):
    """Raised when an external signal provider cannot determine a value."""

    def __init__(self, provider: str, cause: Any):
        self.provider = provider
        self.cause = cause
        super().__init__(f"{provider} provider failed: {cause}")


class NotFoundError(AdmissionException):
    """Raised when an application, user or weight row does not exist."""

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        self.resource = resource
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource} '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)


class TransactionError(AdmissionException):
    """Raised when persisting an admission decision fails."""
    pass


class ConfigError(AdmissionException):
    """Raised when scoring weights or configuration cannot be loaded."""
    pass


class RateLimitExceededError(AdmissionException):
    """Raised when a queue's rate limiter cannot grant a slot in time."""

    def __init__(self, queue_name: str, waited_seconds: float):
        self.queue_name = queue_name
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Rate limit for queue '{queue_name}' still saturated after {waited_seconds:.1f}s"
        )
