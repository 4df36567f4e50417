#!/usr/bin/env python3
"""
Signal Providers - base adapter contract.

Every external source implements the same interface:

    provider.fetch(identifier, credential=None) -> SignalInput   (raises ProviderError)
    provider.fetch_result(identifier, credential=None) -> FetchResult   (never raises)

fetch_result is the boundary used by the pipelines: a FetchResult either
carries a determinate value (which may legitimately be zero) or the error
explaining why no value could be determined.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional
import logging

import requests
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from core.exceptions import ProviderError
from core.scorer.models import SignalInput

logger = logging.getLogger(__name__)

SOURCE_CONTROL = "source-control"
COMPETITIVE_RATING = "competitive-rating"
PROBLEM_COUNT = "problem-count"

PROVIDER_NAMES = (SOURCE_CONTROL, COMPETITIVE_RATING, PROBLEM_COUNT)


def _is_retryable_error(exc: BaseException) -> bool:
    """
    Only transient failures are retried inside an adapter:
    timeouts, connection errors and 5xx responses. 4xx never is.
    """
    if isinstance(exc, (requests.Timeout, requests.ConnectionError)):
        return True

    if isinstance(exc, requests.HTTPError):
        response = getattr(exc, 'response', None)
        if response is not None:
            return response.status_code >= 500
        return True

    return False


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one provider fetch: a signal, or the reason there is none."""
    provider: str
    signal: Optional[SignalInput] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.signal is not None


class SignalProvider(ABC):
    """
    Abstract base class for all signal provider adapters.

    Subclasses set provider_name/signal_key and the record attributes that
    carry their identifier, and implement _fetch().
    """

    provider_name: str = ""
    signal_key: str = ""
    application_attr: str = ""
    user_attr: str = ""
    accepts_credential: bool = False

    def __init__(
        self,
        base_url: str,
        request_timeout_seconds: float = 10.0,
        max_retries: int = 2,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip('/')
        self.request_timeout_seconds = request_timeout_seconds
        self.max_retries = max(0, max_retries)
        self.session = session or requests.Session()

    @abstractmethod
    def _fetch(self, identifier: str, credential: Optional[str]) -> SignalInput:
        """Fetch the raw signal. May raise requests/parsing errors."""
        pass

    def fetch(self, identifier: str, credential: Optional[str] = None) -> SignalInput:
        """
        Fetch one signal.

        Raises:
            ProviderError: on network error, timeout, not-found,
                non-2xx status or malformed payload
        """
        if not identifier or not str(identifier).strip():
            raise ProviderError(self.provider_name, "empty identifier")

        try:
            return self._fetch(str(identifier).strip(), credential)
        except ProviderError:
            raise
        except requests.RequestException as e:
            raise ProviderError(self.provider_name, e) from e
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(self.provider_name, f"malformed response: {e}") from e

    def fetch_result(self, identifier: str, credential: Optional[str] = None) -> FetchResult:
        """Fetch one signal without raising; failures become FetchResult.error."""
        try:
            signal = self.fetch(identifier, credential)
            return FetchResult(provider=self.provider_name, signal=signal)
        except ProviderError as e:
            return FetchResult(provider=self.provider_name, error=e)

    def identifier_from_application(self, application: Any) -> Optional[str]:
        return getattr(application, self.application_attr, None) or None

    def identifier_from_user(self, user: Any) -> Optional[str]:
        return getattr(user, self.user_attr, None) or None

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send one HTTP request with a bounded timeout.

        Transient failures are retried max_retries times. 4xx responses are
        returned to the caller, which decides between not-found and error.
        """
        retryer = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=0.5, max=4),
            retry=retry_if_exception(_is_retryable_error),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        return retryer(self._send, method, url, **kwargs)

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault('timeout', self.request_timeout_seconds)
        response = self.session.request(method, url, **kwargs)
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    def _fail(self, cause: Any) -> ProviderError:
        return ProviderError(self.provider_name, cause)

    def _signal(self, raw_value: Any) -> SignalInput:
        if isinstance(raw_value, bool) or not isinstance(raw_value, (int, float)):
            raise self._fail(f"malformed response: non-numeric value {raw_value!r}")
        return SignalInput(key=self.signal_key, raw_value=float(raw_value))

    def close(self):
        """Close the session and release resources."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
