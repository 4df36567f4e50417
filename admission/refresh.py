#!/usr/bin/env python3
"""
Refresh Pipeline - keeps one (user, provider) signal warm in the cache.

Refresh never touches applications or user status. Failures feed the
per (user, provider) backoff store and are re-raised so the queue's own
retry policy still applies.
"""

import logging
from typing import Optional

from redis import RedisError
from sqlalchemy.orm import sessionmaker

from admission.backoff import BackoffStore
from core.cache.signal_cache import SignalCacheService
from core.credentials import CredentialCipher, reveal_credential
from core.exceptions import NotFoundError, ProviderError
from core.providers import ProviderRegistry
from core.scorer.models import SignalInput
from database.uow import admission_uow

logger = logging.getLogger(__name__)


class RefreshPipeline:
    def __init__(
        self,
        session_factory: sessionmaker,
        providers: ProviderRegistry,
        backoff_store: BackoffStore,
        signal_cache: SignalCacheService,
        cipher: Optional[CredentialCipher] = None
    ):
        self.session_factory = session_factory
        self.providers = providers
        self.backoff_store = backoff_store
        self.signal_cache = signal_cache
        self.cipher = cipher

    def run(self, user_id: str, provider_name: str) -> Optional[SignalInput]:
        """
        Refresh one signal.

        Returns:
            The fetched signal, or None when throttled or when the user has
            no identifier for this provider

        Raises:
            NotFoundError: Unknown provider or user
            ProviderError: The fetch failed (backoff already recorded)
            RedisError: The signal could not be cached (backoff already recorded)
        """
        try:
            provider = self.providers.get_provider(provider_name)
        except ValueError as e:
            raise NotFoundError("Provider", provider_name) from e

        if not self.backoff_store.should_attempt(user_id, provider_name):
            logger.info(f"Refresh of {provider_name} for {user_id} throttled by backoff")
            return None

        with admission_uow(self.session_factory) as repo:
            user = repo.users.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            identifier = provider.identifier_from_user(user)
            token_enc = user.source_control_token_enc if provider.accepts_credential else None

        if not identifier:
            logger.debug(f"User {user_id} has no {provider_name} identity, dropping any cached value")
            self.signal_cache.delete_signal(provider_name, user_id)
            return None

        credential = reveal_credential(self.cipher, token_enc, f"user {user_id}")
        try:
            signal = provider.fetch(identifier, credential)
            self.signal_cache.set_signal(provider_name, user_id, signal)
        except (ProviderError, RedisError) as e:
            state = self.backoff_store.record_failure(user_id, provider_name)
            logger.warning(
                f"Refresh of {provider_name} for {user_id} failed "
                f"(attempt {state.attempts}): {e}"
            )
            raise

        self.backoff_store.record_success(user_id, provider_name)
        logger.info(f"Refreshed {signal.key}={signal.raw_value} for {user_id}")
        return signal
