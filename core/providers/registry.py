#!/usr/bin/env python3
"""
Provider Registry - lookup of signal provider adapters by name.

Usage:
    registry = ProviderRegistry.from_config(config.providers)
    provider = registry.get_provider('competitive-rating')
    result = provider.fetch_result('tourist')
"""

import logging
from typing import Dict, Iterable, Iterator, List

from core.config_loader import ProvidersConfig
from core.providers.base import SignalProvider
from core.providers.source_control import SourceControlProvider
from core.providers.competitive_rating import CompetitiveRatingProvider
from core.providers.problem_count import ProblemCountProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Holds one adapter instance per provider name. Each is swappable."""

    def __init__(self, providers: Iterable[SignalProvider] = ()):
        self._providers: Dict[str, SignalProvider] = {}
        for provider in providers:
            self.register_provider(provider)

    @classmethod
    def from_config(cls, config: ProvidersConfig) -> "ProviderRegistry":
        common = {
            'request_timeout_seconds': config.request_timeout_seconds,
            'max_retries': config.max_retries,
        }
        return cls([
            SourceControlProvider(config.github_api_url, **common),
            CompetitiveRatingProvider(config.codeforces_api_url, **common),
            ProblemCountProvider(config.leetcode_graphql_url, **common),
        ])

    def register_provider(self, provider: SignalProvider) -> None:
        """Register (or replace) the adapter for provider.provider_name."""
        if not isinstance(provider, SignalProvider):
            raise ValueError("Provider must extend SignalProvider")
        self._providers[provider.provider_name] = provider
        logger.debug(f"Registered signal provider: {provider.provider_name}")

    def get_provider(self, provider_name: str) -> SignalProvider:
        """
        Raises:
            ValueError: If no adapter is registered under that name
        """
        provider = self._providers.get(provider_name)
        if provider is None:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {', '.join(self._providers.keys())}"
            )
        return provider

    def list_providers(self) -> List[str]:
        return list(self._providers.keys())

    def __iter__(self) -> Iterator[SignalProvider]:
        return iter(list(self._providers.values()))

    def __len__(self) -> int:
        return len(self._providers)

    def close(self) -> None:
        for provider in self._providers.values():
            provider.close()
