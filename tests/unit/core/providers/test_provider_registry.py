"""Tests for ProviderRegistry."""
import unittest
from unittest.mock import Mock

from core.config_loader import ProvidersConfig
from core.providers import (
    PROVIDER_NAMES,
    CompetitiveRatingProvider,
    ProviderRegistry,
    SourceControlProvider,
)


class TestProviderRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = ProviderRegistry.from_config(ProvidersConfig(request_timeout_seconds=3, max_retries=1))

    def test_from_config_registers_every_provider(self):
        self.assertEqual(len(self.registry), 3)
        self.assertEqual(set(self.registry.list_providers()), set(PROVIDER_NAMES))

        provider = self.registry.get_provider("source-control")
        self.assertIsInstance(provider, SourceControlProvider)
        self.assertEqual(provider.base_url, "https://api.github.com")
        self.assertEqual(provider.request_timeout_seconds, 3)
        self.assertEqual(provider.max_retries, 1)

    def test_unknown_provider(self):
        with self.assertRaises(ValueError) as ctx:
            self.registry.get_provider("stack-overflow")
        self.assertIn("Available", str(ctx.exception))

    def test_register_replaces_existing(self):
        replacement = CompetitiveRatingProvider("http://localhost:9000/api")
        self.registry.register_provider(replacement)

        self.assertIs(self.registry.get_provider("competitive-rating"), replacement)
        self.assertEqual(len(self.registry), 3)

    def test_register_rejects_non_providers(self):
        with self.assertRaises(ValueError):
            self.registry.register_provider(object())

    def test_close_closes_sessions(self):
        sessions = []
        for provider in self.registry:
            provider.session = Mock()
            sessions.append(provider.session)

        self.registry.close()

        for session in sessions:
            session.close.assert_called_once()
