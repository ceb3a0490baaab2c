"""Tests for the provider registry."""

import pytest
from django.test import SimpleTestCase, override_settings

from apps.intelligence.providers import (
    PROVIDERS,
    ClaudeReasoningProvider,
    LocalReasoningProvider,
    get_configured_provider,
    get_provider,
)


class RegistryTests(SimpleTestCase):
    def test_registered_providers(self):
        assert set(PROVIDERS) == {"local", "claude", "openai", "mistral"}

    def test_get_provider_unknown(self):
        with pytest.raises(KeyError, match="Unknown provider"):
            get_provider("oracle")

    @override_settings(REASONING_PROVIDER="")
    def test_disabled(self):
        assert get_configured_provider() is None

    @override_settings(REASONING_PROVIDER="local")
    def test_local(self):
        assert isinstance(get_configured_provider(), LocalReasoningProvider)

    @override_settings(
        REASONING_PROVIDER="claude",
        ANTHROPIC_API_KEY="sk-ant",
        REASONING_PROVIDER_CONFIG={"model": "claude-x"},
        REASONING_TIMEOUT_SECONDS=5,
    )
    def test_api_key_from_settings(self):
        provider = get_configured_provider()

        assert isinstance(provider, ClaudeReasoningProvider)
        assert provider.api_key == "sk-ant"
        assert provider.model == "claude-x"
        assert provider.timeout_s == 5
