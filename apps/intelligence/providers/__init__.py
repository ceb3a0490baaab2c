"""
Reasoning providers registry.

Providers turn an observation snapshot into candidate root causes.
"""

from typing import Any

from django.conf import settings

from apps.intelligence.providers.ai_base import BaseAIProvider
from apps.intelligence.providers.base import (
    BaseReasoningProvider,
    HypothesisCandidate,
    ObservationSnapshot,
    ReasoningError,
    ReasoningResult,
)
from apps.intelligence.providers.claude import ClaudeReasoningProvider
from apps.intelligence.providers.local import LocalReasoningProvider
from apps.intelligence.providers.mistral import MistralReasoningProvider
from apps.intelligence.providers.openai import OpenAIReasoningProvider

__all__ = [
    "BaseAIProvider",
    "BaseReasoningProvider",
    "ClaudeReasoningProvider",
    "HypothesisCandidate",
    "LocalReasoningProvider",
    "MistralReasoningProvider",
    "ObservationSnapshot",
    "OpenAIReasoningProvider",
    "PROVIDERS",
    "ReasoningError",
    "ReasoningResult",
    "get_provider",
    "get_configured_provider",
]

PROVIDERS: dict[str, type[BaseReasoningProvider]] = {
    "local": LocalReasoningProvider,
    "claude": ClaudeReasoningProvider,
    "openai": OpenAIReasoningProvider,
    "mistral": MistralReasoningProvider,
}

# Settings holding each AI provider's API key.
API_KEY_SETTINGS = {
    "claude": "ANTHROPIC_API_KEY",
    "openai": "OPENAI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
}


def get_provider(name: str = "local", **kwargs: Any) -> BaseReasoningProvider:
    """
    Get a provider instance by name.

    Raises:
        KeyError: If provider name is not registered.
    """
    if name not in PROVIDERS:
        raise KeyError(f"Unknown provider: {name}. Available: {list(PROVIDERS.keys())}")
    return PROVIDERS[name](**kwargs)


def get_configured_provider() -> BaseReasoningProvider | None:
    """
    Build the provider named by ``REASONING_PROVIDER``.

    Returns None when reasoning is disabled (empty name). API keys fall back
    to the provider's ``*_API_KEY`` setting.
    """
    name = getattr(settings, "REASONING_PROVIDER", "local")
    if not name:
        return None

    config = dict(getattr(settings, "REASONING_PROVIDER_CONFIG", {}) or {})
    key_setting = API_KEY_SETTINGS.get(name)
    if key_setting and not config.get("api_key"):
        config["api_key"] = getattr(settings, key_setting, "")
    config.setdefault("timeout_s", getattr(settings, "REASONING_TIMEOUT_SECONDS", 30))
    return get_provider(name, **config)
