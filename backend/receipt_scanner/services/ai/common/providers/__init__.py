"""Provider factory: returns the configured vision provider or refuses loudly."""

from __future__ import annotations

import logging

from receipt_scanner.core.config import get_settings
from receipt_scanner.core.errors import ConfigurationError

from .base import BaseProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "ProviderResult", "MockProvider", "KNOWN_PROVIDERS"]

KNOWN_PROVIDERS = ("gemini", "claude", "openai", "mock")


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    Raises ``ConfigurationError`` when the provider is unknown or its API key
    is not set. Only ``mock`` needs no credential.
    """
    settings = get_settings()
    name = provider_name.lower().strip()

    if name == "mock":
        return MockProvider()

    if name == "gemini":
        if not settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")
        from .gemini import GeminiProvider

        return GeminiProvider(api_key=settings.gemini_api_key)

    if name == "claude":
        if not settings.anthropic_api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY is not set")
        from .claude import ClaudeProvider

        return ClaudeProvider(api_key=settings.anthropic_api_key)

    if name == "openai":
        if not settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key)

    logger.warning("Unknown vision provider %r", name)
    raise ConfigurationError(
        f"Unknown vision provider {name!r} (choose one of: {', '.join(KNOWN_PROVIDERS)})"
    )
