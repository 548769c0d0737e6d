"""AI Router: resolves provider + model with override > ENV > provider-default chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from receipt_scanner.core.config import get_settings

from .providers import BaseProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model after the override chain."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def resolve(
    scope: str,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    """Resolve provider + model for a given *scope*.

    Resolution chain (first non-empty wins):
      1. ``override_provider`` / ``override_model`` (runtime request param,
         only when ``enable_ai_overrides=True``).
      2. ENV: ``AI_RECEIPT_PROVIDER`` / ``AI_RECEIPT_MODEL``.
      3. The provider's own default model.

    Raises ``ConfigurationError`` (from the provider factory) when the
    resolved provider cannot be built.
    """
    settings = get_settings()

    provider_name = ""
    if settings.enable_ai_overrides and override_provider:
        provider_name = override_provider.lower().strip()
    elif override_provider:
        logger.info("Ignoring provider override %r: overrides are disabled", override_provider)

    if not provider_name:
        provider_name = settings.ai_receipt_provider

    provider = get_provider(provider_name)

    model = ""
    if settings.enable_ai_overrides and override_model:
        model = override_model.strip()

    if not model and provider_name == settings.ai_receipt_provider:
        model = settings.ai_receipt_model

    if not model:
        model = provider.default_model

    logger.debug("Resolved scope=%s provider=%s model=%s", scope, provider.name, model)

    return ResolvedConfig(
        provider=provider,
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_receipt_timeout_seconds,
    )
