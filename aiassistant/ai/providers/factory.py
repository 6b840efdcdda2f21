"""Provider factory helpers for the AI Assistant."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Mapping

from aiassistant.ai.config import normalise_provider_id
from aiassistant.ai.errors import ConfigurationError

from .base import BaseProvider, ProviderSettings
from .ollama import OllamaProvider
from .openai_compatible import OpenAICompatibleProvider
from .openai_sdk import OpenAISDKProvider

if TYPE_CHECKING:  # pragma: no cover - typing only
    import httpx
    from aiassistant.ai.config import AIConfig

logger = logging.getLogger(__name__)


_PROVIDER_REGISTRY: Mapping[str, Callable[[ProviderSettings], BaseProvider]] = {
    "openai": OpenAICompatibleProvider,
    "openai-sdk": OpenAISDKProvider,
    "ollama": OllamaProvider,
}


def available_providers() -> tuple[str, ...]:
    return tuple(_PROVIDER_REGISTRY)


def create_provider(provider_id: str, settings: ProviderSettings) -> BaseProvider:
    """Instantiate a provider by identifier using the registered factories."""

    normalised = normalise_provider_id(provider_id)
    try:
        factory = _PROVIDER_REGISTRY[normalised]
    except KeyError as exc:
        raise ConfigurationError(f"Unsupported AI provider '{provider_id}'.") from exc

    provider = factory(settings)
    logger.debug("Created AI provider '%s' with base URL '%s'", normalised, settings.base_url)
    return provider


def provider_from_config(
    ai_config: "AIConfig",
    *,
    transport: "httpx.AsyncBaseTransport" | None = None,
) -> BaseProvider:
    """Create a provider instance based on an :class:`AIConfig` object."""

    provider_id = normalise_provider_id(ai_config.provider)
    if provider_id not in _PROVIDER_REGISTRY:
        raise ConfigurationError(f"Unsupported AI provider '{ai_config.provider}'.")

    settings = ai_config.build_provider_settings(provider=provider_id, transport=transport)
    return create_provider(provider_id, settings)
