"""Provider implementations for the AI Assistant."""

from .base import BaseProvider, ProviderSettings
from .factory import available_providers, create_provider, provider_from_config
from .ollama import OllamaProvider
from .openai_compatible import OpenAICompatibleProvider
from .openai_sdk import OpenAISDKProvider
from .retry import RetryPolicy

__all__ = [
    "ProviderSettings",
    "RetryPolicy",
    "BaseProvider",
    "OpenAICompatibleProvider",
    "OpenAISDKProvider",
    "OllamaProvider",
    "available_providers",
    "create_provider",
    "provider_from_config",
]
