"""Error hierarchy shared by the AI Assistant domain layer."""

from __future__ import annotations

__all__ = [
    "AIError",
    "ConfigurationError",
    "ProviderError",
    "ContentError",
    "ValidationError",
    "AIApiError",
    "StillProcessingError",
    "ReviewStateError",
    "DocumentError",
]


class AIError(Exception):
    """Base error for all AI Assistant domain failures."""


class ConfigurationError(AIError):
    """Raised when a provider name or credential is missing or invalid."""


class ProviderError(AIError):
    """Raised when a provider backend fails or cannot be reached."""


class ContentError(ProviderError):
    """Raised when a provider answers successfully but with no usable text."""


class ValidationError(AIError):
    """Raised when a request is malformed before it reaches the network."""


class AIApiError(AIError):
    """Raised when the engine detects invalid usage or state."""


class StillProcessingError(AIApiError):
    """Raised when a request arrives while another one is still in flight."""


class ReviewStateError(AIApiError):
    """Raised on an illegal review candidate transition."""


class DocumentError(AIError):
    """Raised by the document boundary when an edit cannot be applied."""
