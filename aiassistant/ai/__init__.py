"""Core AI domain package for the AI Assistant."""

from .config import AIConfig
from .conversation import ConversationStore
from .errors import (
    AIApiError,
    AIError,
    ConfigurationError,
    ContentError,
    DocumentError,
    ProviderError,
    ReviewStateError,
    StillProcessingError,
    ValidationError,
)
from .models import ClassifiedContent, CodeBlock, ContentKind, DiffLine, DiffLineKind, DiffStats, Message, MessageRole, TextRange
from .review import ReviewCandidate, ReviewSession, ReviewStatus

__all__ = [
    "AIConfig",
    "ConversationStore",
    "ReviewSession",
    "ReviewCandidate",
    "ReviewStatus",
    "AIError",
    "AIApiError",
    "ConfigurationError",
    "ProviderError",
    "ContentError",
    "ValidationError",
    "StillProcessingError",
    "ReviewStateError",
    "DocumentError",
    "Message",
    "MessageRole",
    "ContentKind",
    "ClassifiedContent",
    "CodeBlock",
    "DiffLine",
    "DiffLineKind",
    "DiffStats",
    "TextRange",
]
