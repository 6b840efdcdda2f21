"""Base provider abstractions shared by AI Assistant backends."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping, Sequence, Union

from aiassistant.ai.classifier import extract_fenced
from aiassistant.ai.errors import ConfigurationError, ContentError, ProviderError, ValidationError
from aiassistant.ai.models import Message, MessageRole
from aiassistant.ai.prompts import CHAT_PREAMBLE, CODE_PREAMBLE, PLOT_PREAMBLE, TEXT_PREAMBLE

from .retry import RetryPolicy

if TYPE_CHECKING:  # pragma: no cover - typing only
    import httpx

logger = logging.getLogger(__name__)

ChatInput = Union[Message, Mapping[str, Any]]

GENERATION_KINDS = ("code", "text")


@dataclass(slots=True)
class ProviderSettings:
    """Immutable-like configuration holder for provider instances."""

    base_url: str
    api_key: str
    model: str
    timeout: float = 30.0
    max_tokens: int = 2000
    temperature: float = 0.7
    code_temperature: float = 0.3
    extra_headers: Mapping[str, str] | None = None
    user_agent: str | None = None
    transport: "httpx.AsyncBaseTransport" | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)


class BaseProvider(ABC):
    """Uniform async request interface over an AI backend.

    Subclasses only implement the wire exchange in :meth:`_complete_chat`
    (and optionally :meth:`_complete_prompt`); message validation, system
    preambles and the failure taxonomy live here.
    """

    #: Name of the configuration setting holding this provider's credential.
    credential_option = "openai_api_key"
    #: System preamble prepended to every chat request.
    chat_preamble = CHAT_PREAMBLE
    #: Whether :meth:`generate_plot` is available.
    supports_plot = False

    def __init__(self, settings: ProviderSettings) -> None:
        if not (settings.api_key or "").strip():
            raise ConfigurationError(
                f"API key is not configured. Set '{self.credential_option}' to use this provider."
            )
        self._settings = settings

    @property
    def settings(self) -> ProviderSettings:
        """Return the provider settings."""

        return self._settings

    @property
    def model(self) -> str:
        return self._settings.model

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def chat(self, messages: Sequence[ChatInput]) -> str:
        """Return the assistant reply for an ordered list of messages."""

        prepared = self.validate_messages(messages)
        request = [{"role": MessageRole.SYSTEM.value, "content": self.chat_preamble}, *prepared]
        logger.debug("Dispatching chat request with %d message(s) to %s", len(request), self.model)
        return await self._complete_chat(request, temperature=self._settings.temperature)

    async def generate(self, prompt: str, kind: str = "text") -> str:
        """Run a single-shot generation; ``kind`` is ``"code"`` or ``"text"``."""

        if kind not in GENERATION_KINDS:
            raise ValidationError(f"Unknown generation kind: {kind!r}")
        text = (prompt or "").strip()
        if not text:
            raise ValidationError("No prompt provided for generation.")

        if kind == "code":
            system, temperature = CODE_PREAMBLE, self._settings.code_temperature
        else:
            system, temperature = TEXT_PREAMBLE, self._settings.temperature

        logger.debug("Dispatching %s generation request to %s", kind, self.model)
        return await self._complete_prompt(text, system=system, temperature=temperature)

    async def generate_plot(self, description: str) -> str:
        """Return Plotly-compatible JSON describing ``description``."""

        if not self.supports_plot:
            raise ProviderError(f"{type(self).__name__} does not support plot generation.")
        text = (description or "").strip()
        if not text:
            raise ValidationError("No description provided for plot generation.")

        raw = await self._complete_prompt(text, system=PLOT_PREAMBLE, temperature=self._settings.code_temperature)
        payload = extract_fenced(raw).strip()
        try:
            json.loads(payload)
        except ValueError as exc:
            raise ContentError("Plot response is not valid JSON.") from exc
        return payload

    async def close(self) -> None:
        """Release any resources held by the provider instance."""

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def validate_messages(messages: Sequence[ChatInput]) -> list[dict[str, str]]:
        """Normalise messages to ``{role, content}`` with trimmed content.

        Raises :class:`ValidationError` for an empty sequence, an unknown
        role or non-text content.
        """

        if not messages:
            raise ValidationError("No messages provided for chat.")

        prepared: list[dict[str, str]] = []
        for entry in messages:
            if isinstance(entry, Message):
                role, content = entry.role, entry.content
            elif isinstance(entry, Mapping):
                role = MessageRole.parse(entry.get("role"))
                content = entry.get("content")
            else:
                raise ValidationError(f"Unsupported message entry: {type(entry).__name__}")
            if not isinstance(content, str):
                raise ValidationError("Message content must be text.")
            prepared.append({"role": role.value, "content": content.strip()})
        return prepared

    @staticmethod
    def require_text(value: Any, *, source: str) -> str:
        """Return ``value`` trimmed, or raise :class:`ContentError` if unusable."""

        if not isinstance(value, str) or not value.strip():
            raise ContentError(f"Empty response content from {source}.")
        return value.strip()

    @abstractmethod
    async def _complete_chat(self, messages: list[dict[str, str]], *, temperature: float) -> str:
        """Send a full message list and return the reply text."""

    async def _complete_prompt(self, prompt: str, *, system: str, temperature: float) -> str:
        messages = [
            {"role": MessageRole.SYSTEM.value, "content": system},
            {"role": MessageRole.USER.value, "content": prompt},
        ]
        return await self._complete_chat(messages, temperature=temperature)
