"""Provider for Ollama-style endpoints (``/api/chat`` and ``/api/generate``)."""

from __future__ import annotations

import logging
from typing import Any

from aiassistant.ai.errors import ContentError

from .base import BaseProvider
from .openai_compatible import OpenAICompatibleProvider

logger = logging.getLogger(__name__)


_CHAT_ENDPOINT = "/api/chat"
_GENERATE_ENDPOINT = "/api/generate"


class OllamaProvider(OpenAICompatibleProvider):
    """Talks the Ollama wire format; shares transport and retries with the OpenAI client."""

    credential_option = "ollama_api_key"
    supports_plot = False

    async def _complete_chat(self, messages: list[dict[str, str]], *, temperature: float) -> str:
        payload = {
            "model": self.settings.model,
            "messages": messages,
            "stream": False,
            "options": self._options(temperature),
        }
        data = await self._post_json(_CHAT_ENDPOINT, payload)
        return self._extract_reply(data, endpoint=_CHAT_ENDPOINT, key="message")

    async def _complete_prompt(self, prompt: str, *, system: str, temperature: float) -> str:
        payload = {
            "model": self.settings.model,
            "prompt": prompt,
            "system": system,
            "stream": False,
            "options": self._options(temperature),
        }
        data = await self._post_json(_GENERATE_ENDPOINT, payload)
        return self._extract_reply(data, endpoint=_GENERATE_ENDPOINT, key="response")

    def _options(self, temperature: float) -> dict[str, Any]:
        return {"temperature": temperature}

    @staticmethod
    def _extract_reply(data: Any, *, endpoint: str, key: str) -> str:
        if not isinstance(data, dict):
            raise ContentError(f"Unexpected payload from {endpoint}.")

        # Some Ollama-compatible gateways answer with the OpenAI shape.
        if "choices" in data:
            return OpenAICompatibleProvider._extract_choice_content(data, endpoint=endpoint)

        value = data.get(key)
        if isinstance(value, dict):
            value = value.get("content")
        return BaseProvider.require_text(value, source=endpoint)
