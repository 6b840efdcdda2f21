"""OpenAI API compatible provider over httpx."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import httpx

from aiassistant.ai.errors import ContentError, ProviderError

from .base import BaseProvider, ProviderSettings

logger = logging.getLogger(__name__)


_CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"
_USER_AGENT = "aiassistant-provider/1.0"


class OpenAICompatibleProvider(BaseProvider):
    """Provider implementation for OpenAI compatible HTTP endpoints."""

    credential_option = "openai_api_key"
    supports_plot = True

    def __init__(self, settings: ProviderSettings) -> None:
        super().__init__(settings)
        self._client: httpx.AsyncClient | None = None

    # ------------------------------------------------------------------
    # BaseProvider overrides
    # ------------------------------------------------------------------
    async def _complete_chat(self, messages: list[dict[str, str]], *, temperature: float) -> str:
        payload = self._build_chat_payload(messages, temperature=temperature)
        data = await self._post_json(_CHAT_COMPLETIONS_ENDPOINT, payload)
        return self._extract_choice_content(data, endpoint=_CHAT_COMPLETIONS_ENDPOINT)

    async def close(self) -> None:
        client = self._client
        if client is not None:
            await client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        headers = {
            "Authorization": f"Bearer {self.settings.api_key.strip()}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.settings.user_agent or _USER_AGENT,
        }
        if self.settings.extra_headers:
            headers.update(self.settings.extra_headers)

        self._client = httpx.AsyncClient(
            base_url=self.settings.base_url.rstrip("/"),
            headers=headers,
            timeout=self.settings.timeout,
            transport=self.settings.transport,
        )
        return self._client

    def _build_chat_payload(self, messages: list[dict[str, str]], *, temperature: float) -> dict[str, Any]:
        return {
            "model": self.settings.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": self.settings.max_tokens,
        }

    async def _post_json(self, endpoint: str, payload: dict[str, Any]) -> Any:
        """POST ``payload`` and return the decoded body, retrying per policy."""

        client = self._ensure_client()
        policy = self.settings.retry
        retries = 0

        while True:
            cause: Exception | None = None
            try:
                response = await client.post(endpoint, json=payload)
            except httpx.TransportError as exc:
                error = ProviderError(f"{endpoint}: {exc.__class__.__name__}: {exc}")
                cause = exc
                retryable = True
            except httpx.HTTPError as exc:
                raise ProviderError(f"{endpoint}: {exc}") from exc
            else:
                if response.status_code < 400:
                    return self._safe_json(response)
                error = ProviderError(self._build_error_message(endpoint, response))
                retryable = policy.retryable_status(response.status_code)

            if not retryable or not policy.should_retry(retries):
                raise error from cause

            retries += 1
            delay = policy.calculate_delay(retries)
            logger.warning("Retrying %s (attempt %d/%d) in %.2fs: %s", endpoint, retries, policy.max_retries, delay, error)
            await asyncio.sleep(delay)

    @staticmethod
    def _extract_choice_content(data: Any, *, endpoint: str) -> str:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise ContentError(f"No completion choices returned from {endpoint}.")
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return BaseProvider.require_text(content, source=endpoint)

    @staticmethod
    def _safe_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    @staticmethod
    def _build_error_message(endpoint: str, response: httpx.Response) -> str:
        payload = OpenAICompatibleProvider._safe_json(response)
        if isinstance(payload, dict) and "error" in payload:
            detail = payload["error"]
            if isinstance(detail, dict) and "message" in detail:
                return f"{endpoint} {response.status_code}: {detail['message']}"
            return f"{endpoint} {response.status_code}: {detail}"
        return f"{endpoint} {response.status_code}"
