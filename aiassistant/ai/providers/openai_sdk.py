"""Provider implementation backed by the official OpenAI Python SDK."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from aiassistant.ai.errors import ContentError, ProviderError

from .base import BaseProvider, ProviderSettings
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class OpenAISDKProvider(BaseProvider):
    """Same wire format as :class:`OpenAICompatibleProvider`, via ``AsyncOpenAI``.

    The SDK's built-in retries are disabled; the provider's
    :class:`RetryPolicy` decides, so 4xx responses such as 429 are never
    repeated.
    """

    credential_option = "openai_api_key"
    supports_plot = True

    def __init__(self, settings: ProviderSettings) -> None:
        super().__init__(settings)
        self._client: AsyncOpenAI | None = None
        self._http_client: httpx.AsyncClient | None = None

    async def _complete_chat(self, messages: list[dict[str, str]], *, temperature: float) -> str:
        client = self._ensure_client()
        policy = self.settings.retry
        retries = 0

        while True:
            try:
                completion = await client.chat.completions.create(
                    model=self.settings.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=self.settings.max_tokens,
                )
            except OpenAIError as exc:
                error = _wrap_exception(exc, endpoint="chat.completions")
                if not _is_retryable(exc, policy) or not policy.should_retry(retries):
                    raise error from exc
            else:
                return _extract_content(completion)

            retries += 1
            delay = policy.calculate_delay(retries)
            logger.warning(
                "Retrying chat.completions (attempt %d/%d) in %.2fs: %s",
                retries,
                policy.max_retries,
                delay,
                error,
            )
            await asyncio.sleep(delay)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _ensure_client(self) -> AsyncOpenAI:
        if self._client is not None:
            return self._client

        client_kwargs: dict[str, Any] = {
            "api_key": self.settings.api_key.strip(),
            "base_url": self.settings.base_url,
            "timeout": float(self.settings.timeout),
            "max_retries": 0,
        }

        headers: dict[str, str] = {}
        if self.settings.user_agent:
            headers["User-Agent"] = self.settings.user_agent
        if self.settings.extra_headers:
            headers.update(self.settings.extra_headers)
        if headers:
            client_kwargs["default_headers"] = headers

        if self.settings.transport is not None:
            self._http_client = httpx.AsyncClient(
                transport=self.settings.transport,
                timeout=self.settings.timeout,
            )
            client_kwargs["http_client"] = self._http_client

        self._client = AsyncOpenAI(**client_kwargs)
        return self._client


def _extract_content(completion: Any) -> str:
    choices = getattr(completion, "choices", None)
    if not choices:
        raise ContentError("No completion choices returned.")
    message = getattr(choices[0], "message", None)
    return BaseProvider.require_text(getattr(message, "content", None), source="chat.completions")


def _is_retryable(exc: Exception, policy: RetryPolicy) -> bool:
    # APITimeoutError is a subclass of APIConnectionError.
    if isinstance(exc, APIConnectionError):
        return True
    if isinstance(exc, APIStatusError):
        return policy.retryable_status(exc.status_code)
    return False


def _wrap_exception(exc: Exception, *, endpoint: str) -> ProviderError:
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    if isinstance(exc, APIStatusError):
        message = f"{endpoint} {exc.status_code}: {message}"
    else:
        message = f"{endpoint}: {message}"
    logger.debug("OpenAI SDK call to %s failed: %s", endpoint, message)
    return ProviderError(message)
