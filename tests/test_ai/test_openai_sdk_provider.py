"""Tests for the OpenAI SDK backed provider."""
from __future__ import annotations

import json

import httpx
import pytest

from aiassistant.ai.errors import ContentError, ProviderError
from aiassistant.ai.prompts import CHAT_PREAMBLE
from aiassistant.ai.providers import OpenAISDKProvider, RetryPolicy


def _completion(content: str | None) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 1700000000,
            "model": "test-model",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }
            ],
        },
    )


@pytest.mark.asyncio
async def test_chat_via_sdk_sends_chat_completion(make_transport, make_settings) -> None:
    transport = make_transport([_completion("From the SDK")])
    provider = OpenAISDKProvider(make_settings(transport))

    reply = await provider.chat([{"role": "user", "content": " hello "}])
    await provider.close()

    assert reply == "From the SDK"
    request = transport.requests[0]
    assert request.url.path == "/v1/chat/completions"
    body = json.loads(request.content.decode())
    assert body["model"] == "test-model"
    assert body["max_tokens"] == 2000
    assert body["messages"] == [
        {"role": "system", "content": CHAT_PREAMBLE},
        {"role": "user", "content": "hello"},
    ]


@pytest.mark.asyncio
async def test_status_errors_are_wrapped(make_transport, make_settings) -> None:
    transport = make_transport([httpx.Response(400, json={"error": {"message": "bad request", "type": "invalid"}})])
    provider = OpenAISDKProvider(make_settings(transport, retry=RetryPolicy(max_retries=0)))

    with pytest.raises(ProviderError, match="400"):
        await provider.generate("ping")
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_empty_content_is_content_error(make_transport, make_settings) -> None:
    transport = make_transport([_completion("")])
    provider = OpenAISDKProvider(make_settings(transport))

    with pytest.raises(ContentError):
        await provider.generate("ping")


@pytest.mark.asyncio
async def test_rate_limit_is_not_retried(make_transport, make_settings) -> None:
    transport = make_transport([httpx.Response(429, json={"error": {"message": "slow down", "type": "rate_limit"}})])
    provider = OpenAISDKProvider(make_settings(transport, retry=RetryPolicy(max_retries=2, base_delay=0.0)))

    with pytest.raises(ProviderError, match="429"):
        await provider.generate("ping")
    await provider.close()

    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_server_errors_are_retried_per_policy(make_transport, make_settings) -> None:
    transport = make_transport([
        httpx.Response(503, json={"error": {"message": "overloaded", "type": "server"}}),
        _completion("recovered"),
    ])
    provider = OpenAISDKProvider(make_settings(transport))

    reply = await provider.generate("ping")
    await provider.close()

    assert reply == "recovered"
    assert len(transport.requests) == 2


@pytest.mark.asyncio
async def test_server_errors_stop_after_max_retries(make_transport, make_settings) -> None:
    transport = make_transport([httpx.Response(500, json={"error": {"message": "boom", "type": "server"}})])
    provider = OpenAISDKProvider(make_settings(transport, retry=RetryPolicy(max_retries=2, base_delay=0.0)))

    with pytest.raises(ProviderError, match="500"):
        await provider.generate("ping")
    await provider.close()

    assert len(transport.requests) == 3
