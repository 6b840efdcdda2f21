"""Shared fixtures for the AI Assistant test-suite."""
from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from aiassistant.ai.errors import ProviderError
from aiassistant.ai.ports import InMemoryDocument, InMemoryStateStore
from aiassistant.ai.providers import BaseProvider, ProviderSettings, RetryPolicy


class StubProvider(BaseProvider):
    """Provider answering from a scripted queue of replies or exceptions."""

    supports_plot = True

    def __init__(self, replies: list[Any] | None = None) -> None:
        super().__init__(ProviderSettings(base_url="https://stub.local", api_key="stub", model="stub-model"))
        self.replies: list[Any] = list(replies or [])
        self.requests: list[list[dict[str, str]]] = []
        self.temperatures: list[float] = []
        self.closed = False

    async def _complete_chat(self, messages: list[dict[str, str]], *, temperature: float) -> str:
        self.requests.append(messages)
        self.temperatures.append(temperature)
        if not self.replies:
            raise ProviderError("No scripted reply left.")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def state_store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def document() -> InMemoryDocument:
    return InMemoryDocument("def add(a, b):\n    return a - b\n", language="python")


@pytest.fixture
def make_provider() -> Callable[..., StubProvider]:
    def factory(*replies: Any) -> StubProvider:
        return StubProvider(list(replies))

    return factory


@pytest.fixture
def make_transport() -> Callable[[list[Any]], httpx.MockTransport]:
    """Return a factory for transports replaying canned responses in order.

    Each item is an ``httpx.Response`` or an exception to raise; the last
    item repeats once the list is exhausted. Requests are recorded on
    ``transport.requests``.
    """

    def factory(responses: list[Any]) -> httpx.MockTransport:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            item = responses[min(len(seen) - 1, len(responses) - 1)]
            if isinstance(item, Exception):
                raise item
            return item

        transport = httpx.MockTransport(handler)
        transport.requests = seen  # type: ignore[attr-defined]
        return transport

    return factory


@pytest.fixture
def make_settings() -> Callable[..., ProviderSettings]:
    def factory(transport: httpx.MockTransport, **overrides: Any) -> ProviderSettings:
        values: dict[str, Any] = {
            "base_url": "https://mock.local/v1",
            "api_key": "test-key",
            "model": "test-model",
            "transport": transport,
            "retry": RetryPolicy(base_delay=0.0),
        }
        values.update(overrides)
        return ProviderSettings(**values)

    return factory
