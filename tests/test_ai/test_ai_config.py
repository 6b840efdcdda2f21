"""Tests for the AI configuration helper."""
from __future__ import annotations

from configparser import ConfigParser

import httpx
import pytest

from aiassistant.ai.config import AIConfig, normalise_provider_id
from aiassistant.ai.errors import ConfigurationError
from aiassistant.ai.providers import OllamaProvider, OpenAICompatibleProvider, OpenAISDKProvider


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OLLAMA_API_KEY", raising=False)


def test_ai_config_defaults() -> None:
    cfg = AIConfig()

    assert cfg.provider == "openai"
    assert cfg.openai_base_url == "https://api.openai.com/v1"
    assert cfg.ollama_base_url == "http://localhost:11434"
    assert cfg.openai_api_key == ""
    assert cfg.timeout == 30
    assert cfg.max_tokens == 2000
    assert cfg.max_context_lines == 10
    assert cfg.enable_inline is True
    assert cfg.code_review_level == "basic"
    assert cfg.test_framework == "jest"
    assert cfg.generate_comments is False
    assert cfg.max_history == 10
    assert cfg.is_default_state() is True


def test_ai_config_load_and_save_roundtrip() -> None:
    parser = ConfigParser()
    parser[AIConfig.SECTION] = {
        "provider": "Ollama",
        "model": "codellama",
        "ollama_base_url": "http://gpu-box:11434",
        "timeout": "45",
        "max_context_lines": "4",
        "enable_inline": "no",
        "code_review_level": "detailed",
        "test_framework": "pytest",
        "generate_comments": "yes",
        "max_history": "20",
        "ollama_api_key": "stored-key",
        "extra_headers": "X-Trace: 1; X-Team: tools",
    }

    cfg = AIConfig()
    cfg.load_from_main_config(parser)

    assert cfg.provider == "ollama"
    assert cfg.model == "codellama"
    assert cfg.ollama_base_url == "http://gpu-box:11434"
    assert cfg.timeout == 45
    assert cfg.max_context_lines == 4
    assert cfg.enable_inline is False
    assert cfg.code_review_level == "detailed"
    assert cfg.test_framework == "pytest"
    assert cfg.generate_comments is True
    assert cfg.max_history == 20
    assert cfg.credential_for() == "stored-key"
    assert cfg.extra_headers == {"X-Trace": "1", "X-Team": "tools"}

    cfg.ollama_api_key = "updated-key"
    out = ConfigParser()
    cfg.save_to_main_config(out)

    assert out.get("AI", "provider") == "ollama"
    assert out.get("AI", "enable_inline") == "False"
    assert out.get("AI", "max_history") == "20"
    assert out.get("AI", "ollama_api_key") == "updated-key"
    assert out.get("AI", "extra_headers") == "X-Trace: 1; X-Team: tools"


def test_ai_config_invalid_values_fall_back_to_defaults() -> None:
    parser = ConfigParser()
    parser[AIConfig.SECTION] = {
        "timeout": "soon",
        "enable_inline": "perhaps",
        "temperature": "warm",
        "code_review_level": "pedantic",
    }

    cfg = AIConfig()
    cfg.load_from_main_config(parser)

    assert cfg.timeout == 30
    assert cfg.enable_inline is True
    assert cfg.temperature == pytest.approx(0.7)
    assert cfg.code_review_level == "basic"


def test_ai_config_environment_override(monkeypatch: pytest.MonkeyPatch) -> None:
    parser = ConfigParser()
    parser[AIConfig.SECTION] = {"openai_api_key": "stored-key"}

    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    cfg = AIConfig()
    cfg.load_from_main_config(parser)

    assert cfg.openai_api_key == "env-key"
    assert cfg.key_from_env("openai_api_key") is True

    out = ConfigParser()
    cfg.save_to_main_config(out)

    assert out.has_section("AI")
    assert not out.has_option("AI", "openai_api_key")


def test_default_config_is_not_written() -> None:
    out = ConfigParser()
    AIConfig().save_to_main_config(out)

    assert not out.has_section("AI")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("OpenAI", "openai"),
        ("openai-compatible", "openai"),
        ("OPENAI_SDK", "openai-sdk"),
        (" ollama ", "ollama"),
        (None, "openai"),
    ],
)
def test_provider_names_are_normalised(name, expected) -> None:
    assert normalise_provider_id(name) == expected


def test_build_provider_settings_uses_provider_defaults() -> None:
    cfg = AIConfig()
    cfg.provider = "ollama"
    cfg.ollama_api_key = "token"
    cfg.timeout = 12

    settings = cfg.build_provider_settings()

    assert settings.base_url == "http://localhost:11434"
    assert settings.model == "llama3"
    assert settings.api_key == "token"
    assert settings.timeout == pytest.approx(12.0)


def test_build_provider_settings_requires_credentials() -> None:
    cfg = AIConfig()

    with pytest.raises(ConfigurationError, match="openai_api_key"):
        cfg.build_provider_settings()


def test_unknown_provider_is_a_configuration_error() -> None:
    cfg = AIConfig()
    cfg.provider = "mystery"

    with pytest.raises(ConfigurationError, match="mystery"):
        cfg.credential_for()


@pytest.mark.parametrize(
    ("provider", "expected"),
    [
        ("openai", OpenAICompatibleProvider),
        ("openai-compatible", OpenAICompatibleProvider),
        ("openai-sdk", OpenAISDKProvider),
        ("Ollama", OllamaProvider),
    ],
)
def test_create_provider_uses_factory(provider: str, expected: type) -> None:
    cfg = AIConfig()
    cfg.provider = provider
    cfg.openai_api_key = "openai-token"
    cfg.ollama_api_key = "ollama-token"

    instance = cfg.create_provider(transport=httpx.MockTransport(lambda request: httpx.Response(200)))

    assert isinstance(instance, expected)
