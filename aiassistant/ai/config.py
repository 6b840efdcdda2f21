"""Configuration helpers for the AI Assistant engine."""

from __future__ import annotations

import logging
import os
from configparser import ConfigParser
from typing import TYPE_CHECKING, Any, Protocol

from aiassistant.ai.errors import ConfigurationError

if TYPE_CHECKING:  # pragma: no cover - typing only
    import httpx
    from aiassistant.ai.providers.base import BaseProvider, ProviderSettings

logger = logging.getLogger(__name__)


class _ConfigReader(Protocol):
    """Protocol describing the subset of config readers we rely on."""

    def has_option(self, section: str, option: str) -> bool:  # pragma: no cover - typing aid
        ...

    def get(self, section: str, option: str, *args: Any, **kwargs: Any) -> str:  # pragma: no cover
        ...

    def getboolean(self, section: str, option: str, *args: Any, **kwargs: Any) -> bool:  # pragma: no cover
        ...

    def getint(self, section: str, option: str, *args: Any, **kwargs: Any) -> int:  # pragma: no cover
        ...


PROVIDER_OPENAI = "openai"
PROVIDER_OPENAI_SDK = "openai-sdk"
PROVIDER_OLLAMA = "ollama"

_PROVIDER_SYNONYMS: dict[str, str] = {
    "openai": PROVIDER_OPENAI,
    "openai-compatible": PROVIDER_OPENAI,
    "openai_compatible": PROVIDER_OPENAI,
    "openai-sdk": PROVIDER_OPENAI_SDK,
    "openai_sdk": PROVIDER_OPENAI_SDK,
    "ollama": PROVIDER_OLLAMA,
}

_DEFAULT_BASE_URLS: dict[str, str] = {
    PROVIDER_OPENAI: "https://api.openai.com/v1",
    PROVIDER_OPENAI_SDK: "https://api.openai.com/v1",
    PROVIDER_OLLAMA: "http://localhost:11434",
}

_DEFAULT_MODELS: dict[str, str] = {
    PROVIDER_OPENAI: "gpt-4o",
    PROVIDER_OPENAI_SDK: "gpt-4o",
    PROVIDER_OLLAMA: "llama3",
}

# Credentials are stored per backend family; the SDK provider shares the OpenAI key.
_CREDENTIAL_OPTIONS: dict[str, str] = {
    PROVIDER_OPENAI: "openai_api_key",
    PROVIDER_OPENAI_SDK: "openai_api_key",
    PROVIDER_OLLAMA: "ollama_api_key",
}

_ENV_KEYS: dict[str, str] = {
    "openai_api_key": "OPENAI_API_KEY",
    "ollama_api_key": "OLLAMA_API_KEY",
}

REVIEW_LEVELS = ("basic", "detailed")


def normalise_provider_id(provider: str | None) -> str:
    """Map a user-facing provider name onto its canonical identifier."""

    key = (provider or PROVIDER_OPENAI).strip().lower()
    return _PROVIDER_SYNONYMS.get(key, key)


class AIConfig:
    """Encapsulates persistent configuration for the AI Assistant."""

    __slots__ = (
        "provider",
        "model",
        "openai_base_url",
        "ollama_base_url",
        "openai_api_key",
        "ollama_api_key",
        "timeout",
        "max_tokens",
        "temperature",
        "code_temperature",
        "max_context_lines",
        "enable_inline",
        "code_review_level",
        "test_framework",
        "generate_comments",
        "max_history",
        "extra_headers",
        "user_agent",
        "_keys_from_env",
    )

    SECTION = "AI"

    def __init__(self) -> None:
        self.provider: str = PROVIDER_OPENAI
        self.model: str = ""
        self.openai_base_url: str = _DEFAULT_BASE_URLS[PROVIDER_OPENAI]
        self.ollama_base_url: str = _DEFAULT_BASE_URLS[PROVIDER_OLLAMA]
        self.openai_api_key: str = ""
        self.ollama_api_key: str = ""
        self.timeout: int = 30
        self.max_tokens: int = 2000
        self.temperature: float = 0.7
        self.code_temperature: float = 0.3
        self.max_context_lines: int = 10
        self.enable_inline: bool = True
        self.code_review_level: str = "basic"
        self.test_framework: str = "jest"
        self.generate_comments: bool = False
        self.max_history: int = 10
        self.extra_headers: dict[str, str] | None = None
        self.user_agent: str | None = None
        self._keys_from_env: set[str] = set()

    def key_from_env(self, option: str) -> bool:
        """Return ``True`` when the credential ``option`` came from an env var."""

        return option in self._keys_from_env

    def is_default_state(self) -> bool:
        """Return ``True`` when no user-specific settings are active."""

        return (
            self.provider == PROVIDER_OPENAI
            and not self.model
            and self.openai_base_url == _DEFAULT_BASE_URLS[PROVIDER_OPENAI]
            and self.ollama_base_url == _DEFAULT_BASE_URLS[PROVIDER_OLLAMA]
            and not self.openai_api_key
            and not self.ollama_api_key
            and self.timeout == 30
            and self.max_tokens == 2000
            and self.max_context_lines == 10
            and self.enable_inline
            and self.code_review_level == "basic"
            and self.test_framework == "jest"
            and not self.generate_comments
            and self.max_history == 10
            and not self.extra_headers
            and self.user_agent is None
        )

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def load_from_main_config(self, conf: _ConfigReader) -> None:
        """Populate the settings from a ConfigParser-like object."""

        reader = _ReaderFacade(conf)
        section = self.SECTION

        self.provider = normalise_provider_id(reader.get_str(section, "provider", self.provider))
        self.model = reader.get_str(section, "model", self.model).strip()
        self.openai_base_url = reader.get_str(section, "openai_base_url", self.openai_base_url)
        self.ollama_base_url = reader.get_str(section, "ollama_base_url", self.ollama_base_url)
        self.timeout = reader.get_int(section, "timeout", self.timeout)
        self.max_tokens = reader.get_int(section, "max_tokens", self.max_tokens)
        self.temperature = reader.get_float(section, "temperature", self.temperature)
        self.code_temperature = reader.get_float(section, "code_temperature", self.code_temperature)
        self.max_context_lines = max(0, reader.get_int(section, "max_context_lines", self.max_context_lines))
        self.enable_inline = reader.get_bool(section, "enable_inline", self.enable_inline)
        self.test_framework = reader.get_str(section, "test_framework", self.test_framework).strip() or "jest"
        self.generate_comments = reader.get_bool(section, "generate_comments", self.generate_comments)
        self.max_history = max(1, reader.get_int(section, "max_history", self.max_history))
        self.user_agent = self._normalise_optional(reader.get_str(section, "user_agent", self.user_agent or ""))
        self.extra_headers = self._parse_header_entries(reader.get_str(section, "extra_headers", ""))

        level = reader.get_str(section, "code_review_level", self.code_review_level).strip().lower()
        if level not in REVIEW_LEVELS:
            logger.warning("Unknown code review level '%s', using 'basic'", level)
            level = "basic"
        self.code_review_level = level

        self._keys_from_env = set()
        for option, env_name in _ENV_KEYS.items():
            stored_key = reader.get_str(section, option, "")
            env_key = os.environ.get(env_name, "").strip()
            if env_key:
                setattr(self, option, env_key)
                self._keys_from_env.add(option)
                if stored_key:
                    logger.debug("Ignoring stored %s due to %s override", option, env_name)
            else:
                setattr(self, option, stored_key)

    def save_to_main_config(self, conf: ConfigParser) -> None:
        """Persist the current settings into a config parser."""

        if self.is_default_state() and not self._keys_from_env:
            return

        section = self.SECTION
        if not conf.has_section(section):
            conf[section] = {}

        conf[section]["provider"] = normalise_provider_id(self.provider)
        conf[section]["model"] = str(self.model)
        conf[section]["openai_base_url"] = str(self.openai_base_url)
        conf[section]["ollama_base_url"] = str(self.ollama_base_url)
        conf[section]["timeout"] = str(self.timeout)
        conf[section]["max_tokens"] = str(self.max_tokens)
        conf[section]["temperature"] = str(self.temperature)
        conf[section]["code_temperature"] = str(self.code_temperature)
        conf[section]["max_context_lines"] = str(self.max_context_lines)
        conf[section]["enable_inline"] = str(self.enable_inline)
        conf[section]["code_review_level"] = str(self.code_review_level)
        conf[section]["test_framework"] = str(self.test_framework)
        conf[section]["generate_comments"] = str(self.generate_comments)
        conf[section]["max_history"] = str(self.max_history)

        if self.user_agent:
            conf[section]["user_agent"] = str(self.user_agent)
        elif conf.has_option(section, "user_agent"):
            conf.remove_option(section, "user_agent")

        headers_serialised = self._serialise_header_entries(self.extra_headers)
        if headers_serialised:
            conf[section]["extra_headers"] = headers_serialised
        elif conf.has_option(section, "extra_headers"):
            conf.remove_option(section, "extra_headers")

        for option in _ENV_KEYS:
            if option in self._keys_from_env:
                if conf.has_option(section, option):
                    conf.remove_option(section, option)
            else:
                conf[section][option] = str(getattr(self, option))

    # ------------------------------------------------------------------
    # Provider helpers
    # ------------------------------------------------------------------
    def credential_option(self, provider: str | None = None) -> str:
        """Return the name of the setting holding the credential for ``provider``."""

        provider_id = normalise_provider_id(provider or self.provider)
        try:
            return _CREDENTIAL_OPTIONS[provider_id]
        except KeyError as exc:
            raise ConfigurationError(f"Unsupported AI provider '{provider or self.provider}'.") from exc

    def credential_for(self, provider: str | None = None) -> str:
        """Return the stored credential for ``provider`` (may be empty)."""

        return (getattr(self, self.credential_option(provider)) or "").strip()

    def base_url_for(self, provider: str | None = None) -> str:
        provider_id = normalise_provider_id(provider or self.provider)
        if provider_id == PROVIDER_OLLAMA:
            return (self.ollama_base_url or "").strip()
        return (self.openai_base_url or "").strip()

    def model_for(self, provider: str | None = None) -> str:
        provider_id = normalise_provider_id(provider or self.provider)
        return (self.model or "").strip() or _DEFAULT_MODELS.get(provider_id, "")

    def build_provider_settings(
        self,
        *,
        provider: str | None = None,
        transport: "httpx.AsyncBaseTransport" | None = None,
    ) -> "ProviderSettings":
        """Translate configuration values into :class:`ProviderSettings`."""

        from aiassistant.ai.providers.base import ProviderSettings  # Local import to avoid cycles

        option = self.credential_option(provider)
        api_key = self.credential_for(provider)
        if not api_key:
            raise ConfigurationError(f"API key is not configured. Set '{option}' in the [{self.SECTION}] settings.")

        base_url = self.base_url_for(provider)
        if not base_url:
            raise ConfigurationError(f"Provider base URL is not configured for '{provider or self.provider}'.")

        model = self.model_for(provider)
        if not model:
            raise ConfigurationError("Model name must be configured for the AI provider.")

        return ProviderSettings(
            base_url=base_url,
            api_key=api_key,
            model=model,
            timeout=float(self.timeout),
            max_tokens=int(self.max_tokens),
            temperature=float(self.temperature),
            code_temperature=float(self.code_temperature),
            extra_headers=self.extra_headers,
            user_agent=self.user_agent,
            transport=transport,
        )

    def create_provider(
        self,
        *,
        transport: "httpx.AsyncBaseTransport" | None = None,
    ) -> "BaseProvider":
        """Instantiate the configured provider implementation."""

        from aiassistant.ai.providers.factory import provider_from_config

        return provider_from_config(self, transport=transport)

    @staticmethod
    def _normalise_optional(value: str | None) -> str | None:
        cleaned = (value or "").strip()
        return cleaned or None

    @staticmethod
    def _parse_header_entries(raw: str) -> dict[str, str] | None:
        if not raw:
            return None
        entries = [chunk.strip() for chunk in raw.split(";") if chunk.strip()]
        headers: dict[str, str] = {}
        for entry in entries:
            if ":" not in entry:
                continue
            key, value = entry.split(":", 1)
            key = key.strip()
            if key:
                headers[key] = value.strip()
        return headers or None

    @staticmethod
    def _serialise_header_entries(headers: dict[str, str] | None) -> str:
        if not headers:
            return ""
        return "; ".join(f"{key}: {value}" for key, value in headers.items())


class _ReaderFacade:
    """Thin wrapper adding fallbacks and type coercion to config readers."""

    __slots__ = ("_conf",)

    def __init__(self, conf: _ConfigReader) -> None:
        self._conf = conf

    def get_str(self, section: str, option: str, default: str) -> str:
        return self._conf.get(section, option, fallback=default)

    def get_bool(self, section: str, option: str, default: bool) -> bool:
        try:
            return self._conf.getboolean(section, option, fallback=default)
        except ValueError:
            logger.warning("Invalid boolean for '%s:%s' in AI config", section, option)
            return default

    def get_int(self, section: str, option: str, default: int) -> int:
        try:
            return self._conf.getint(section, option, fallback=default)
        except ValueError:
            logger.warning("Invalid integer for '%s:%s' in AI config", section, option)
            return default

    def get_float(self, section: str, option: str, default: float) -> float:
        try:
            raw_value = self._conf.get(section, option, fallback=str(default))
            return float(raw_value)
        except (ValueError, TypeError):
            logger.warning("Invalid float for '%s:%s' in AI config", section, option)
            return default
