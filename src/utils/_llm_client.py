"""LLM provider abstraction: OpenAI, Anthropic, Ollama.

Provides a unified interface for calling LLMs across different backends.
Provider routing is configured in ``configs/llm.yaml``.

Usage::

    from src.utils._llm_client import LLMMessage, get_llm_provider

    provider = get_llm_provider("query_classifier")
    response = await provider.acomplete(
        [LLMMessage(role="user", content="Classify this query.")],
        max_tokens=512,
        json_output=True,
    )
    print(response.text)
"""

from __future__ import annotations

import importlib.util
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from src.utils._exceptions import LLMCallError, LLMNotAvailableError
from src.utils._logging import get_logger

_log = get_logger(__name__)

# ── Defaults ────────────────────────────────────────────────────────────

_DEFAULT_CONFIG_PATH = Path("configs/llm.yaml")
_DEFAULT_PROVIDER = "openai"
_DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-haiku-4-5-20251001",
    "ollama": "qwen3:14b",
}

# ── Pydantic models ────────────────────────────────────────────────────


class ProviderConfig(BaseModel):
    """Configuration for a single LLM provider."""

    base_url: str = ""
    default_model: str = ""
    timeout_seconds: int = 30


class LLMConfig(BaseModel):
    """Root model that mirrors ``configs/llm.yaml``."""

    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    routing: dict[str, str] = Field(default_factory=dict)
    model_overrides: dict[str, str] = Field(default_factory=dict)
    ollama_options: dict[str, dict[str, Any]] = Field(default_factory=dict)


class LLMMessage(BaseModel):
    """A single message in the conversation."""

    role: str
    content: str


class LLMResponse(BaseModel):
    """Normalised response from any provider."""

    text: str
    model: str = ""
    provider: str = ""
    usage: dict[str, int] = Field(default_factory=dict)


# ── Abstract base ──────────────────────────────────────────────────────


class BaseLLMProvider(ABC):
    """Abstract base for all LLM providers."""

    def __init__(
        self,
        model: str,
        base_url: str = "",
        timeout_seconds: int = 30,
        options: dict[str, Any] | None = None,
    ) -> None:
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._options = options or {}

    @property
    def model(self) -> str:
        return self._model

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def is_available(self) -> bool: ...

    @abstractmethod
    async def acomplete(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float | None = None,
        system: str | None = None,
        json_output: bool = False,
    ) -> LLMResponse: ...

    async def aclose(self) -> None:
        """Release the underlying HTTP client, if any."""


# ── Anthropic provider ─────────────────────────────────────────────────


class AnthropicProvider(BaseLLMProvider):
    """Uses the native ``anthropic`` Python SDK.

    Anthropic has no JSON response mode; ``json_output`` is honoured by the
    prompt alone.
    """

    def __init__(self, model: str, timeout_seconds: int = 30, **kwargs: Any) -> None:
        super().__init__(model=model, timeout_seconds=timeout_seconds, **kwargs)
        self._client: Any = None

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def is_available(self) -> bool:
        try:
            if importlib.util.find_spec("anthropic") is None:
                return False
        except (ValueError, ModuleNotFoundError):
            return False
        return bool(os.environ.get("ANTHROPIC_API_KEY"))

    def _ensure_client(self) -> None:
        if self._client is not None:
            return
        try:
            import anthropic
        except ImportError:
            raise LLMNotAvailableError(
                "anthropic package required. Install with: pip install anthropic"
            ) from None
        self._client = anthropic.AsyncAnthropic(timeout=float(self._timeout))
        _log.info("anthropic_client_initialized")

    async def acomplete(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float | None = None,
        system: str | None = None,
        json_output: bool = False,
    ) -> LLMResponse:
        self._ensure_client()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as exc:
            raise LLMCallError(f"Anthropic call failed: {exc}") from exc

        text = response.content[0].text if response.content else ""
        usage: dict[str, int] = {}
        if getattr(response, "usage", None):
            usage = {
                "prompt_tokens": getattr(response.usage, "input_tokens", 0),
                "completion_tokens": getattr(response.usage, "output_tokens", 0),
            }
        return LLMResponse(text=text, model=response.model, provider="anthropic", usage=usage)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


# ── OpenAI-compatible providers ────────────────────────────────────────


class _OpenAICompatibleProvider(BaseLLMProvider):
    """Base for providers using the OpenAI chat-completions format."""

    def __init__(
        self,
        name: str,
        model: str,
        base_url: str,
        timeout_seconds: int = 30,
        api_key: str = "",
        options: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            model=model,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            options=options,
            **kwargs,
        )
        self._name = name
        self._api_key = api_key
        self._client: Any = None

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def is_available(self) -> bool:
        try:
            if importlib.util.find_spec("httpx") is None:
                return False
        except (ValueError, ModuleNotFoundError):
            return False
        return bool(self._base_url)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _chat_url(self) -> str:
        base = self._base_url
        if not base.endswith("/v1"):
            base = f"{base}/v1"
        return f"{base}/chat/completions"

    def _ensure_client(self) -> None:
        if self._client is not None:
            return
        import httpx

        self._client = httpx.AsyncClient(timeout=float(self._timeout), headers=self._headers())
        _log.info("openai_compat_client_initialized", provider=self._name)

    def _build_payload(
        self,
        messages: list[LLMMessage],
        max_tokens: int,
        temperature: float | None,
        system: str | None,
        json_output: bool,
    ) -> dict[str, Any]:
        chat_messages: list[dict[str, str]] = []
        if system:
            chat_messages.append({"role": "system", "content": system})
        for m in messages:
            chat_messages.append({"role": m.role, "content": m.content})

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": chat_messages,
            "max_tokens": max_tokens,
            "stream": False,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        elif "temperature" in self._options:
            payload["temperature"] = self._options["temperature"]
        if json_output:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _parse_response(self, data: dict[str, Any]) -> LLMResponse:
        text = ""
        choices = data.get("choices", [])
        if choices:
            text = choices[0].get("message", {}).get("content") or ""
        usage_raw = data.get("usage", {}) or {}
        usage = {
            "prompt_tokens": usage_raw.get("prompt_tokens", 0),
            "completion_tokens": usage_raw.get("completion_tokens", 0),
        }
        return LLMResponse(
            text=text,
            model=data.get("model", self._model),
            provider=self._name,
            usage=usage,
        )

    async def acomplete(
        self,
        messages: list[LLMMessage],
        *,
        max_tokens: int = 1024,
        temperature: float | None = None,
        system: str | None = None,
        json_output: bool = False,
    ) -> LLMResponse:
        self._ensure_client()
        payload = self._build_payload(messages, max_tokens, temperature, system, json_output)
        try:
            resp = await self._client.post(self._chat_url(), json=payload)
            resp.raise_for_status()
        except Exception as exc:
            raise LLMCallError(f"{self._name} call failed: {exc}") from exc
        return self._parse_response(resp.json())

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class OpenAIProvider(_OpenAICompatibleProvider):
    """OpenAI chat-completions with native JSON response mode."""

    def __init__(
        self,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: int = 30,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            name="openai",
            model=model,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            **kwargs,
        )

    @property
    def is_available(self) -> bool:
        return super().is_available and bool(self._api_key)


class OllamaProvider(_OpenAICompatibleProvider):
    """Ollama via the OpenAI-compatible ``/v1/chat/completions`` endpoint."""

    def __init__(
        self,
        model: str,
        base_url: str = "http://localhost:11434",
        timeout_seconds: int = 60,
        options: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            name="ollama",
            model=model,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            options=options,
            **kwargs,
        )

    def _build_payload(
        self,
        messages: list[LLMMessage],
        max_tokens: int,
        temperature: float | None,
        system: str | None,
        json_output: bool,
    ) -> dict[str, Any]:
        payload = super()._build_payload(messages, max_tokens, temperature, system, json_output)
        if "num_ctx" in self._options:
            payload.setdefault("options", {})["num_ctx"] = self._options["num_ctx"]
        return payload


# ── Config loading & factory ───────────────────────────────────────────

_config_cache: LLMConfig | None = None
_provider_cache: dict[str, BaseLLMProvider] = {}


def load_llm_config(config_path: Path | None = None) -> LLMConfig:
    """Load LLM config from ``configs/llm.yaml``.

    Returns a default (empty) config if the file is missing,
    which causes :func:`get_llm_provider` to fall back to OpenAI.
    """
    global _config_cache
    path = config_path or _DEFAULT_CONFIG_PATH

    if config_path is None and _config_cache is not None:
        return _config_cache

    if not path.exists():
        _log.info("llm_config_not_found", path=str(path))
        cfg = LLMConfig()
        if config_path is None:
            _config_cache = cfg
        return cfg

    try:
        import yaml

        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        cfg = LLMConfig.model_validate(raw)
    except Exception as exc:
        _log.warning("llm_config_load_failed", error=str(exc))
        cfg = LLMConfig()

    if config_path is None:
        _config_cache = cfg
    return cfg


def get_llm_provider(
    component: str,
    config: LLMConfig | None = None,
) -> BaseLLMProvider:
    """Get a configured LLM provider for a component.

    Args:
        component: Key matching ``routing`` in ``configs/llm.yaml``
            (e.g. ``"query_classifier"``).
        config: Optional pre-loaded config.  Loads from disk if *None*.

    Returns:
        A :class:`BaseLLMProvider` instance (cached per component).
    """
    if config is None and component in _provider_cache:
        return _provider_cache[component]

    cfg = config or load_llm_config()

    provider_name = cfg.routing.get(component, _DEFAULT_PROVIDER)
    provider_cfg = cfg.providers.get(provider_name, ProviderConfig())
    model = (
        cfg.model_overrides.get(component)
        or provider_cfg.default_model
        or _DEFAULT_MODELS.get(provider_name, "")
    )

    provider: BaseLLMProvider
    if provider_name == "openai":
        provider = OpenAIProvider(
            model=model,
            base_url=provider_cfg.base_url or "https://api.openai.com/v1",
            timeout_seconds=provider_cfg.timeout_seconds,
        )
    elif provider_name == "anthropic":
        provider = AnthropicProvider(
            model=model,
            timeout_seconds=provider_cfg.timeout_seconds,
        )
    elif provider_name == "ollama":
        provider = OllamaProvider(
            model=model,
            base_url=provider_cfg.base_url or "http://localhost:11434",
            timeout_seconds=provider_cfg.timeout_seconds,
            options=cfg.ollama_options.get(component, {}),
        )
    else:
        msg = f"Unknown LLM provider: {provider_name!r}"
        raise LLMNotAvailableError(msg)

    if config is None:
        _provider_cache[component] = provider

    _log.info(
        "llm_provider_created",
        component=component,
        provider=provider_name,
        model=model,
    )
    return provider


def clear_provider_cache() -> None:
    """Reset cached config and providers.  Useful for testing."""
    global _config_cache
    _provider_cache.clear()
    _config_cache = None
