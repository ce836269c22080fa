"""Remote language-model gateway.

Wraps a LangChain chat model behind a small ``chat(messages) -> ChatResponse``
contract so the orchestrator never sees provider-specific types. Every
provider failure is logged and re-raised as :class:`ModelGatewayError`.

Providers (OpenAI, Gemini, Anthropic, Kimi, Groq and Ollama) are listed in
:data:`PROVIDERS` with their default models. When no provider is configured
(``AGENT_LLM_PROVIDER=fallback`` or a provider without an API key) the
gateway answers with a static notice instead of calling out.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from agent import config

LOGGER = logging.getLogger(__name__)

ChatRole = Literal["system", "user", "assistant"]

FALLBACK_MODEL = "fallback"
FALLBACK_NOTICE = (
    "LLM provider is not configured. Set the provider's API key (e.g. GOOGLE_API_KEY "
    "or OPENAI_API_KEY) or AGENT_LLM_PROVIDER to enable model responses. Last prompt was:\n"
)


class ModelGatewayError(Exception):
    """Raised when the remote model call fails for any reason."""


@dataclass
class ChatMessage:
    role: ChatRole
    content: str


@dataclass
class ChatResponse:
    content: str
    model: str
    usage: dict[str, Any] = field(default_factory=dict)


class ModelGateway:
    """Synchronous chat facade over a LangChain chat model.

    Args:
        model: The chat model to call, or ``None`` for the static fallback.
        model_name: Name reported in :class:`ChatResponse`.
        provider: Id of the provider the model came from.
    """

    def __init__(self, model: Optional[BaseChatModel], model_name: str, provider: str = "custom") -> None:
        self._model = model
        self.model_name = model_name if model is not None else FALLBACK_MODEL
        self.provider = provider

    @property
    def available(self) -> bool:
        """False when answering with the static fallback notice."""
        return self._model is not None

    def chat(self, messages: list[ChatMessage], options: Optional[dict[str, Any]] = None) -> ChatResponse:
        """Send *messages* and return the model's reply.

        Args:
            messages: Ordered conversation, system prompt first.
            options: Extra model parameters (e.g. ``temperature``) bound for
                this call only.

        Raises:
            ModelGatewayError: If the provider call fails.
        """
        if self._model is None:
            last = messages[-1].content if messages else ""
            return ChatResponse(content=FALLBACK_NOTICE + last, model=FALLBACK_MODEL)

        runnable = self._model.bind(**options) if options else self._model
        LOGGER.debug(
            "model_request_prepared",
            extra={"model": self.model_name, "message_count": len(messages)},
        )
        try:
            response = runnable.invoke([_to_langchain(m) for m in messages])
        except Exception as exc:
            LOGGER.error(
                "model_request_failed",
                extra={"model": self.model_name, "error": str(exc)},
            )
            raise ModelGatewayError(f"Model request failed: {exc}") from exc

        usage = getattr(response, "usage_metadata", None) or {}
        return ChatResponse(
            content=_message_text(response),
            model=self.model_name,
            usage=dict(usage),
        )


def _to_langchain(message: ChatMessage) -> BaseMessage:
    if message.role == "system":
        return SystemMessage(content=message.content)
    if message.role == "assistant":
        return AIMessage(content=message.content)
    return HumanMessage(content=message.content)


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Multi-part content: keep the text parts only.
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


# ── Provider registry ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProviderRegistration:
    """A selectable model provider and its defaults."""

    id: str
    label: str
    default_model: str
    models: tuple[str, ...]
    env_keys: tuple[str, ...] = ()
    base_url: Optional[str] = None

    @property
    def requires_api_key(self) -> bool:
        return bool(self.env_keys)


PROVIDERS: dict[str, ProviderRegistration] = {
    "openai": ProviderRegistration(
        "openai",
        "OpenAI",
        "gpt-4.1-mini",
        ("gpt-4.1", "gpt-4.1-mini", "gpt-5"),
        ("OPENAI_API_KEY",),
    ),
    "gemini": ProviderRegistration(
        "gemini",
        "Google Gemini",
        "gemini-2.0-flash",
        ("gemini-1.5-flash", "gemini-2.0-flash", "gemini-2.0-pro"),
        ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    ),
    "anthropic": ProviderRegistration(
        "anthropic",
        "Anthropic Claude",
        "claude-3-5-sonnet-latest",
        ("claude-3-5-sonnet-latest", "claude-3-5-haiku-latest"),
        ("ANTHROPIC_API_KEY",),
    ),
    "kimi": ProviderRegistration(
        "kimi",
        "Kimi / Moonshot",
        "moonshot-v1-8k",
        ("moonshot-v1-8k", "moonshot-v1-32k", "moonshot-v1-128k"),
        ("KIMI_API_KEY", "MOONSHOT_API_KEY"),
        base_url="https://api.moonshot.cn/v1",
    ),
    "groq": ProviderRegistration(
        "groq",
        "Groq",
        "llama-3.1-8b-instant",
        ("llama-3.1-8b-instant", "llama-3.3-70b-versatile", "mixtral-8x7b-32768"),
        ("GROQ_API_KEY",),
        base_url="https://api.groq.com/openai/v1",
    ),
    "ollama": ProviderRegistration(
        "ollama",
        "Ollama",
        "llama3",
        ("llama3", "deepseek-coder", "qwen2"),
    ),
}

PROVIDER_ALIASES: dict[str, str] = {"llama": "ollama", "google": "gemini", "claude": "anthropic", "moonshot": "kimi"}


def get_provider(provider: str) -> ProviderRegistration:
    """Look up *provider* by id or alias.

    Raises:
        ValueError: If *provider* is unknown.
    """
    key = provider.strip().lower()
    key = PROVIDER_ALIASES.get(key, key)
    if key not in PROVIDERS:
        choices = ", ".join([*PROVIDERS, FALLBACK_MODEL])
        raise ValueError(f"Unknown LLM provider '{provider}'. Use one of: {choices}.")
    return PROVIDERS[key]


def resolve_api_key(registration: ProviderRegistration, explicit: Optional[str] = None) -> str:
    """Explicit key, then ``AGENT_LLM_API_KEY``, then the provider's own variables."""
    if explicit:
        return explicit
    if config.LLM_API_KEY:
        return config.LLM_API_KEY
    for name in registration.env_keys:
        value = os.getenv(name, "")
        if value:
            return value
    return ""


def _build_chat_model(
    registration: ProviderRegistration,
    model_name: str,
    api_key: str,
    base_url: Optional[str],
) -> BaseChatModel:
    if registration.id == "gemini":
        return ChatGoogleGenerativeAI(
            model=model_name,
            temperature=config.TEMPERATURE,
            google_api_key=api_key,
        )
    if registration.id == "anthropic":
        kwargs = {"base_url": base_url} if base_url else {}
        return ChatAnthropic(model=model_name, temperature=config.TEMPERATURE, api_key=api_key, **kwargs)
    if registration.id == "ollama":
        return ChatOllama(model=model_name, temperature=config.TEMPERATURE, base_url=base_url)
    # OpenAI and the OpenAI-compatible endpoints (Groq, Moonshot).
    return ChatOpenAI(
        model=model_name,
        temperature=config.TEMPERATURE,
        api_key=api_key,
        base_url=base_url,
    )


def create_gateway(
    provider: Optional[str] = None,
    model_name: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
) -> ModelGateway:
    """Build the gateway for *provider* (a :data:`PROVIDERS` id, alias or ``fallback``).

    Unset arguments come from ``AGENT_LLM_PROVIDER``, ``AGENT_MODEL``,
    ``AGENT_LLM_API_KEY`` and ``AGENT_LLM_BASE_URL``; an empty model name
    means the provider's default. A provider that needs a key but has none
    yields the static fallback.

    Raises:
        ValueError: If *provider* is unknown.
    """
    provider = provider or config.LLM_PROVIDER
    if provider.strip().lower() == FALLBACK_MODEL:
        return ModelGateway(None, FALLBACK_MODEL, provider=FALLBACK_MODEL)

    registration = get_provider(provider)
    model_name = model_name or config.MODEL_NAME or registration.default_model
    key = resolve_api_key(registration, api_key)
    if registration.requires_api_key and not key:
        LOGGER.warning(
            "model_provider_unconfigured",
            extra={"provider": registration.id, "env_keys": list(registration.env_keys)},
        )
        return ModelGateway(None, model_name, provider=registration.id)

    model = _build_chat_model(
        registration,
        model_name,
        key,
        base_url or config.LLM_BASE_URL or registration.base_url,
    )
    return ModelGateway(model, model_name, provider=registration.id)
