"""
LLM provider abstraction for patterncache.

The oracle consulted for meta-learning is any chat-completion LLM. This
module defines a unified request/response surface so the oracle client can
talk to Anthropic Claude or OpenAI GPT models interchangeably.

Usage:
    from patterncache.providers import Message
    from patterncache.providers.factory import get_provider

    provider = get_provider(config, model_id="claude-sonnet-4-5")
    response = await provider.complete(
        messages=[Message(role="user", content="Hello")],
        options=CompletionOptions(temperature=0.1, json_mode=True),
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

if TYPE_CHECKING:
    from patterncache.core.config import AppConfig


class ProviderType(Enum):
    """Supported LLM provider backends."""

    ANTHROPIC = auto()
    OPENAI = auto()


@dataclass(frozen=True, slots=True)
class Message:
    """A message in the conversation history."""

    role: str  # "user", "assistant", "system"
    content: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token usage for a completion request."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.total_tokens is None:
            object.__setattr__(self, "total_tokens", self.prompt_tokens + self.completion_tokens)


@dataclass(slots=True)
class CompletionResponse:
    """Response from an LLM completion request."""

    content: str
    model: str
    finish_reason: str | None = None
    usage: TokenUsage | None = None
    raw_response: Any = None  # Provider-specific response object


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    """Options for completion requests.

    These options are normalized across providers - each provider
    implementation handles mapping to provider-specific parameters.
    """

    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    stop_sequences: tuple[str, ...] | None = None
    json_mode: bool = False  # Request JSON output
    system_prompt: str | None = None


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class AuthenticationError(ProviderError):
    """Raised when authentication fails."""

    pass


class RateLimitError(ProviderError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ModelNotFoundError(ProviderError):
    """Raised when the requested model is not available."""

    pass


class ContentFilterError(ProviderError):
    """Raised when content is blocked by safety filters."""

    pass


class ContextLengthError(ProviderError):
    """Raised when input exceeds model's context length."""

    pass


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol defining the interface for LLM providers."""

    @property
    def provider_type(self) -> ProviderType:
        """Return the provider type."""
        ...

    @property
    def default_model(self) -> str:
        """Return the default model ID for this provider."""
        ...

    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResponse:
        """Send a completion request and return the full response.

        Args:
            messages: The conversation history
            model: Model ID (defaults to provider's default)
            options: Completion options

        Returns:
            The completion response

        Raises:
            ProviderError: On API errors
        """
        ...


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers.

    Provides common functionality and enforces the LLMProvider protocol.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    @property
    @abstractmethod
    def provider_type(self) -> ProviderType:
        """Return the provider type."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Return the default model ID."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResponse:
        """Send a completion request."""
        ...


ProviderFactory = Callable[..., BaseLLMProvider]
PROVIDER_REGISTRY: dict[ProviderType, ProviderFactory] = {}

_P = TypeVar("_P", bound=type[BaseLLMProvider])


def register_provider(ptype: ProviderType) -> Callable[[_P], _P]:
    """Class decorator that records a provider implementation in the registry."""

    def decorator(cls: _P) -> _P:
        PROVIDER_REGISTRY[ptype] = cls
        return cls

    return decorator


# Model ID to provider type mapping
MODEL_PROVIDER_MAP: dict[str, ProviderType] = {
    # Anthropic Claude models
    "claude-opus-4-5": ProviderType.ANTHROPIC,
    "claude-opus-4-5-20251101": ProviderType.ANTHROPIC,
    "claude-sonnet-4-5": ProviderType.ANTHROPIC,
    "claude-sonnet-4-5-20250929": ProviderType.ANTHROPIC,
    "claude-haiku-4-5": ProviderType.ANTHROPIC,
    "claude-haiku-4-5-20251001": ProviderType.ANTHROPIC,
    "claude-3-5-haiku-20241022": ProviderType.ANTHROPIC,
    # OpenAI models
    "gpt-4o": ProviderType.OPENAI,
    "gpt-4o-2024-11-20": ProviderType.OPENAI,
    "gpt-4o-mini": ProviderType.OPENAI,
    "gpt-4o-mini-2024-07-18": ProviderType.OPENAI,
    "o3-mini": ProviderType.OPENAI,
}


def infer_provider_type(model_id: str) -> ProviderType:
    """Infer the provider type from a model ID.

    Raises:
        ModelNotFoundError: If provider cannot be inferred
    """
    if model_id in MODEL_PROVIDER_MAP:
        return MODEL_PROVIDER_MAP[model_id]

    model_lower = model_id.lower()
    if model_lower.startswith("claude"):
        return ProviderType.ANTHROPIC
    if model_lower.startswith(("gpt-", "o1", "o3")):
        return ProviderType.OPENAI

    raise ModelNotFoundError(f"Cannot infer provider for model: {model_id}")


__all__ = [
    # Types
    "ProviderType",
    "Message",
    "CompletionResponse",
    "TokenUsage",
    "CompletionOptions",
    # Errors
    "ProviderError",
    "AuthenticationError",
    "RateLimitError",
    "ModelNotFoundError",
    "ContentFilterError",
    "ContextLengthError",
    # Protocol and base
    "LLMProvider",
    "BaseLLMProvider",
    # Registry
    "PROVIDER_REGISTRY",
    "register_provider",
    # Helpers
    "MODEL_PROVIDER_MAP",
    "infer_provider_type",
]
