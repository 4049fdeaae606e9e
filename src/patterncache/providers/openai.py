"""
OpenAI provider implementation.

Usage:
    from patterncache.providers.openai import OpenAIProvider

    provider = OpenAIProvider(config)
    response = await provider.complete(
        messages=[Message(role="user", content="Hello")],
        model="gpt-4o",
        options=CompletionOptions(json_mode=True),
    )
"""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING, Protocol, cast

from patterncache.providers import (
    AuthenticationError,
    BaseLLMProvider,
    CompletionOptions,
    CompletionResponse,
    ContentFilterError,
    ContextLengthError,
    Message,
    ModelNotFoundError,
    ProviderError,
    ProviderType,
    RateLimitError,
    TokenUsage,
    register_provider,
)

if TYPE_CHECKING:
    from patterncache.core.config import AppConfig

# Pattern to match potential API keys in error messages
_API_KEY_PATTERN = re.compile(
    r"""
    # OpenAI key pattern: sk-[base64 chars]
    sk-[A-Za-z0-9]{20,}|
    # Generic API key patterns that might appear in error messages
    (?:api[_-]?key|secret|token|password|credential)
    \s*[=:]\s*
    ['"]?[A-Za-z0-9_\-]{16,}['"]?
    """,
    re.IGNORECASE | re.VERBOSE,
)


def _redact_api_key(message: str) -> str:
    """Remove potential API keys from error messages."""
    api_key = os.environ.get("OPENAI_API_KEY", "")
    if api_key and api_key in message:
        message = message.replace(api_key, "[REDACTED]")
    return _API_KEY_PATTERN.sub("[REDACTED]", message)


class _CompletionMessage(Protocol):
    content: str | None


class _CompletionChoice(Protocol):
    message: _CompletionMessage
    finish_reason: str | None


class _Usage(Protocol):
    prompt_tokens: int
    completion_tokens: int


class _CompletionResponse(Protocol):
    choices: list[_CompletionChoice]
    usage: _Usage | None
    model: str


class _CompletionsAPI(Protocol):
    async def create(self, **kwargs: object) -> object: ...


class _ChatAPI(Protocol):
    completions: _CompletionsAPI


class OpenAIClientProtocol(Protocol):
    chat: _ChatAPI


# Aliases to canonical model IDs
MODEL_ALIASES: dict[str, str] = {
    "gpt-4o": "gpt-4o-2024-11-20",
    "gpt-4o-mini": "gpt-4o-mini-2024-07-18",
}

# Reasoning models reject the system role and sampling parameters
REASONING_MODELS: frozenset[str] = frozenset({"o1", "o1-mini", "o3-mini"})


def _resolve_model_id(model: str) -> str:
    """Resolve model alias to canonical ID."""
    return MODEL_ALIASES.get(model, model)


def _convert_messages_to_openai(
    messages: list[Message],
    system_prompt: str | None = None,
    model: str = "",
) -> list[dict[str, object]]:
    """Convert our Message format to OpenAI's format.

    For reasoning models the system content is folded into the first
    user message.
    """
    converted: list[dict[str, object]] = []
    supports_system = model not in REASONING_MODELS

    if system_prompt and supports_system:
        converted.append({"role": "system", "content": system_prompt})
    system_prepend = system_prompt if (system_prompt and not supports_system) else None

    for msg in messages:
        if msg.role == "system" and not supports_system:
            system_prepend = f"{system_prepend}\n\n{msg.content}" if system_prepend else msg.content
            continue

        content = msg.content
        if system_prepend and msg.role == "user":
            content = f"[System Context]\n{system_prepend}\n\n[User Message]\n{content}"
            system_prepend = None

        message_dict: dict[str, object] = {"role": msg.role, "content": content}
        if msg.name:
            message_dict["name"] = msg.name
        converted.append(message_dict)

    return converted


def _build_completion_params(
    model_id: str,
    messages: list[dict[str, object]],
    opts: CompletionOptions,
) -> dict[str, object]:
    """Build request parameters for the chat completions API."""
    params: dict[str, object] = {
        "model": model_id,
        "messages": messages,
    }
    reasoning = model_id in REASONING_MODELS

    if opts.max_tokens:
        params["max_completion_tokens" if reasoning else "max_tokens"] = opts.max_tokens

    if opts.temperature is not None and not reasoning:
        params["temperature"] = opts.temperature

    if opts.top_p is not None and not reasoning:
        params["top_p"] = opts.top_p

    if opts.stop_sequences:
        params["stop"] = list(opts.stop_sequences)

    if opts.json_mode:
        params["response_format"] = {"type": "json_object"}

    return params


@register_provider(ProviderType.OPENAI)
class OpenAIProvider(BaseLLMProvider):
    """OpenAI provider implementation.

    Requires the `openai` package. The API key is read from the
    OPENAI_API_KEY environment variable.
    """

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self._client: OpenAIClientProtocol | None = None

    def _get_client(self) -> OpenAIClientProtocol:
        """Lazy-initialize the OpenAI client."""
        if self._client is not None:
            return self._client

        import openai

        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise AuthenticationError("OPENAI_API_KEY environment variable not set")

        self._client = cast(OpenAIClientProtocol, openai.AsyncOpenAI(api_key=api_key))
        return self._client

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.OPENAI

    @property
    def default_model(self) -> str:
        return "gpt-4o-2024-11-20"

    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResponse:
        """Send a completion request to OpenAI."""
        client = self._get_client()
        opts = options or CompletionOptions()

        model_id = _resolve_model_id(model or self.default_model)
        converted_messages = _convert_messages_to_openai(messages, opts.system_prompt, model_id)
        params = _build_completion_params(model_id, converted_messages, opts)

        try:
            response_obj = await client.chat.completions.create(**params)
        except Exception as exc:
            self._handle_api_error(exc)
            raise AssertionError("unreachable")

        response = cast(_CompletionResponse, response_obj)
        choice = response.choices[0] if response.choices else None

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )

        return CompletionResponse(
            content=(choice.message.content or "") if choice else "",
            model=response.model,
            finish_reason=choice.finish_reason if choice else None,
            usage=usage,
            raw_response=response,
        )

    def _handle_api_error(self, exc: Exception) -> None:
        """Convert OpenAI exceptions to our error types.

        All error messages are redacted to prevent API key leakage.
        """
        import openai

        safe_msg = _redact_api_key(str(exc))

        if isinstance(exc, openai.AuthenticationError):
            raise AuthenticationError(safe_msg) from exc
        if isinstance(exc, openai.RateLimitError):
            raise RateLimitError(safe_msg) from exc
        if isinstance(exc, openai.NotFoundError):
            raise ModelNotFoundError(safe_msg) from exc
        if isinstance(exc, openai.BadRequestError):
            msg_lower = safe_msg.lower()
            if "context" in msg_lower or "token" in msg_lower or "length" in msg_lower:
                raise ContextLengthError(safe_msg) from exc
            if "content" in msg_lower or "filter" in msg_lower or "policy" in msg_lower:
                raise ContentFilterError(safe_msg) from exc
        raise ProviderError(safe_msg) from exc


__all__ = [
    "OpenAIProvider",
]
