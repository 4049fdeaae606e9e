"""
Anthropic Claude provider implementation.

Usage:
    from patterncache.providers.anthropic import AnthropicProvider

    provider = AnthropicProvider(config)
    response = await provider.complete(
        messages=[Message(role="user", content="Hello")],
        model="claude-sonnet-4-5",
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
    # Anthropic key pattern: sk-ant-[base64 chars]
    sk-ant-[A-Za-z0-9_\-]{20,}|
    # Generic API key patterns that might appear in error messages
    (?:api[_-]?key|secret|token|password|credential)
    \s*[=:]\s*
    ['"]?[A-Za-z0-9_\-]{16,}['"]?
    """,
    re.IGNORECASE | re.VERBOSE,
)

# Claude has no native JSON mode; the instruction goes in the system prompt.
_JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


def _redact_api_key(message: str) -> str:
    """Remove potential API keys from error messages."""
    api_key = os.environ.get("ANTHROPIC_API_KEY", "")
    if api_key and api_key in message:
        message = message.replace(api_key, "[REDACTED]")
    return _API_KEY_PATTERN.sub("[REDACTED]", message)


class _ContentBlock(Protocol):
    type: str
    text: str | None


class _Usage(Protocol):
    input_tokens: int
    output_tokens: int


class _MessageResponse(Protocol):
    content: list[_ContentBlock]
    model: str
    stop_reason: str | None
    usage: _Usage | None


class _MessagesAPI(Protocol):
    async def create(self, **kwargs: object) -> object: ...


class AnthropicClientProtocol(Protocol):
    messages: _MessagesAPI


# Aliases to canonical model IDs
MODEL_ALIASES: dict[str, str] = {
    "claude-opus-4-5": "claude-opus-4-5-20251101",
    "claude-sonnet-4-5": "claude-sonnet-4-5-20250929",
    "claude-haiku-4-5": "claude-haiku-4-5-20251001",
}


def _resolve_model_id(model: str) -> str:
    """Resolve model alias to canonical ID."""
    return MODEL_ALIASES.get(model, model)


def _convert_messages_to_anthropic(
    messages: list[Message],
    system_prompt: str | None = None,
) -> tuple[str | None, list[dict[str, object]]]:
    """Convert our Message format to Anthropic's format.

    Anthropic expects the system prompt separate from messages,
    and the conversation must start with a user turn.
    """
    system = system_prompt
    converted: list[dict[str, object]] = []

    for msg in messages:
        if msg.role == "system":
            system = f"{system}\n\n{msg.content}" if system else msg.content
        else:
            role = "user" if msg.role == "user" else "assistant"
            converted.append({"role": role, "content": msg.content})

    if converted and converted[0]["role"] == "assistant":
        converted.insert(0, {"role": "user", "content": "(continuing)"})

    return system, converted


def _extract_text_content(content_blocks: list[_ContentBlock]) -> str:
    """Extract text content from Anthropic response blocks."""
    return "".join(block.text for block in content_blocks if block.type == "text" and block.text)


def _build_request_params(
    model_id: str,
    messages: list[Message],
    opts: CompletionOptions,
) -> dict[str, object]:
    system_prompt = opts.system_prompt
    if opts.json_mode:
        system_prompt = f"{system_prompt}\n\n{_JSON_INSTRUCTION}" if system_prompt else _JSON_INSTRUCTION
    system, converted_messages = _convert_messages_to_anthropic(messages, system_prompt)

    params: dict[str, object] = {
        "model": model_id,
        "messages": converted_messages,
        "max_tokens": opts.max_tokens or 4096,
    }
    if system:
        params["system"] = system
    if opts.temperature is not None:
        params["temperature"] = opts.temperature
    if opts.top_p is not None:
        params["top_p"] = opts.top_p
    if opts.stop_sequences:
        params["stop_sequences"] = list(opts.stop_sequences)
    return params


@register_provider(ProviderType.ANTHROPIC)
class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider implementation.

    Requires the `anthropic` package. The API key is read from the
    ANTHROPIC_API_KEY environment variable.
    """

    def __init__(self, config: AppConfig) -> None:
        super().__init__(config)
        self._client: AnthropicClientProtocol | None = None

    def _get_client(self) -> AnthropicClientProtocol:
        """Lazy-initialize the Anthropic client."""
        if self._client is not None:
            return self._client

        import anthropic

        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise AuthenticationError("ANTHROPIC_API_KEY environment variable not set")

        self._client = cast(AnthropicClientProtocol, anthropic.AsyncAnthropic(api_key=api_key))
        return self._client

    @property
    def provider_type(self) -> ProviderType:
        return ProviderType.ANTHROPIC

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-5-20250929"

    async def complete(
        self,
        messages: list[Message],
        model: str | None = None,
        options: CompletionOptions | None = None,
    ) -> CompletionResponse:
        """Send a completion request to Anthropic."""
        client = self._get_client()
        opts = options or CompletionOptions()
        model_id = _resolve_model_id(model or self.default_model)
        params = _build_request_params(model_id, messages, opts)

        try:
            response_obj = await client.messages.create(**params)
        except Exception as exc:
            self._handle_api_error(exc)
            raise AssertionError("unreachable")

        response = cast(_MessageResponse, response_obj)

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
            )

        return CompletionResponse(
            content=_extract_text_content(response.content),
            model=response.model,
            finish_reason=response.stop_reason,
            usage=usage,
            raw_response=response,
        )

    def _handle_api_error(self, exc: Exception) -> None:
        """Convert Anthropic exceptions to our error types.

        All error messages are redacted to prevent API key leakage.
        """
        import anthropic

        safe_msg = _redact_api_key(str(exc))

        if isinstance(exc, anthropic.AuthenticationError):
            raise AuthenticationError(safe_msg) from exc
        if isinstance(exc, anthropic.RateLimitError):
            raise RateLimitError(safe_msg) from exc
        if isinstance(exc, anthropic.NotFoundError):
            raise ModelNotFoundError(safe_msg) from exc
        if isinstance(exc, anthropic.BadRequestError):
            msg_lower = safe_msg.lower()
            if "context" in msg_lower or "token" in msg_lower:
                raise ContextLengthError(safe_msg) from exc
            if "content" in msg_lower or "filter" in msg_lower or "safety" in msg_lower:
                raise ContentFilterError(safe_msg) from exc
        raise ProviderError(safe_msg) from exc


__all__ = [
    "AnthropicProvider",
]
