"""Oracle implementation backed by an LLM provider."""

from __future__ import annotations

import json
from collections.abc import Mapping
from time import perf_counter

from patterncache.core.config import AppConfig
from patterncache.core.console import get_logger
from patterncache.providers import CompletionOptions, LLMProvider, Message, ProviderError
from patterncache.providers.factory import get_provider

from . import OracleReply
from .decoding import to_oracle_response

logger = get_logger(__name__)

_SYSTEM_PROMPT = (
    "You are an analysis service. The user message is a JSON task description "
    "whose 'task' field names what to do. Answer in JSON."
)


class ProviderOracle:
    """Sends structured prompts to a chat-completion LLM."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 2048,
    ) -> None:
        self._provider = provider
        self._model = model
        self._options = CompletionOptions(
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            system_prompt=_SYSTEM_PROMPT,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> ProviderOracle:
        oracle_cfg = config.oracle
        provider = get_provider(config, model_id=oracle_cfg.model)
        return cls(
            provider,
            model=oracle_cfg.model,
            temperature=oracle_cfg.temperature,
            max_tokens=oracle_cfg.max_tokens,
        )

    async def call(self, task_tag: str, prompt: Mapping[str, object]) -> OracleReply:
        payload = json.dumps({"task_tag": task_tag, **prompt}, ensure_ascii=False, default=str)
        start = perf_counter()
        response = await self._provider.complete(
            [Message(role="user", content=payload)],
            model=self._model,
            options=self._options,
        )
        latency_ms = (perf_counter() - start) * 1000

        text = response.content.strip()
        if not text:
            raise ProviderError(f"Empty oracle response for {task_tag}")

        logger.debug("Oracle %s answered in %.0f ms via %s", task_tag, latency_ms, response.model)
        return OracleReply(output=to_oracle_response(text), latency_ms=latency_ms)


__all__ = ["ProviderOracle"]
