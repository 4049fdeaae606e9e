"""
Oracle call contract.

The oracle is the external generative-AI service whose answers patterncache
learns to replay. It is consulted through a single coroutine:

    reply = await oracle.call("learning_analysis", {"original": ..., ...})
    match reply.output:
        case Structured(fields):
            ...
        case FreeText(text):
            ...

Replies are either a decoded JSON object (``Structured``) or raw prose
(``FreeText``); parsers dispatch on that tag instead of probing types.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, runtime_checkable


@dataclass(frozen=True, slots=True)
class Structured:
    """An oracle reply that decoded to a JSON object."""

    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FreeText:
    """An oracle reply that is plain text."""

    text: str = ""


OracleResponse: TypeAlias = Structured | FreeText


@dataclass(frozen=True, slots=True)
class OracleReply:
    """Output of a single oracle call."""

    output: OracleResponse
    latency_ms: float


@runtime_checkable
class Oracle(Protocol):
    """Anything that can answer a tagged, structured prompt."""

    async def call(self, task_tag: str, prompt: Mapping[str, object]) -> OracleReply:
        """Send ``prompt`` for ``task_tag`` and return the decoded reply.

        Raises:
            Exception: Any transport or provider failure. Callers treat a
                raised error as "oracle unavailable".
        """
        ...


__all__ = [
    "FreeText",
    "Oracle",
    "OracleReply",
    "OracleResponse",
    "Structured",
]
