"""Decoding of oracle output into the Structured | FreeText union.

LLM replies are chatty: JSON may arrive bare, wrapped in a markdown fence or
buried in prose. These helpers locate the first complete JSON object and fall
back to free text when none decodes.
"""

from __future__ import annotations

import json
from collections.abc import Mapping

from patterncache.core.result import Err, MalformedOracleResponse, Ok, Result

from . import FreeText, OracleResponse, Structured


def _extract_balanced_json(text: str) -> str:
    """Extract first complete JSON object using balanced brace matching.

    Properly handles:
    - Nested braces in string values
    - Escape sequences
    - Unmatched braces (falls back to first { to last })
    """
    start = text.find("{")
    if start == -1:
        return text

    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start:], start):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    end = text.rfind("}")
    if end > start:
        return text[start : end + 1]
    return text


def _extract_from_code_fence(text: str) -> str | None:
    """Extract the body of a ```json fenced block, or None if absent."""
    text_lower = text.lower()

    fence_start = text_lower.find("```json")
    if fence_start == -1:
        fence_start = text_lower.find("```")
        if fence_start == -1:
            return None
        line_end = text.find("\n", fence_start)
        prefix = text_lower[fence_start:line_end] if line_end != -1 else text_lower[fence_start:]
        if "json" not in prefix:
            return None

    content_start = text.find("\n", fence_start)
    if content_start == -1:
        return None
    content_start += 1

    fence_end = text.find("```", content_start)
    if fence_end == -1:
        return None

    return text[content_start:fence_end].strip()


def _clean_json_payload(text: str) -> str:
    """Extract JSON content from raw output, tolerating code fences and stray prose."""
    stripped = text.strip()
    if not stripped:
        return stripped

    fence_content = _extract_from_code_fence(stripped)
    if fence_content:
        return fence_content

    return _extract_balanced_json(stripped)


def decode_text(text: str) -> Result[Structured, MalformedOracleResponse]:
    """Decode a JSON object out of oracle text.

    Returns Err when the text holds no JSON object; the caller keeps it
    as free text.
    """
    payload = _clean_json_payload(text)
    if not payload.startswith("{"):
        return Err(MalformedOracleResponse("No JSON object in oracle output"))
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        return Err(
            MalformedOracleResponse(
                "Oracle output is not valid JSON", context={"error": exc.msg, "pos": exc.pos}
            )
        )
    if not isinstance(data, dict):
        return Err(MalformedOracleResponse("Oracle JSON root is not an object"))
    return Ok(Structured(data))


def to_oracle_response(value: object) -> OracleResponse:
    """Tag an arbitrary oracle payload as Structured or FreeText."""
    match value:
        case Structured() | FreeText():
            return value
        case None:
            return FreeText("")
        case Mapping():
            return Structured(dict(value))
        case str():
            match decode_text(value):
                case Ok(structured):
                    return structured
                case Err(_):
                    return FreeText(value)
    return FreeText(json.dumps(value, ensure_ascii=False, default=str))


def to_payload(response: OracleResponse) -> object:
    """JSON-compatible value for embedding a response in another prompt."""
    match response:
        case Structured(fields):
            return dict(fields)
        case FreeText(text):
            return text


def render(response: OracleResponse) -> str:
    """Serialize a response back to text for storage or display."""
    match response:
        case Structured(fields):
            return json.dumps(fields, ensure_ascii=False, default=str)
        case FreeText(text):
            return text


__all__ = ["decode_text", "render", "to_oracle_response", "to_payload"]
