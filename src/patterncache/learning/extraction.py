"""Signature extraction and category classification.

A signature is the first five words longer than three characters of the
lowercased text, in original order. It is whitespace-and-length based only:
no stemming, no locale-aware tokenization.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Final

from patterncache.core.result import Err, ExtractionSkipped, Ok, Result

MAX_SIGNATURE_TOKENS: Final[int] = 5
MIN_TOKEN_LENGTH: Final[int] = 4
DEFAULT_CATEGORY: Final[str] = "general"
CONTEXT_PLACEHOLDER: Final[str] = "[CONTEXTE]"

# Ordered: the first category with a matching keyword wins.
CATEGORY_KEYWORDS: Final[dict[str, tuple[str, ...]]] = {
    "développement": ("site", "web", "app", "code", "javascript"),
    "design": ("logo", "graphique", "design", "ui", "ux"),
    "travaux": ("peinture", "travaux", "rénovation", "construction"),
    "marketing": ("marketing", "pub", "seo", "social"),
    "rédaction": ("article", "contenu", "texte", "blog"),
}

INPUT_STOPWORDS: Final[frozenset[str]] = frozenset(
    {"dans", "avec", "pour", "sans", "plus", "cette", "tous"}
)

_ENHANCED_TEXT_RE = re.compile(r'```json\s*\{\s*"enhancedText":\s*"([^"]+)"')


def extract_signature(text: str) -> str:
    """Normalize ``text`` into an order-sensitive token signature.

    Returns an empty string when no token is long enough.
    """
    tokens = [word for word in text.lower().split() if len(word) >= MIN_TOKEN_LENGTH]
    return " ".join(tokens[:MAX_SIGNATURE_TOKENS])


def derive_signature(text: str) -> Result[str, ExtractionSkipped]:
    """Like extract_signature, but an empty signature is an explicit skip."""
    signature = extract_signature(text)
    if not signature:
        return Err(ExtractionSkipped("Input has no token longer than 3 characters"))
    return Ok(signature)


def classify(text: str) -> str:
    """Map free text to a domain category by keyword substring match."""
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return category
    return DEFAULT_CATEGORY


def text_from_input(payload: object) -> str:
    """Pick the most descriptive text out of a structured interaction input."""
    if isinstance(payload, str):
        return payload
    if isinstance(payload, Mapping):
        description = payload.get("description")
        if description:
            return str(description)
        mission = payload.get("mission")
        if isinstance(mission, Mapping) and mission.get("description"):
            return str(mission["description"])
        title = payload.get("title")
        if title:
            return str(title)
    return json.dumps(payload, ensure_ascii=False, default=str)[:200]


def category_from_input(payload: object) -> str:
    """Category from an explicit field of the input, else by classification."""
    if isinstance(payload, str):
        return classify(payload)
    if isinstance(payload, Mapping):
        if payload.get("category"):
            return str(payload["category"])
        mission = payload.get("mission")
        if isinstance(mission, Mapping) and mission.get("category"):
            return str(mission["category"])
        if payload.get("description"):
            return classify(str(payload["description"]))
    return classify(json.dumps(payload, ensure_ascii=False, default=str))


def input_keywords(payload: object, limit: int = 10) -> tuple[str, ...]:
    """Distinct lowercase words (>3 chars, stopwords removed) from an input."""
    if isinstance(payload, str):
        text = payload
    elif isinstance(payload, Mapping) and payload.get("description"):
        text = str(payload["description"])
    else:
        text = json.dumps(payload, ensure_ascii=False, default=str)

    words = (
        word
        for word in text.lower().split()
        if len(word) >= MIN_TOKEN_LENGTH and word not in INPUT_STOPWORDS
    )
    return tuple(dict.fromkeys(words))[:limit]


def clean_oracle_output(output: str) -> str:
    """Strip a fenced ``{"enhancedText": ...}`` wrapper and unescape the text."""
    cleaned = output
    if "```json" in cleaned:
        match = _ENHANCED_TEXT_RE.search(cleaned)
        if match:
            cleaned = match.group(1)
    cleaned = cleaned.replace("\\n", "\n").replace('\\"', '"')
    return cleaned.strip()


def adapt_output(output: str, new_input: str) -> str:
    """Fill the context placeholder of a stored output with the new input."""
    return output.replace(CONTEXT_PLACEHOLDER, new_input[:50])


__all__ = [
    "CATEGORY_KEYWORDS",
    "CONTEXT_PLACEHOLDER",
    "DEFAULT_CATEGORY",
    "MAX_SIGNATURE_TOKENS",
    "adapt_output",
    "category_from_input",
    "classify",
    "clean_oracle_output",
    "derive_signature",
    "extract_signature",
    "input_keywords",
    "text_from_input",
]
