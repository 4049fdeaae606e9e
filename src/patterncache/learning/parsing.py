"""Parsing of oracle critiques into scores and keyword lists.

One dispatcher per analysis kind matches on the response tag:
``Structured`` replies are read field by field, ``FreeText`` replies go
through line filters and the ``parse_score`` regex fallback. Every
extractor has a default, so parsing never raises.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, Final

from patterncache.oracle import FreeText, OracleResponse, Structured

from .models import LearningAnalysis, MetaAnalysis

# Dimension patterns accept the French wording of the original prompts and English.
QUALITY: Final[str] = r"qualit[ée]|quality"
REUSABILITY: Final[str] = r"r[ée]utilis|reusab"
RELEVANCE: Final[str] = r"relevance|pertinence"
INNOVATION: Final[str] = r"innovation"

DEFAULT_QUALITY: Final[float] = 0.8
DEFAULT_REUSABILITY: Final[float] = 0.7
DEFAULT_META_SCORE: Final[float] = 0.8

PATTERN_TYPES: Final[tuple[str, ...]] = (
    "structuration",
    "clarification",
    "enrichissement",
    "simplification",
)
DEFAULT_PATTERN_TYPE: Final[str] = "general"

KEYWORD_STOPWORDS: Final[frozenset[str]] = frozenset({"dans", "avec", "pour", "sans", "plus"})

_FACTOR_MARKERS: Final[tuple[str, ...]] = ("facteur", "amélior", "clé", "factor", "improv")
_AREA_MARKERS: Final[tuple[str, ...]] = ("améliorer", "développer", "renforcer", "improve")
_INSIGHT_MARKERS: Final[tuple[str, ...]] = ("pattern", "tendance", "récurrent", "trend")


def parse_score(text: str, dimension: str, default: float) -> float:
    """First integer following a ``dimension`` mention on the same line, over 100.

    ``dimension`` is a regex fragment matched case-insensitively.
    """
    match = re.search(rf"(?:{dimension}).*?(\d+)", text, re.IGNORECASE)
    if match is None:
        return default
    return int(match.group(1)) / 100


def _filter_lines(text: str, markers: Iterable[str], limit: int) -> tuple[str, ...]:
    lines = (line.strip() for line in text.split("\n"))
    return tuple(line for line in lines if line and any(m in line for m in markers))[:limit]


def _semantic_keywords(text: str, limit: int = 10) -> tuple[str, ...]:
    words = (
        word
        for word in text.lower().split()
        if len(word) > 4 and word not in KEYWORD_STOPWORDS
    )
    return tuple(words)[:limit]


def _classify_pattern_type(text: str) -> str:
    lowered = text.lower()
    return next((kind for kind in PATTERN_TYPES if kind in lowered), DEFAULT_PATTERN_TYPE)


def _field_score(fields: Mapping[str, Any], names: Iterable[str], default: float) -> float:
    """Numeric field value as a ratio; percentages are scaled down."""
    for name in names:
        value = fields.get(name)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                continue
        if isinstance(value, int | float) and value > 0:
            return min(1.0, value / 100 if value > 1 else float(value))
    return default


def _field_strings(fields: Mapping[str, Any], name: str, limit: int) -> tuple[str, ...]:
    value = fields.get(name)
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, list | tuple):
        return tuple(str(item) for item in value if item)[:limit]
    return ()


def parse_learning_analysis(response: OracleResponse) -> LearningAnalysis:
    """Interpret the oracle's critique of an improvement pair."""
    match response:
        case Structured(fields):
            pattern_type = fields.get("pattern_type")
            return LearningAnalysis(
                improvement_factors=_field_strings(fields, "improvement_factors", 5),
                semantic_keywords=_field_strings(fields, "semantic_keywords", 10),
                quality_score=_field_score(fields, ("quality_score",), DEFAULT_QUALITY),
                reusability_score=_field_score(
                    fields, ("reusability_score",), DEFAULT_REUSABILITY
                ),
                pattern_type=str(pattern_type) if pattern_type else DEFAULT_PATTERN_TYPE,
                raw=response,
            )
        case FreeText(text):
            return LearningAnalysis(
                improvement_factors=_filter_lines(text, _FACTOR_MARKERS, 5),
                semantic_keywords=_semantic_keywords(text),
                quality_score=parse_score(text, QUALITY, DEFAULT_QUALITY),
                reusability_score=parse_score(text, REUSABILITY, DEFAULT_REUSABILITY),
                pattern_type=_classify_pattern_type(text),
                raw=response,
            )
    return LearningAnalysis(raw=response)


def parse_meta_analysis(response: OracleResponse) -> MetaAnalysis:
    """Interpret the oracle's self-assessment of an interaction."""
    match response:
        case Structured(fields):
            return MetaAnalysis(
                relevance_score=_field_score(fields, ("relevance_score",), DEFAULT_META_SCORE),
                innovation_factor=_field_score(
                    fields, ("innovation_factor", "innovation_score"), DEFAULT_META_SCORE
                ),
                reusability_potential=_field_score(
                    fields, ("reusability_potential", "reusability_score"), DEFAULT_META_SCORE
                ),
                improvement_areas=_field_strings(fields, "improvement_areas", 3),
                pattern_insights=_field_strings(fields, "pattern_insights", 3),
                raw=response,
            )
        case FreeText(text):
            return MetaAnalysis(
                relevance_score=parse_score(text, RELEVANCE, DEFAULT_META_SCORE),
                innovation_factor=parse_score(text, INNOVATION, DEFAULT_META_SCORE),
                reusability_potential=parse_score(text, REUSABILITY, DEFAULT_META_SCORE),
                improvement_areas=_filter_lines(text, _AREA_MARKERS, 3),
                pattern_insights=_filter_lines(text, _INSIGHT_MARKERS, 3),
                raw=response,
            )
    return MetaAnalysis(raw=response)


def improvement_factors_from_response(response: OracleResponse) -> tuple[str, ...]:
    """Recommendations carried by an oracle answer to an end-user interaction."""
    match response:
        case Structured(fields):
            factors: list[str] = []
            for name in ("recommendations", "suggestions", "improvements"):
                factors.extend(_field_strings(fields, name, 5))
            return tuple(factors[:5])
        case FreeText(text):
            return _filter_lines(text, ("améliorer", "optimiser", "recommand"), 3)
    return ()


__all__ = [
    "DEFAULT_META_SCORE",
    "DEFAULT_QUALITY",
    "DEFAULT_REUSABILITY",
    "INNOVATION",
    "QUALITY",
    "RELEVANCE",
    "REUSABILITY",
    "improvement_factors_from_response",
    "parse_learning_analysis",
    "parse_meta_analysis",
    "parse_score",
]
