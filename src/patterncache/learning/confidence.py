"""Confidence scoring for learned patterns.

Confidence rewards repetition and positive feedback but stays bounded away
from 0 and 1: one negative observation never kills a pattern and no pattern
is ever treated as certain.
"""

from __future__ import annotations

from patterncache.oracle import FreeText, OracleResponse, Structured

from .models import (
    MAX_CONFIDENCE,
    MAX_INTERACTION_CONFIDENCE,
    MIN_CONFIDENCE,
    MIN_INTERACTION_CONFIDENCE,
    Feedback,
    LearningAnalysis,
    MetaAnalysis,
)


def clamp(value: float, low: float = MIN_CONFIDENCE, high: float = MAX_CONFIDENCE) -> float:
    return max(low, min(high, value))


def initial_confidence(feedback: Feedback, analysis: LearningAnalysis | None = None) -> float:
    """Confidence of a freshly observed pattern."""
    confidence = 0.8 if feedback is Feedback.POSITIVE else 0.6
    if analysis is not None:
        confidence += analysis.quality_score * 0.1
        confidence += analysis.reusability_score * 0.1
    return clamp(confidence)


def update_confidence(usage_count: int, feedback: Feedback) -> float:
    """Confidence of a pattern after another reinforcing observation."""
    confidence = 0.5 + min(0.3, usage_count * 0.05)
    if feedback is Feedback.POSITIVE:
        confidence += 0.2
    elif feedback is Feedback.NEGATIVE:
        confidence -= 0.3
    return clamp(confidence)


def interaction_confidence(
    feedback: Feedback,
    quality_score: float,
    meta: MetaAnalysis | None = None,
) -> float:
    """Confidence of a pattern learned from a full oracle interaction.

    Starts higher than the text heuristics since the oracle produced the output.
    """
    confidence = 0.8
    if feedback is Feedback.POSITIVE:
        confidence += 0.1
    elif feedback is Feedback.NEGATIVE:
        confidence -= 0.2

    confidence += (quality_score - 0.7) * 0.5

    if meta is not None:
        confidence += meta.relevance_score * 0.1
        confidence += meta.innovation_factor * 0.05

    return clamp(confidence, MIN_INTERACTION_CONFIDENCE, MAX_INTERACTION_CONFIDENCE)


def response_quality(response: OracleResponse | None, final_result: object) -> float:
    """Score an oracle response by richness and agreement with the final result."""
    quality = 0.7
    match response:
        case Structured(fields):
            quality += min(0.2, len(fields) * 0.05)
            present = True
        case FreeText(text):
            present = bool(text)
        case _:
            present = False
    if final_result and present:
        quality += 0.1
    return min(0.95, quality)


__all__ = [
    "clamp",
    "initial_confidence",
    "interaction_confidence",
    "response_quality",
    "update_confidence",
]
