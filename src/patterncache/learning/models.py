"""Learning data models.

Patterns are immutable snapshots: the store replaces a pattern with an
updated copy instead of mutating it, so a reader holding a snapshot never
sees a half-applied merge.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from patterncache.oracle import OracleResponse

# Heuristic confidence bounds (usage + feedback only)
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95

# Bounds for patterns learned from a full oracle interaction
MIN_INTERACTION_CONFIDENCE = 0.3
MAX_INTERACTION_CONFIDENCE = 0.98


def utcnow() -> datetime:
    return datetime.now(UTC)


class Feedback(StrEnum):
    """User verdict attached to an observation."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


@dataclass(frozen=True, slots=True)
class QualityMetrics:
    """Quality scores for a pattern learned from a full oracle interaction."""

    response_quality: float
    relevance_score: float
    innovation_factor: float
    reusability_potential: float


@dataclass(frozen=True, slots=True)
class LearningAnalysis:
    """Oracle critique of an (original, improved) text pair."""

    improvement_factors: tuple[str, ...] = ()
    semantic_keywords: tuple[str, ...] = ()
    quality_score: float = 0.8
    reusability_score: float = 0.7
    pattern_type: str = "general"
    raw: OracleResponse | None = None


@dataclass(frozen=True, slots=True)
class MetaAnalysis:
    """Oracle self-assessment of its contribution to an interaction."""

    relevance_score: float = 0.8
    innovation_factor: float = 0.8
    reusability_potential: float = 0.8
    improvement_areas: tuple[str, ...] = ()
    pattern_insights: tuple[str, ...] = ()
    raw: OracleResponse | None = None


@dataclass(frozen=True, slots=True)
class Observation:
    """One learning signal headed for the store.

    ``confidence`` is only used when the key is new; merges recompute it.
    """

    interaction_type: str
    input_signature: str
    output: str
    category: str
    feedback: Feedback
    confidence: float
    oracle_analysis: OracleResponse | None = None
    quality_metrics: QualityMetrics | None = None
    improvement_factors: tuple[str, ...] = ()
    semantic_keywords: tuple[str, ...] = ()
    pattern_type: str | None = None

    @property
    def key(self) -> str:
        return pattern_key(self.input_signature, self.interaction_type)


@dataclass(frozen=True, slots=True)
class Pattern:
    """A learned association between an input signature and an approved output."""

    interaction_type: str
    input_signature: str
    successful_output: str
    category: str
    user_feedback: Feedback
    confidence: float
    usage_count: int = 1
    created_at: datetime = field(default_factory=utcnow)
    last_used_at: datetime = field(default_factory=utcnow)
    oracle_analysis: OracleResponse | None = None
    quality_metrics: QualityMetrics | None = None
    improvement_factors: tuple[str, ...] = ()
    semantic_keywords: tuple[str, ...] = ()
    pattern_type: str | None = None

    @property
    def key(self) -> str:
        return pattern_key(self.input_signature, self.interaction_type)

    @property
    def tokens(self) -> list[str]:
        return self.input_signature.split()

    @property
    def oracle_enriched(self) -> bool:
        return self.oracle_analysis is not None


@dataclass(frozen=True, slots=True)
class Insight:
    """Category-level (or single-pattern) summary derived from the store."""

    pattern_type: str
    suggestion: str
    confidence: float
    sample_count: int


@dataclass(frozen=True, slots=True)
class InteractionRecord:
    """One row of the external AI event log."""

    phase: str | None
    provider: str
    prompt: str | None
    output: str | Mapping[str, Any] | None
    accepted: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class LearningStats:
    total_patterns: int
    insights_generated: int
    high_confidence_count: int
    categories_learned: int
    interaction_types: tuple[str, ...]
    oracle_enriched_count: int
    avg_confidence: float


def pattern_key(signature: str, interaction_type: str) -> str:
    """Composite store key: ``<interaction type>:<signature>``."""
    return f"{interaction_type}:{signature}"


__all__ = [
    "MAX_CONFIDENCE",
    "MAX_INTERACTION_CONFIDENCE",
    "MIN_CONFIDENCE",
    "MIN_INTERACTION_CONFIDENCE",
    "Feedback",
    "Insight",
    "InteractionRecord",
    "LearningAnalysis",
    "LearningStats",
    "MetaAnalysis",
    "Observation",
    "Pattern",
    "QualityMetrics",
    "pattern_key",
    "utcnow",
]
