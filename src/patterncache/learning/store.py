"""In-memory pattern store.

All mutations funnel through ``upsert``, which holds a single asyncio lock
while it reads the current pattern, merges the observation and writes the
result back. Readers never take the lock: patterns are immutable and the
mapping is copied before iteration.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Mapping
from dataclasses import replace
from types import MappingProxyType
from typing import TypeVar

from patterncache.core.console import get_logger

from .confidence import update_confidence
from .models import Feedback, Observation, Pattern, utcnow

logger = get_logger(__name__)

_V = TypeVar("_V")


def _prefer(new: _V | None, old: _V | None) -> _V | None:
    return new if new is not None else old


def _create(observation: Observation) -> Pattern:
    now = utcnow()
    return Pattern(
        interaction_type=observation.interaction_type,
        input_signature=observation.input_signature,
        successful_output=observation.output,
        category=observation.category,
        user_feedback=observation.feedback,
        confidence=observation.confidence,
        usage_count=1,
        created_at=now,
        last_used_at=now,
        oracle_analysis=observation.oracle_analysis,
        quality_metrics=observation.quality_metrics,
        improvement_factors=observation.improvement_factors,
        semantic_keywords=observation.semantic_keywords,
        pattern_type=observation.pattern_type,
    )


def _merge(existing: Pattern, observation: Observation) -> Pattern:
    """Fold a reinforcing observation into an existing pattern.

    The stored output is only replaced by a positively labelled, strictly
    longer one. A neutral verdict keeps the stored polarity.
    """
    usage_count = existing.usage_count + 1
    feedback = (
        existing.user_feedback if observation.feedback is Feedback.NEUTRAL else observation.feedback
    )

    output = existing.successful_output
    if observation.feedback is Feedback.POSITIVE and len(observation.output) > len(output):
        output = observation.output

    return replace(
        existing,
        successful_output=output,
        user_feedback=feedback,
        confidence=update_confidence(usage_count, feedback),
        usage_count=usage_count,
        last_used_at=utcnow(),
        oracle_analysis=_prefer(observation.oracle_analysis, existing.oracle_analysis),
        quality_metrics=_prefer(observation.quality_metrics, existing.quality_metrics),
        improvement_factors=observation.improvement_factors or existing.improvement_factors,
        semantic_keywords=observation.semantic_keywords or existing.semantic_keywords,
        pattern_type=_prefer(observation.pattern_type, existing.pattern_type),
    )


class PatternStore:
    """Mapping of ``<interaction type>:<signature>`` keys to patterns.

    Usage:
        store = PatternStore()
        pattern = await store.upsert(observation)
        hit = store.lookup("enhancement:créer site professionnel")
        for p in store.iterate(category="design"):
            ...
    """

    def __init__(self) -> None:
        self._patterns: dict[str, Pattern] = {}
        self._write_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, key: object) -> bool:
        return key in self._patterns

    async def upsert(self, observation: Observation) -> Pattern:
        """Insert a new pattern or merge the observation into the existing one."""
        async with self._write_lock:
            key = observation.key
            existing = self._patterns.get(key)
            if existing is None:
                pattern = _create(observation)
                logger.debug("New pattern %s (confidence %.2f)", key, pattern.confidence)
            else:
                pattern = _merge(existing, observation)
                logger.debug(
                    "Reinforced pattern %s (usage %d, confidence %.2f)",
                    key,
                    pattern.usage_count,
                    pattern.confidence,
                )
            self._patterns[key] = pattern
            return pattern

    def lookup(self, key: str) -> Pattern | None:
        return self._patterns.get(key)

    def snapshot(self) -> Mapping[str, Pattern]:
        """Read-only copy of the current mapping."""
        return MappingProxyType(dict(self._patterns))

    def iterate(self, category: str | None = None) -> Iterator[Pattern]:
        """Iterate over a snapshot, optionally restricted to one category.

        Order is unspecified.
        """
        for pattern in list(self._patterns.values()):
            if category is None or pattern.category == category:
                yield pattern


__all__ = ["PatternStore"]
