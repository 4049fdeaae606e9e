"""Category-level insights over the pattern store."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import Insight, Pattern

CATEGORY_INSIGHT_TYPE = "enhancement"


@dataclass
class _CategoryStats:
    count: int
    avg_confidence: float


def regenerate(
    patterns: Iterable[Pattern],
    *,
    min_samples: int = 5,
    min_confidence: float = 0.7,
) -> list[Insight]:
    """One insight per category with more than ``min_samples`` trusted patterns.

    The per-category average is the halving average ``(avg + new) / 2``,
    which weighs recent patterns more than a true mean would. Results depend
    on iteration order.
    """
    stats: dict[str, _CategoryStats] = {}
    for pattern in patterns:
        current = stats.get(pattern.category)
        if current is None:
            stats[pattern.category] = _CategoryStats(1, pattern.confidence)
        else:
            current.count += 1
            current.avg_confidence = (current.avg_confidence + pattern.confidence) / 2

    return [
        Insight(
            pattern_type=CATEGORY_INSIGHT_TYPE,
            suggestion=f"Category {category}: {entry.count} reliable patterns identified",
            confidence=entry.avg_confidence,
            sample_count=entry.count,
        )
        for category, entry in stats.items()
        if entry.count > min_samples and entry.avg_confidence > min_confidence
    ]


def insight_for_pattern(pattern: Pattern, *, threshold: float = 0.85) -> Insight | None:
    """Immediate insight for a single high-confidence pattern."""
    if pattern.confidence <= threshold:
        return None
    return Insight(
        pattern_type=pattern.interaction_type,
        suggestion=f"New high-quality {pattern.interaction_type} pattern identified",
        confidence=pattern.confidence,
        sample_count=1,
    )


__all__ = ["CATEGORY_INSIGHT_TYPE", "insight_for_pattern", "regenerate"]
