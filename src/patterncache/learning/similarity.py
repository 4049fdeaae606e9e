"""Token-overlap similarity between signatures."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Pattern

DEFAULT_SIMILARITY_THRESHOLD = 0.3
DEFAULT_SIMILARITY_LIMIT = 3


def overlap_ratio(query: Sequence[str], candidate: Sequence[str]) -> float:
    """Share of query tokens found in the candidate, over the longer length.

    The denominator is ``max(len(query), len(candidate))``, not the size of
    the union, so this is not Jaccard similarity.
    """
    if not query or not candidate:
        return 0.0
    candidate_tokens = set(candidate)
    common = sum(1 for token in query if token in candidate_tokens)
    return common / max(len(query), len(candidate))


def find_similar(
    signature: str,
    interaction_type: str,
    patterns: Iterable[Pattern],
    *,
    limit: int = DEFAULT_SIMILARITY_LIMIT,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[Pattern]:
    """Rank same-type patterns by overlap with ``signature``, best first."""
    query = signature.split()
    scored: list[tuple[float, Pattern]] = []
    for pattern in patterns:
        if not pattern.key.startswith(interaction_type):
            continue
        ratio = overlap_ratio(query, pattern.tokens)
        if ratio > threshold:
            scored.append((ratio, pattern))

    scored.sort(key=lambda item: item[0], reverse=True)
    return [pattern for _, pattern in scored[:limit]]


__all__ = ["DEFAULT_SIMILARITY_LIMIT", "DEFAULT_SIMILARITY_THRESHOLD", "find_similar", "overlap_ratio"]
