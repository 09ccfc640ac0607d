# Path: core/search/ranking.py
# Purpose: Rank cached fingerprint records against a query descriptor.
# Layer: core/search.
# Details: Stateless; reads a snapshot of candidates and never mutates it.

from __future__ import annotations

from typing import Any, List, Mapping, Optional

from core.models.domain import ScoredResult, SearchMode

from .strategies import get_strategy


def combined_score(query: Any, candidate: Any, mode: SearchMode | str = SearchMode.PIXEL) -> float:
    """Score ``candidate`` against ``query`` with the weighting of ``mode``."""

    return get_strategy(mode).score(query, candidate)


def find_similar(
    query: Any,
    candidates: Mapping[str, Any],
    threshold_percent: float,
    max_results: int,
    exclude_id: Optional[str] = None,
    mode: SearchMode | str = SearchMode.PIXEL,
) -> List[ScoredResult]:
    """Return up to ``max_results`` candidates scoring at least ``threshold_percent / 100``.

    Candidates lacking the fields the mode needs are skipped. Results are
    sorted by descending score; equal scores keep the order of ``candidates``.
    """

    if max_results <= 0:
        return []

    strategy = get_strategy(mode)
    threshold = threshold_percent / 100.0
    results: List[ScoredResult] = []

    for item_id, candidate in candidates.items():
        if item_id == exclude_id or candidate is None:
            continue
        if not strategy.accepts(candidate):
            continue
        score = strategy.score(query, candidate)
        if score >= threshold:
            results.append(ScoredResult(item_id=item_id, score=score))

    results.sort(key=lambda result: -result.score)
    return results[:max_results]
