# Path: core/search/strategies.py
# Purpose: Define scoring strategies that combine fingerprint signals per search mode.
# Layer: core/search.
# Details: Hybrid scoring falls back to the pixel formula whenever either side lacks an embedding.

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Set

from core.models.domain import SearchMode

from .similarity import embedding_similarity, histogram_similarity, phash_score


class ScoringStrategy(ABC):
    """Interface for turning a query/candidate pair into a score in [0, 1]."""

    mode: SearchMode
    description: str
    required_fields: Set[str]

    def accepts(self, candidate: Any) -> bool:
        """Return True if ``candidate`` carries every field this mode needs."""

        return all(getattr(candidate, name, None) for name in self.required_fields)

    @abstractmethod
    def score(self, query: Any, candidate: Any) -> float:
        """Return the combined similarity of ``candidate`` to ``query``."""


class PixelScoring(ScoringStrategy):
    """Structural hash plus color distribution."""

    mode = SearchMode.PIXEL
    description = "0.6 perceptual hash + 0.4 color histogram."
    required_fields: Set[str] = {"perceptual_hash"}

    HASH_WEIGHT = 0.6
    COLOR_WEIGHT = 0.4

    def score(self, query: Any, candidate: Any) -> float:
        p_score = phash_score(query.perceptual_hash, candidate.perceptual_hash)
        c_score = histogram_similarity(query.color_histogram, candidate.color_histogram)
        return self.HASH_WEIGHT * p_score + self.COLOR_WEIGHT * c_score


class SemanticScoring(ScoringStrategy):
    """Learned embedding only; scores 0 when either side has no embedding."""

    mode = SearchMode.SEMANTIC
    description = "Remapped cosine similarity of embeddings."
    required_fields: Set[str] = {"embedding"}

    def score(self, query: Any, candidate: Any) -> float:
        if not query.embedding or not candidate.embedding:
            return 0.0
        return embedding_similarity(query.embedding, candidate.embedding)


class HybridScoring(ScoringStrategy):
    """All three signals, degrading to pixel scoring without embeddings."""

    mode = SearchMode.HYBRID
    description = "0.25 hash + 0.15 color + 0.60 embedding, else pixel scoring."
    required_fields: Set[str] = set()

    HASH_WEIGHT = 0.25
    COLOR_WEIGHT = 0.15
    EMBEDDING_WEIGHT = 0.60

    def __init__(self) -> None:
        self._fallback = PixelScoring()

    def score(self, query: Any, candidate: Any) -> float:
        if not query.embedding or not candidate.embedding:
            return self._fallback.score(query, candidate)

        p_score = phash_score(query.perceptual_hash, candidate.perceptual_hash)
        c_score = histogram_similarity(query.color_histogram, candidate.color_histogram)
        e_score = embedding_similarity(query.embedding, candidate.embedding)
        return self.HASH_WEIGHT * p_score + self.COLOR_WEIGHT * c_score + self.EMBEDDING_WEIGHT * e_score


STRATEGIES: Dict[SearchMode, ScoringStrategy] = {
    SearchMode.PIXEL: PixelScoring(),
    SearchMode.SEMANTIC: SemanticScoring(),
    SearchMode.HYBRID: HybridScoring(),
}


def get_strategy(mode: SearchMode | str) -> ScoringStrategy:
    """Return the strategy registered for ``mode``."""

    try:
        return STRATEGIES[SearchMode(mode)]
    except ValueError as exc:
        raise ValueError(f"Unknown search mode: {mode}") from exc
