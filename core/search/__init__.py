# Path: core/search/__init__.py
# Purpose: Package initializer for similarity scoring and search orchestration.
# Layer: core/search.
# Details: Exposes scoring primitives, per-mode strategies, ranking, and the query pipeline.

from .pipeline import LastQuery, SearchPipeline
from .ranking import combined_score, find_similar
from .similarity import (
    MAX_HAMMING_BITS,
    embedding_similarity,
    hamming_distance,
    histogram_similarity,
    phash_score,
)
from .strategies import HybridScoring, PixelScoring, ScoringStrategy, SemanticScoring, get_strategy

__all__ = [
    "LastQuery",
    "SearchPipeline",
    "combined_score",
    "find_similar",
    "MAX_HAMMING_BITS",
    "embedding_similarity",
    "hamming_distance",
    "histogram_similarity",
    "phash_score",
    "HybridScoring",
    "PixelScoring",
    "ScoringStrategy",
    "SemanticScoring",
    "get_strategy",
]
