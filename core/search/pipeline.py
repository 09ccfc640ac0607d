# Path: core/search/pipeline.py
# Purpose: Orchestrate search workflow by building query descriptors and ranking cached records.
# Layer: core/search.
# Details: Query fingerprints are always computed; query embeddings only when the embedder is ready.

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core.cache.store import CacheStore
from core.embedders.base import Embedder
from core.fingerprint.computer import FingerprintComputer
from core.models.domain import QueryDescriptor, ScoredResult, SearchMode
from core.models.errors import DecodeError, EmbeddingUnavailable

from .ranking import find_similar

logger = logging.getLogger(__name__)


@dataclass
class LastQuery:
    """The most recent query, kept so results can be re-ranked without recomputation."""

    descriptor: QueryDescriptor
    exclude_id: Optional[str]
    mode: SearchMode


class SearchPipeline:
    """High-level service bridging callers with the fingerprint computer, embedder, and cache."""

    def __init__(
        self,
        cache: CacheStore,
        computer: FingerprintComputer,
        embedder: Optional[Embedder] = None,
        threshold: float = 70,
        max_results: int = 20,
    ) -> None:
        self.cache = cache
        self.computer = computer
        self.embedder = embedder
        self.threshold = threshold
        self.max_results = max_results
        self.last_query: Optional[LastQuery] = None

    def resolve_mode(self, mode: SearchMode | str | None = None) -> SearchMode:
        """Map ``auto`` (or None) to hybrid when the embedder is ready, pixel otherwise."""

        if mode is None or mode == "auto":
            return SearchMode.HYBRID if self.embedder_ready else SearchMode.PIXEL
        return SearchMode(mode)

    @property
    def embedder_ready(self) -> bool:
        return self.embedder is not None and self.embedder.is_ready()

    def build_query(self, image_path: Path | str, with_embedding: Optional[bool] = None) -> QueryDescriptor:
        """Fingerprint ``image_path``; raises DecodeError if the image cannot be read.

        External calls:
        - core/fingerprint/computer.py::FingerprintComputer.compute_fingerprint - hash and histogram.
        - core/embedders/base.py::Embedder.compute_embedding - optional semantic vector.
        """

        fingerprint = self.computer.compute_fingerprint(image_path)
        query = QueryDescriptor(
            perceptual_hash=fingerprint.perceptual_hash,
            color_histogram=fingerprint.color_histogram,
        )

        if with_embedding is None:
            with_embedding = self.embedder_ready
        if with_embedding and self.embedder is not None:
            try:
                query.embedding = self.embedder.compute_embedding(image_path)
            except (DecodeError, EmbeddingUnavailable) as exc:
                logger.warning(f"Embedding failed for query {image_path}: {exc}")
        return query

    def search(
        self,
        query: QueryDescriptor,
        exclude_id: Optional[str] = None,
        mode: SearchMode | str | None = None,
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Rank every cached record against ``query``."""

        resolved = self.resolve_mode(mode)
        results = find_similar(
            query,
            self.cache.items(),
            self.threshold if threshold is None else threshold,
            self.max_results if max_results is None else max_results,
            exclude_id=exclude_id,
            mode=resolved,
        )
        self.last_query = LastQuery(descriptor=query, exclude_id=exclude_id, mode=resolved)
        logger.info(f"Search complete ({resolved.value}): {len(results)} results")
        return results

    def search_image(
        self,
        image_path: Path | str,
        exclude_id: Optional[str] = None,
        mode: SearchMode | str | None = None,
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Build a query from ``image_path`` and rank the cache against it."""

        resolved = self.resolve_mode(mode)
        wants_embedding = resolved is not SearchMode.PIXEL and self.embedder_ready
        query = self.build_query(image_path, with_embedding=wants_embedding)
        return self.search(query, exclude_id=exclude_id, mode=resolved, threshold=threshold, max_results=max_results)

    def refilter(self, threshold: Optional[float] = None, max_results: Optional[int] = None) -> List[ScoredResult]:
        """Re-rank the last query with new limits; returns [] if nothing was searched yet."""

        if threshold is not None:
            self.threshold = threshold
        if max_results is not None:
            self.max_results = max_results
        if self.last_query is None:
            return []
        last = self.last_query
        return self.search(last.descriptor, exclude_id=last.exclude_id, mode=last.mode)
