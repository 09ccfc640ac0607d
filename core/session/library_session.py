# Path: core/session/library_session.py
# Purpose: Own the cache, indexer, embedder, and search pipeline for one open library.
# Layer: core/session.
# Details: Runs indexing and model loading on background threads and flushes the cache on close.

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from config.settings import AppSettings
from core.cache.storage import JsonDocumentStorage
from core.cache.store import CacheStore
from core.embedders import create_embedder
from core.embedders.base import Embedder
from core.fingerprint.computer import FingerprintComputer
from core.imaging.decoder import PixelDecoder
from core.indexing.indexer import Indexer
from core.indexing.scanner import LibraryScanner
from core.models.domain import (
    IndexRunResult,
    LibraryItem,
    ProgressCallback,
    ScoredResult,
    SearchMode,
    is_image_type,
)
from core.models.errors import DecodeError
from core.search.pipeline import SearchPipeline

logger = logging.getLogger(__name__)


class LibrarySession:
    """Wire the core services together for a single library.

    Typical lifecycle::

        session = LibrarySession(settings)
        session.open()
        session.refresh_items()
        session.start_indexing(on_progress)
        session.load_embedder(wait=False)
        results = session.search_file(path)
        session.close()
    """

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        embedder: Optional[Embedder] = None,
        decoder: Optional[PixelDecoder] = None,
        storage: Optional[JsonDocumentStorage] = None,
    ) -> None:
        self.settings = settings or AppSettings()
        self.decoder = decoder or PixelDecoder(timeout=self.settings.decode_timeout)
        self.storage = storage or JsonDocumentStorage.for_library(
            self.settings.cache.directory, self.settings.library_name
        )
        self.cache = CacheStore(self.storage, save_delay=self.settings.cache.save_delay)
        self.computer = FingerprintComputer(self.decoder)

        if embedder is None and self.settings.embedder.enabled:
            embedder = create_embedder(self.settings.embedder, decoder=self.decoder)
        self.embedder = embedder

        indexer_settings = self.settings.indexer
        self.indexer = Indexer(
            self.cache,
            self.computer,
            embedder=self.embedder,
            chunk_size=indexer_settings.chunk_size,
            chunk_delay=indexer_settings.chunk_delay,
            embed_delay=indexer_settings.embed_delay,
            max_workers=indexer_settings.max_workers,
        )
        self.pipeline = SearchPipeline(
            self.cache,
            self.computer,
            embedder=self.embedder,
            threshold=self.settings.search.threshold,
            max_results=self.settings.search.max_results,
        )

        self.items: List[LibraryItem] = []
        self.fingerprint_done = False
        self.closed = False
        self._progress: Optional[ProgressCallback] = None
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()

    # Lifecycle
    def open(self, library_path: Optional[Path | str] = None) -> None:
        """Bind the cache to ``library_path`` (defaults to settings.library_root)."""

        root = Path(library_path) if library_path is not None else self.settings.library_root
        self.settings.library_root = root
        self.cache.open(str(root.resolve()))
        logger.info(f"Session: cache has {self.cache.count()} items for {root}")

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop indexing, wait for background work, and flush the cache."""

        with self._lock:
            self.closed = True
        self.indexer.shutdown()
        for thread in list(self._threads):
            thread.join(timeout)
        self._threads = [thread for thread in self._threads if thread.is_alive()]
        self.cache.flush()

    def __enter__(self) -> "LibrarySession":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    # Library items
    def refresh_items(self, items: Optional[Sequence[LibraryItem]] = None) -> List[LibraryItem]:
        """Replace the known item list, scanning library_root when ``items`` is None."""

        if items is None:
            items = LibraryScanner(self.settings.library_root).scan()
        self.items = list(items)
        return self.items

    @property
    def image_count(self) -> int:
        return sum(1 for item in self.items if is_image_type(item.ext))

    # Indexing
    def index(self, on_progress: Optional[ProgressCallback] = None) -> IndexRunResult:
        """Run both indexing phases in the calling thread."""

        if self.closed:
            return IndexRunResult(started=False)
        if on_progress is not None:
            self._progress = on_progress
        result = self.indexer.index_library(self.items, self._progress)
        if not result.started or result.fingerprint is None:
            return result

        fingerprint_stopped = result.stopped and result.embedding is None
        with self._lock:
            if not fingerprint_stopped:
                self.fingerprint_done = True
            embed_now = (
                self.fingerprint_done
                and result.embedding is not None
                and result.embedding.skipped
                and self.pipeline.embedder_ready
            )
        if embed_now:
            # The embedder became ready after the phase-two check.
            late = self.indexer.index_embeddings(self.items, self._progress)
            result.embedding = late.embedding or result.embedding
        return result

    def start_indexing(self, on_progress: Optional[ProgressCallback] = None) -> threading.Thread:
        """Run :meth:`index` on a background thread."""

        return self._spawn("indexer", lambda: self.index(on_progress))

    def stop_indexing(self) -> None:
        self.indexer.request_stop()

    # Embedder
    def load_embedder(self, model_location: Optional[Path | str] = None, wait: bool = True) -> bool:
        """Initialize the embedder; returns readiness (False immediately when ``wait`` is False)."""

        if self.embedder is None:
            return False
        location = Path(model_location) if model_location is not None else self.settings.embedder.model_dir

        if not wait:
            self._spawn("embedder-init", lambda: self._load_embedder(location))
            return False
        return self._load_embedder(location)

    def _load_embedder(self, location: Path) -> bool:
        if self.embedder is None:
            return False
        ok = self.embedder.init(location)
        if not ok:
            logger.info(f"Session: embedder unavailable ({self.embedder.last_error}), using pixel mode")
            return False

        with self._lock:
            start_embedding = self.fingerprint_done and not self.closed
        if start_embedding and not self.indexer.is_running():
            self.indexer.index_embeddings(self.items, self._progress)
        return True

    # Search
    @property
    def search_mode(self) -> SearchMode:
        return self.pipeline.resolve_mode(self.settings.search.default_mode)

    def search_item(
        self,
        item: LibraryItem,
        mode: SearchMode | str | None = None,
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Find items similar to a library item, excluding the item itself."""

        if item.hash_path is None:
            logger.warning(f"Session: cannot access image file for {item.id}")
            return []
        return self._search(item.hash_path, item.id, mode, threshold, max_results)

    def search_file(
        self,
        image_path: Path | str,
        mode: SearchMode | str | None = None,
        threshold: Optional[float] = None,
        max_results: Optional[int] = None,
    ) -> List[ScoredResult]:
        """Find library items similar to an arbitrary image file."""

        return self._search(Path(image_path), None, mode, threshold, max_results)

    def refilter(self, threshold: Optional[float] = None, max_results: Optional[int] = None) -> List[ScoredResult]:
        """Re-rank the previous query with new limits."""

        return self.pipeline.refilter(threshold=threshold, max_results=max_results)

    def _search(
        self,
        image_path: Path,
        exclude_id: Optional[str],
        mode: SearchMode | str | None,
        threshold: Optional[float],
        max_results: Optional[int],
    ) -> List[ScoredResult]:
        resolved = self.pipeline.resolve_mode(mode if mode is not None else self.settings.search.default_mode)
        try:
            return self.pipeline.search_image(
                image_path, exclude_id=exclude_id, mode=resolved, threshold=threshold, max_results=max_results
            )
        except DecodeError as exc:
            logger.warning(f"Session: search failed: {exc}")
            return []

    # Threads
    def _spawn(self, name: str, target: Callable[[], object]) -> threading.Thread:
        def runner() -> None:
            try:
                target()
            except Exception:  # noqa: BLE001 - background failures must not reach the host
                logger.exception(f"Session: background task {name} failed")

        self._threads = [thread for thread in self._threads if thread.is_alive()]
        thread = threading.Thread(target=runner, name=name, daemon=True)
        self._threads.append(thread)
        thread.start()
        return thread
