# Path: core/indexing/indexer.py
# Purpose: Populate the fingerprint cache from library items in two chunked phases.
# Layer: core/indexing.
# Details: Phase one computes hashes and histograms with bounded parallelism; phase two adds embeddings one by one.

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from core.cache.store import CacheStore
from core.embedders.base import Embedder
from core.fingerprint.computer import FingerprintComputer
from core.models.domain import (
    FingerprintRecord,
    IndexPhase,
    IndexRunResult,
    LibraryItem,
    PhaseProgress,
    ProgressCallback,
    is_image_type,
)
from core.models.errors import DecodeError, EmbeddingUnavailable

logger = logging.getLogger(__name__)


class Indexer:
    """Two-phase cooperative scheduler over a CacheStore.

    At most one run is active per instance; starting another is a no-op.
    ``request_stop`` is honoured between chunks (or between embedded items) and
    keeps everything already written to the cache.
    """

    def __init__(
        self,
        cache: CacheStore,
        computer: FingerprintComputer,
        embedder: Optional[Embedder] = None,
        chunk_size: int = 10,
        chunk_delay: float = 0.03,
        embed_delay: float = 0.01,
        max_workers: int = 4,
    ) -> None:
        self.cache = cache
        self.computer = computer
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.embed_delay = embed_delay
        self.max_workers = max_workers
        self._run_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._shut_down = False
        self._phase: Optional[IndexPhase] = None

    def is_running(self) -> bool:
        return self._run_lock.locked()

    def current_phase(self) -> Optional[IndexPhase]:
        return self._phase

    def request_stop(self) -> None:
        """Ask the active run to end at its next checkpoint."""

        if self.is_running():
            logger.info("Indexer: stop requested")
            self._stop_event.set()

    def shutdown(self) -> None:
        """Stop the active run and refuse every later one."""

        with self._state_lock:
            self._shut_down = True
            self._stop_event.set()
        logger.info("Indexer: shut down")

    def index_library(
        self, items: Sequence[LibraryItem], on_progress: Optional[ProgressCallback] = None
    ) -> IndexRunResult:
        """Run the fingerprint phase, then the embedding phase if the embedder is ready."""

        if not self._run_lock.acquire(blocking=False):
            logger.info("Indexer: already running")
            return IndexRunResult(started=False)

        try:
            if not self._begin_run():
                return IndexRunResult(started=False)
            result = IndexRunResult()

            self._phase = IndexPhase.FINGERPRINT
            result.fingerprint = self._fingerprint_phase(items, on_progress)

            if not self._stop_event.is_set():
                self._phase = IndexPhase.EMBEDDING
                result.embedding = self._embedding_phase(items, on_progress)

            result.stopped = self._stop_event.is_set()
            logger.info("Indexer: stopped early" if result.stopped else "Indexer: all phases complete")
            return result
        finally:
            self._phase = None
            self._run_lock.release()

    def index_embeddings(
        self, items: Sequence[LibraryItem], on_progress: Optional[ProgressCallback] = None
    ) -> IndexRunResult:
        """Run only the embedding phase, e.g. when the embedder became ready after phase one."""

        if not self._run_lock.acquire(blocking=False):
            logger.info("Indexer: already running")
            return IndexRunResult(started=False)

        try:
            if not self._begin_run():
                return IndexRunResult(started=False)
            self._phase = IndexPhase.EMBEDDING
            result = IndexRunResult(embedding=self._embedding_phase(items, on_progress))
            result.stopped = self._stop_event.is_set()
            return result
        finally:
            self._phase = None
            self._run_lock.release()

    def _begin_run(self) -> bool:
        with self._state_lock:
            if self._shut_down:
                logger.info("Indexer: shut down, not starting")
                return False
            self._stop_event.clear()
            return True

    # Phase 1
    def _fingerprint_phase(
        self, items: Sequence[LibraryItem], on_progress: Optional[ProgressCallback]
    ) -> PhaseProgress:
        images = [item for item in items if is_image_type(item.ext)]
        progress = PhaseProgress(IndexPhase.FINGERPRINT, total=len(images))

        self.cache.prune_orphans(item.id for item in items)

        pending = [item for item in images if not self.cache.is_fingerprint_complete(item.id)]
        progress.processed = progress.total - len(pending)
        if not pending:
            logger.info("Indexer: fingerprint phase - all indexed")
            return progress

        logger.info(f"Indexer: fingerprint phase - {len(pending)} of {progress.total} images need fingerprints")
        self._report(on_progress, progress)

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="fingerprint") as pool:
            for chunk in _chunks(pending, self.chunk_size):
                if self._stop_event.is_set():
                    break

                written, failed = self._fingerprint_chunk(pool, chunk)
                progress.processed += len(chunk)
                progress.written += written
                progress.failed += failed
                self._report(on_progress, progress)

                if progress.processed < progress.total:
                    self._stop_event.wait(self.chunk_delay)

        self.cache.flush()
        logger.info(
            f"Indexer: fingerprint phase complete - {progress.written} written, {progress.failed} failed"
        )
        return progress

    def _fingerprint_chunk(self, pool: ThreadPoolExecutor, chunk: List[LibraryItem]) -> tuple[int, int]:
        written = failed = 0
        futures = {
            pool.submit(self.computer.compute_fingerprint, item.hash_path): item
            for item in chunk
            if item.hash_path is not None
        }
        failed += len(chunk) - len(futures)

        for future in as_completed(futures):
            item = futures[future]
            try:
                fingerprint = future.result()
            except DecodeError as exc:
                logger.debug(f"Indexer: skipping {item.id}: {exc}")
                failed += 1
                continue
            except Exception as exc:  # noqa: BLE001 - one bad image must not abort the chunk
                logger.warning(f"Indexer: unexpected error fingerprinting {item.id}: {exc}")
                failed += 1
                continue

            existing = self.cache.get(item.id)
            self.cache.put(
                item.id,
                FingerprintRecord(
                    perceptual_hash=fingerprint.perceptual_hash,
                    color_histogram=fingerprint.color_histogram,
                    embedding=existing.embedding if existing is not None else None,
                    source_ext=item.ext,
                ),
            )
            written += 1
        return written, failed

    # Phase 2
    def _embedding_phase(
        self, items: Sequence[LibraryItem], on_progress: Optional[ProgressCallback]
    ) -> PhaseProgress:
        images = [item for item in items if is_image_type(item.ext)]
        progress = PhaseProgress(IndexPhase.EMBEDDING, total=len(images))

        if self.embedder is None or not self.embedder.is_ready():
            logger.info("Indexer: embedding phase - embedder not ready, skipping")
            progress.skipped = True
            return progress

        pending = [item for item in images if self._needs_embedding(item)]
        progress.processed = progress.total - len(pending)
        if not pending:
            logger.info("Indexer: embedding phase - all embedded")
            return progress

        logger.info(f"Indexer: embedding phase - {len(pending)} images need embeddings")
        self._report(on_progress, progress)

        for item in pending:
            if self._stop_event.is_set():
                break

            if self._embed_item(item):
                progress.written += 1
            else:
                progress.failed += 1
            progress.processed += 1
            self._report(on_progress, progress)

            if progress.processed < progress.total:
                self._stop_event.wait(self.embed_delay)

        self.cache.flush()
        logger.info(
            f"Indexer: embedding phase complete - {progress.written} written, {progress.failed} failed"
        )
        return progress

    def _needs_embedding(self, item: LibraryItem) -> bool:
        record = self.cache.get(item.id)
        return record is not None and record.is_fingerprint_complete and not record.is_embedding_complete

    def _embed_item(self, item: LibraryItem) -> bool:
        if item.hash_path is None or self.embedder is None:
            return False
        try:
            embedding = self.embedder.compute_embedding(item.hash_path)
        except (DecodeError, EmbeddingUnavailable) as exc:
            logger.debug(f"Indexer: no embedding for {item.id}: {exc}")
            return False
        except Exception as exc:  # noqa: BLE001 - one bad image must not abort the phase
            logger.warning(f"Indexer: unexpected error embedding {item.id}: {exc}")
            return False

        if not embedding:
            return False
        existing = self.cache.get(item.id)
        if existing is None:
            return False
        self.cache.put(item.id, replace(existing, embedding=embedding))
        return True

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], progress: PhaseProgress) -> None:
        if on_progress is not None:
            on_progress(progress.processed, progress.total, progress.phase.value)


def _chunks(items: List[LibraryItem], size: int) -> Iterable[List[LibraryItem]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]
