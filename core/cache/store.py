# Path: core/cache/store.py
# Purpose: Hold fingerprint records for one library and persist them with debounced whole-document writes.
# Layer: core/cache.
# Details: Schema or library mismatches reset the document; write failures keep it dirty for the next flush.

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Optional

from core.models.domain import FingerprintRecord
from core.models.errors import CacheIOError

from .storage import JsonDocumentStorage

logger = logging.getLogger(__name__)

CACHE_VERSION = 3


class CacheStore:
    """Durable mapping from item id to FingerprintRecord.

    Every public method runs as one step under an internal lock, so readers
    always see committed records. ``flush`` must be called before teardown or
    the last debounce window of updates is lost.
    """

    def __init__(self, storage: JsonDocumentStorage, save_delay: float = 3.0) -> None:
        self.storage = storage
        self.save_delay = save_delay
        self._library_fingerprint: Optional[str] = None
        self._items: Dict[str, FingerprintRecord] = {}
        self._dirty = False
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()

    @property
    def library_fingerprint(self) -> Optional[str]:
        return self._library_fingerprint

    @property
    def dirty(self) -> bool:
        return self._dirty

    def open(self, library_fingerprint: str) -> None:
        """Load the persisted document if it matches, otherwise start empty for ``library_fingerprint``."""

        with self._lock:
            self._cancel_timer()
            self._library_fingerprint = library_fingerprint
            self._items = {}
            self._dirty = False

            try:
                payload = self.storage.read()
            except CacheIOError as exc:
                logger.warning(f"Cache: failed to load, starting fresh: {exc}")
                return

            if payload is None:
                return
            if payload.get("version") != CACHE_VERSION or payload.get("libraryPath") != library_fingerprint:
                logger.info("Cache: version mismatch or library changed, resetting")
                return

            raw_items = payload.get("items") or {}
            if not isinstance(raw_items, dict):
                logger.warning("Cache: malformed items mapping, resetting")
                return
            skipped = 0
            for item_id, raw in raw_items.items():
                if not isinstance(raw, dict):
                    skipped += 1
                    continue
                try:
                    self._items[str(item_id)] = FingerprintRecord.from_dict(raw)
                except (TypeError, ValueError) as exc:
                    logger.debug(f"Cache: dropping malformed record {item_id}: {exc}")
                    skipped += 1
            if skipped:
                logger.warning(f"Cache: skipped {skipped} malformed records")
            logger.info(f"Cache: loaded {len(self._items)} items from disk")

    def get(self, item_id: str) -> Optional[FingerprintRecord]:
        with self._lock:
            return self._items.get(item_id)

    def is_fingerprint_complete(self, item_id: str) -> bool:
        with self._lock:
            record = self._items.get(item_id)
            return record is not None and record.is_fingerprint_complete

    def put(self, item_id: str, record: FingerprintRecord) -> None:
        """Replace the record for ``item_id`` and schedule a debounced write."""

        with self._lock:
            self._items[item_id] = record
            self._mark_dirty()

    def prune_orphans(self, valid_ids: Iterable[str]) -> int:
        """Drop every record whose id is not in ``valid_ids``; return the number removed."""

        valid = set(valid_ids)
        with self._lock:
            orphans = [item_id for item_id in self._items if item_id not in valid]
            for item_id in orphans:
                del self._items[item_id]
            if orphans:
                logger.info(f"Cache: removed {len(orphans)} orphaned entries")
                self._mark_dirty()
        return len(orphans)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def items(self) -> Dict[str, FingerprintRecord]:
        """Return a snapshot of all records in insertion order."""

        with self._lock:
            return dict(self._items)

    def clear(self) -> None:
        """Remove every record and write the empty document immediately."""

        with self._lock:
            self._items = {}
            self._dirty = True
            self.flush()

    def flush(self) -> bool:
        """Cancel any pending timer and write the document if dirty; return True if written."""

        with self._lock:
            self._cancel_timer()
            if not self._dirty or self._library_fingerprint is None:
                return False
            try:
                self.storage.write(self._to_document())
            except CacheIOError as exc:
                logger.warning(f"Cache: failed to save: {exc}")
                return False
            self._dirty = False
            logger.info(f"Cache: saved {len(self._items)} items to disk")
            return True

    def close(self) -> None:
        self.flush()

    def _to_document(self) -> Dict[str, Any]:
        return {
            "version": CACHE_VERSION,
            "libraryPath": self._library_fingerprint,
            "items": {item_id: record.to_dict() for item_id, record in self._items.items()},
        }

    def _mark_dirty(self) -> None:
        self._dirty = True
        if self._timer is None:
            self._timer = threading.Timer(self.save_delay, self._on_timer)
            self._timer.daemon = True
            self._timer.start()

    def _on_timer(self) -> None:
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
            self.flush()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
