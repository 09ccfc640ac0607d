# Path: core/embedders/base.py
# Purpose: Define the Embedder interface for learned image embeddings.
# Layer: core/embedders.
# Details: Provides shared, idempotent initialization so concrete backends only implement loading and inference.

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from pathlib import Path
from typing import List, Optional

import numpy as np

from core.imaging.decoder import PixelDecoder
from core.models.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Abstract base class for pluggable image embedders.

    Unavailability (missing runtime, missing model, unsupported backend) is an
    expected steady state: ``init`` returns False and ``is_ready`` stays False.
    """

    name: str
    dim: int
    input_size: int = 224

    def __init__(self, decoder: Optional[PixelDecoder] = None) -> None:
        self.decoder = decoder or PixelDecoder()
        self.last_error: Optional[str] = None
        self._ready = False
        self._loading: Optional[Future] = None
        self._state_lock = threading.Lock()

    def init(self, model_location: Path | str) -> bool:
        """Load the model once; concurrent callers share the in-flight load and its result."""

        with self._state_lock:
            if self._ready:
                return True
            pending = self._loading
            owner = pending is None
            if owner:
                pending = self._loading = Future()

        if not owner:
            return bool(pending.result())

        ok = False
        try:
            self._load(Path(model_location))
            ok = True
            self.last_error = None
            logger.info(f"Embedder {self.name}: ready")
        except Exception as exc:  # noqa: BLE001 - any load failure means "unavailable"
            self.last_error = str(exc)
            logger.warning(f"Embedder {self.name}: failed to initialize: {exc}")
        finally:
            with self._state_lock:
                self._ready = ok
                self._loading = None
            pending.set_result(ok)
        return ok

    def is_ready(self) -> bool:
        return self._ready

    def compute_embedding(self, image_path: Path | str) -> List[float]:
        """Return the L2-normalized embedding of the image at ``image_path``.

        Raises EmbeddingUnavailable when the model is not loaded or inference
        fails; decode problems propagate as DecodeError.
        """

        if not self._ready:
            raise EmbeddingUnavailable(f"Embedder {self.name} is not initialized.")
        pixels = self.decoder.decode(image_path, self.input_size)
        try:
            vector = self.embed_pixels(pixels)
        except EmbeddingUnavailable:
            raise
        except Exception as exc:  # noqa: BLE001 - backend errors vary by runtime
            raise EmbeddingUnavailable(f"Embedding failed for {image_path}: {exc}") from exc
        return self._normalize(np.asarray(vector, dtype=np.float32).ravel()).tolist()

    @abstractmethod
    def _load(self, model_location: Path) -> None:
        """Load backend resources; raise on failure."""

    @abstractmethod
    def embed_pixels(self, pixels: np.ndarray) -> np.ndarray:
        """Return a raw embedding for an ``(input_size, input_size, 4)`` RGBA array."""

    @staticmethod
    def _normalize(vector: np.ndarray) -> np.ndarray:
        """Normalize embedding vectors to unit length to simplify similarity comparisons."""

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector.astype(np.float32)
        return (vector / norm).astype(np.float32)
