# Path: core/models/domain.py
# Purpose: Define domain models shared across fingerprinting, caching, indexing, and search workflows.
# Layer: core/models.
# Details: Lightweight dataclasses simplify serialization between the cache document and core services.

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

IMAGE_EXTENSIONS = frozenset(
    {"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg", "tiff", "tif", "ico", "avif"}
)


def is_image_type(ext: Optional[str]) -> bool:
    """Return True if ``ext`` (with or without leading dot) names an image format."""

    if not ext:
        return False
    return ext.lower().lstrip(".") in IMAGE_EXTENSIONS


class IndexPhase(str, Enum):
    """Phases of an indexing run."""

    FINGERPRINT = "fingerprint"
    EMBEDDING = "embedding"


class SearchMode(str, Enum):
    """Scoring modes supported by the similarity engine."""

    PIXEL = "pixel"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


ProgressCallback = Callable[[int, int, str], None]


@dataclass(frozen=True)
class LibraryItem:
    """An item of the host library as seen by the core (read-only)."""

    id: str
    ext: str
    file_path: Optional[Path] = None
    thumbnail_path: Optional[Path] = None

    @property
    def hash_path(self) -> Optional[Path]:
        """Return the path used for fingerprinting, preferring the thumbnail."""

        return self.thumbnail_path or self.file_path


@dataclass
class FingerprintRecord:
    """Cached fingerprint of a single library item."""

    perceptual_hash: str = ""
    color_histogram: List[float] = field(default_factory=list)
    embedding: Optional[List[float]] = None
    source_ext: str = ""

    @property
    def is_fingerprint_complete(self) -> bool:
        return bool(self.perceptual_hash) and len(self.color_histogram) > 0

    @property
    def is_embedding_complete(self) -> bool:
        return bool(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "pHash": self.perceptual_hash,
            "colorHistogram": list(self.color_histogram),
        }
        if self.embedding:
            payload["embedding"] = list(self.embedding)
        payload["ext"] = self.source_ext
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FingerprintRecord":
        embedding = payload.get("embedding")
        return cls(
            perceptual_hash=str(payload.get("pHash") or ""),
            color_histogram=[float(v) for v in payload.get("colorHistogram") or []],
            embedding=[float(v) for v in embedding] if embedding else None,
            source_ext=str(payload.get("ext") or ""),
        )


@dataclass
class QueryDescriptor:
    """Transient fingerprint of the image under search; never persisted."""

    perceptual_hash: str
    color_histogram: List[float]
    embedding: Optional[List[float]] = None


@dataclass(frozen=True)
class ScoredResult:
    """A ranked match produced by a single query."""

    item_id: str
    score: float


@dataclass
class PhaseProgress:
    """Final counters of one indexing phase."""

    phase: IndexPhase
    processed: int = 0
    total: int = 0
    written: int = 0
    failed: int = 0
    skipped: bool = False


@dataclass
class IndexRunResult:
    """Outcome of an indexing run; ``started`` is False when another run was active."""

    started: bool = True
    stopped: bool = False
    fingerprint: Optional[PhaseProgress] = None
    embedding: Optional[PhaseProgress] = None
