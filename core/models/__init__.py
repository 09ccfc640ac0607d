# Path: core/models/__init__.py
# Purpose: Package initializer for domain model definitions.
# Layer: core/models.
# Details: Exposes dataclasses, enums, and errors used across fingerprint, cache, indexing, and search layers.

from .domain import (
    IMAGE_EXTENSIONS,
    FingerprintRecord,
    IndexPhase,
    IndexRunResult,
    LibraryItem,
    PhaseProgress,
    ProgressCallback,
    QueryDescriptor,
    ScoredResult,
    SearchMode,
    is_image_type,
)
from .errors import CacheIOError, DecodeError, EmbeddingUnavailable, LookalikeError

__all__ = [
    "IMAGE_EXTENSIONS",
    "FingerprintRecord",
    "IndexPhase",
    "IndexRunResult",
    "LibraryItem",
    "PhaseProgress",
    "ProgressCallback",
    "QueryDescriptor",
    "ScoredResult",
    "SearchMode",
    "is_image_type",
    "CacheIOError",
    "DecodeError",
    "EmbeddingUnavailable",
    "LookalikeError",
]
