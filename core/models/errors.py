# Path: core/models/errors.py
# Purpose: Define the error taxonomy shared by decoding, embedding, and cache persistence.
# Layer: core/models.
# Details: Schema mismatches are not errors; they reset the cache document instead.


class LookalikeError(Exception):
    """Base class for all errors raised by the core."""


class DecodeError(LookalikeError):
    """Image could not be decoded (unreadable, unsupported, or timed out)."""


class EmbeddingUnavailable(LookalikeError):
    """Embedder is not ready, or computing a single embedding failed."""


class CacheIOError(LookalikeError):
    """Reading or writing the persisted cache document failed."""
