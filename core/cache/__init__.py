# Path: core/cache/__init__.py
# Purpose: Package initializer for the fingerprint cache.
# Layer: core/cache.
# Details: Exposes the cache store and its JSON document storage.

from .storage import JsonDocumentStorage, safe_library_name
from .store import CACHE_VERSION, CacheStore

__all__ = ["CACHE_VERSION", "CacheStore", "JsonDocumentStorage", "safe_library_name"]
