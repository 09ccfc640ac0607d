# Path: core/indexing/__init__.py
# Purpose: Package initializer for indexing utilities.
# Layer: core/indexing.
# Details: Exposes library scanning and the two-phase indexer.

from .scanner import LibraryScanner
from .indexer import Indexer

__all__ = ["LibraryScanner", "Indexer"]
