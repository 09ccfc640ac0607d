# Path: core/__init__.py
# Purpose: Package initializer for core application layer.
# Layer: core.
# Details: Aggregates subpackages for imaging, fingerprints, embedders, cache, indexing, search, and sessions.
