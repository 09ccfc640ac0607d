# Path: config/__init__.py
# Purpose: Package initializer for configuration module.
# Layer: config.
# Details: Exposes settings models for application-wide configuration.

from .settings import AppSettings, CacheSettings, EmbedderSettings, IndexerSettings, SearchSettings

__all__ = ["AppSettings", "CacheSettings", "EmbedderSettings", "IndexerSettings", "SearchSettings"]
