# Path: config/settings.py
# Purpose: Provide typed application configuration models.
# Layer: config.
# Details: Centralizes settings for the cache, indexer, embedder, search defaults, and decode limits.

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CacheSettings(BaseModel):
    """Settings controlling where fingerprint caches live and how often they are written."""

    directory: Path = Field(default=Path("storage/cache"), description="Directory holding one cache document per library.")
    save_delay: float = Field(default=3.0, ge=0.0, description="Debounce delay in seconds before a dirty cache is written.")


class IndexerSettings(BaseModel):
    """Settings describing chunk sizes and pacing of the background indexer."""

    chunk_size: int = Field(default=10, ge=1, description="Number of images fingerprinted per chunk.")
    chunk_delay: float = Field(default=0.03, ge=0.0, description="Pause in seconds between fingerprint chunks.")
    embed_delay: float = Field(default=0.01, ge=0.0, description="Pause in seconds between embedded images.")
    max_workers: int = Field(default=4, ge=1, description="Parallel fingerprint workers inside a chunk.")


class EmbedderSettings(BaseModel):
    """Settings describing which embedder implementation to use and how to load it."""

    name: str = Field(default="mobilenet_v2", description="Identifier of the embedder implementation.")
    model_dir: Path = Field(default=Path("storage/models"), description="Directory containing the model file.")
    model_file: str = Field(default="mobilenetv2-7.onnx", description="Model file name inside model_dir.")
    input_size: int = Field(default=224, description="Square input resolution expected by the model.")
    device: str = Field(default="cpu", description="Target device for model execution.")
    enabled: bool = Field(default=True, description="Load the embedder at session start.")


class SearchSettings(BaseModel):
    """Default ranking parameters used when a caller does not override them."""

    threshold: int = Field(default=70, ge=0, le=100, description="Minimum similarity in percent.")
    max_results: int = Field(default=20, ge=1, description="Maximum number of results returned.")
    default_mode: str = Field(default="auto", description="auto, pixel, semantic or hybrid.")


class AppSettings(BaseModel):
    """Top-level application settings shared across services and scripts."""

    library_root: Path = Field(default=Path("storage/images"), description="Root folder containing library images.")
    library_name: str = Field(default="default", description="Name used to derive the cache file name.")
    decode_timeout: float = Field(default=10.0, gt=0.0, description="Seconds allowed for decoding a single image.")
    log_level: str = Field(default="INFO", description="Verbosity level for application logs.")
    cache: CacheSettings = Field(default_factory=CacheSettings)
    indexer: IndexerSettings = Field(default_factory=IndexerSettings)
    embedder: EmbedderSettings = Field(default_factory=EmbedderSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @classmethod
    def from_file(cls, path: Path | str) -> "AppSettings":
        """Load settings from a JSON file, falling back to defaults when it does not exist."""

        cfg_path = Path(path)
        if not cfg_path.exists():
            return cls()
        payload = json.loads(cfg_path.read_text(encoding="utf-8"))
        return cls.model_validate(payload)

    @classmethod
    def from_env(cls, base: Optional["AppSettings"] = None) -> "AppSettings":
        """Instantiate settings, overlaying LOOKALIKE_* environment variables on ``base``."""

        settings = base.model_copy(deep=True) if base is not None else cls()
        env = os.environ

        top: Dict[str, Any] = {}
        if "LOOKALIKE_LIBRARY_ROOT" in env:
            top["library_root"] = Path(env["LOOKALIKE_LIBRARY_ROOT"])
        if "LOOKALIKE_LOG_LEVEL" in env:
            top["log_level"] = env["LOOKALIKE_LOG_LEVEL"]
        if "LOOKALIKE_DECODE_TIMEOUT" in env:
            top["decode_timeout"] = float(env["LOOKALIKE_DECODE_TIMEOUT"])
        if "LOOKALIKE_CACHE_DIR" in env:
            settings.cache.directory = Path(env["LOOKALIKE_CACHE_DIR"])
        if "LOOKALIKE_MODEL_DIR" in env:
            settings.embedder.model_dir = Path(env["LOOKALIKE_MODEL_DIR"])
        if "LOOKALIKE_CHUNK_SIZE" in env:
            settings.indexer.chunk_size = int(env["LOOKALIKE_CHUNK_SIZE"])
        if "LOOKALIKE_THRESHOLD" in env:
            settings.search.threshold = int(env["LOOKALIKE_THRESHOLD"])
        if "LOOKALIKE_MAX_RESULTS" in env:
            settings.search.max_results = int(env["LOOKALIKE_MAX_RESULTS"])

        # Re-validate so overrides go through the same constraints as file input.
        return cls.model_validate({**settings.model_dump(), **top})


__all__ = ["AppSettings", "CacheSettings", "EmbedderSettings", "IndexerSettings", "SearchSettings"]
