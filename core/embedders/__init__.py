# Path: core/embedders/__init__.py
# Purpose: Package initializer for embedder implementations and interfaces.
# Layer: core/embedders.
# Details: Exposes the base interface, the ONNX implementation, and a settings-driven factory.

from __future__ import annotations

from typing import Optional

from config.settings import EmbedderSettings
from core.imaging.decoder import PixelDecoder

from .base import Embedder
from .onnx_embedder import OnnxEmbedder


def create_embedder(settings: EmbedderSettings, decoder: Optional[PixelDecoder] = None) -> Embedder:
    """Return the embedder implementation named by ``settings.name``."""

    if settings.name in {"mobilenet_v2", "onnx"}:
        return OnnxEmbedder(
            model_file=settings.model_file,
            device=settings.device,
            input_size=settings.input_size,
            decoder=decoder,
        )
    raise ValueError(f"Unknown embedder: {settings.name}")


__all__ = ["Embedder", "OnnxEmbedder", "create_embedder"]
