# Path: core/embedders/onnx_embedder.py
# Purpose: Provide a MobileNet V2 image embedder running on ONNX Runtime.
# Layer: core/embedders.
# Details: Produces 1000-dim L2-normalized vectors; onnxruntime is an optional dependency.

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

import numpy as np

from core.imaging.decoder import PixelDecoder

from .base import Embedder

logger = logging.getLogger(__name__)

# ImageNet normalization constants
_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)


class OnnxEmbedder(Embedder):
    """Embed images with MobileNet V2 classification logits (ONNX opset 7)."""

    def __init__(
        self,
        model_file: str = "mobilenetv2-7.onnx",
        device: str = "cpu",
        input_size: int = 224,
        dim: int = 1000,
        decoder: Optional[PixelDecoder] = None,
    ) -> None:
        super().__init__(decoder=decoder)
        self.name = "mobilenet_v2"
        self.model_file = model_file
        self.device = device
        self.input_size = input_size
        self.dim = dim
        self._session: Any = None
        self._input_name: Optional[str] = None

    def _load(self, model_location: Path) -> None:
        model_path = model_location / self.model_file if model_location.is_dir() else model_location
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        try:
            import onnxruntime as ort  # type: ignore[import]
        except ImportError as exc:  # pragma: no cover - optional runtime dependency
            raise RuntimeError("onnxruntime package is required for the ONNX embedder.") from exc

        logger.info(f"Loading ONNX model from {model_path}")
        session = ort.InferenceSession(str(model_path), providers=self._providers(ort))
        self._input_name = session.get_inputs()[0].name
        self._session = session

    def _providers(self, ort: Any) -> List[str]:
        available = ort.get_available_providers()
        if self.device.startswith("cuda") and "CUDAExecutionProvider" in available:
            return ["CUDAExecutionProvider", "CPUExecutionProvider"]
        return ["CPUExecutionProvider"]

    def preprocess(self, pixels: np.ndarray) -> np.ndarray:
        """Convert an RGBA uint8 grid into a normalized ``[1, 3, H, W]`` float32 tensor."""

        rgb = pixels[..., :3].astype(np.float32) / 255.0
        normalized = (rgb - _MEAN) / _STD
        return np.transpose(normalized, (2, 0, 1))[np.newaxis, ...].astype(np.float32)

    def embed_pixels(self, pixels: np.ndarray) -> np.ndarray:
        outputs = self._session.run(None, {self._input_name: self.preprocess(pixels)})
        return np.asarray(outputs[0], dtype=np.float32).ravel()
