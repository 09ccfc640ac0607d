# Path: core/imaging/decoder.py
# Purpose: Decode image files into RGBA pixel grids at a requested square resolution.
# Layer: core/imaging.
# Details: Wraps Pillow decoding with a bounded timeout; every failure surfaces as DecodeError.

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageOps

from core.models.errors import DecodeError

logger = logging.getLogger(__name__)


class PixelDecoder:
    """Load images from disk with Pillow and resample them to small square grids.

    Each decode runs on its own daemon thread and is abandoned after ``timeout``
    seconds, counted from the moment that decode starts. An abandoned thread
    cannot be killed and finishes in the background, but it never delays other
    decodes. Pass ``timeout=None`` to decode inline.
    """

    def __init__(self, timeout: Optional[float] = 10.0) -> None:
        self.timeout = timeout

    def load(self, path: Path | str) -> Image.Image:
        """Decode ``path`` into an RGBA image with EXIF orientation applied."""

        image_path = Path(path)
        if self.timeout is None:
            return self._read(image_path)

        future: Future = Future()
        worker = threading.Thread(
            target=self._run, args=(future, image_path), name=f"decode-{image_path.name}", daemon=True
        )
        worker.start()
        try:
            return future.result(timeout=self.timeout)
        except FuturesTimeoutError as exc:
            logger.warning(f"Decoder: abandoned {image_path} after {self.timeout}s")
            raise DecodeError(f"Timed out decoding {image_path} after {self.timeout}s") from exc

    def decode(self, path: Path | str, size: int) -> np.ndarray:
        """Decode ``path`` and return a ``(size, size, 4)`` uint8 RGBA array."""

        return self.resample(self.load(path), size)

    @staticmethod
    def resample(image: Image.Image, size: int) -> np.ndarray:
        """Stretch an already decoded image to ``size`` x ``size`` RGBA pixels."""

        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        resized = rgba.resize((size, size))
        return np.asarray(resized, dtype=np.uint8)

    def _run(self, future: Future, image_path: Path) -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(self._read(image_path))
        except Exception as exc:  # noqa: BLE001 - handed to the waiting caller
            future.set_exception(exc)

    @staticmethod
    def _read(image_path: Path) -> Image.Image:
        try:
            with Image.open(image_path) as img:
                img.load()
                oriented = ImageOps.exif_transpose(img)
                return oriented.convert("RGBA")
        except FileNotFoundError as exc:
            raise DecodeError(f"File not found: {image_path}") from exc
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Failed to decode {image_path}: {exc}") from exc
