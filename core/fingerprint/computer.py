# Path: core/fingerprint/computer.py
# Purpose: Turn an image file into a perceptual hash plus color histogram.
# Layer: core/fingerprint.
# Details: Decodes once, derives both signals, and converts any failure into DecodeError.

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core.imaging.decoder import PixelDecoder
from core.models.errors import DecodeError

from .histogram import HISTOGRAM_SIZE, compute_color_histogram
from .phash import PHASH_SIZE, compute_perceptual_hash


@dataclass(frozen=True)
class Fingerprint:
    perceptual_hash: str
    color_histogram: List[float]


class FingerprintComputer:
    """Stateless fingerprint calculator over a pixel decoder.

    Either both signals are produced or the call fails with DecodeError.
    No retries happen here; callers decide whether to skip the image.
    """

    def __init__(self, decoder: Optional[PixelDecoder] = None) -> None:
        self.decoder = decoder or PixelDecoder()

    def compute_perceptual_hash(self, image_path: Path | str) -> str:
        return compute_perceptual_hash(self.decoder.decode(image_path, PHASH_SIZE))

    def compute_color_histogram(self, image_path: Path | str) -> List[float]:
        return compute_color_histogram(self.decoder.decode(image_path, HISTOGRAM_SIZE))

    def compute_fingerprint(self, image_path: Path | str) -> Fingerprint:
        image = self.decoder.load(image_path)
        try:
            perceptual_hash = compute_perceptual_hash(PixelDecoder.resample(image, PHASH_SIZE))
            histogram = compute_color_histogram(PixelDecoder.resample(image, HISTOGRAM_SIZE))
        except (OSError, ValueError) as exc:
            raise DecodeError(f"Failed to fingerprint {image_path}: {exc}") from exc
        return Fingerprint(perceptual_hash=perceptual_hash, color_histogram=histogram)
