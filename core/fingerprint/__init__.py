# Path: core/fingerprint/__init__.py
# Purpose: Package initializer for fingerprint computation.
# Layer: core/fingerprint.
# Details: Exposes perceptual hash, color histogram, and the combined computer.

from .computer import Fingerprint, FingerprintComputer
from .histogram import HISTOGRAM_BINS, compute_color_histogram
from .phash import HASH_HEX_LENGTH, compute_perceptual_hash

__all__ = [
    "Fingerprint",
    "FingerprintComputer",
    "HISTOGRAM_BINS",
    "HASH_HEX_LENGTH",
    "compute_color_histogram",
    "compute_perceptual_hash",
]
