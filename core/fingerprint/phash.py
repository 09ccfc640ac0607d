# Path: core/fingerprint/phash.py
# Purpose: Compute 256-bit block-mean perceptual hashes from RGBA pixel grids.
# Layer: core/fingerprint.
# Details: Blocks are thresholded against the global median; hashes are carried as imagehash.ImageHash hex strings.

from __future__ import annotations

import numpy as np
import imagehash

PHASH_SIZE = 32
PHASH_BITS = 16
HASH_HEX_LENGTH = PHASH_BITS * PHASH_BITS // 4

# Value of a fully transparent pixel (treated as white).
_TRANSPARENT_VALUE = 255 * 3


def block_values(pixels: np.ndarray, bits: int = PHASH_BITS) -> np.ndarray:
    """Return a ``(bits, bits)`` array of R+G+B sums per block.

    ``pixels`` is an RGBA uint8 array whose side is a multiple of ``bits``.
    """

    height, width = pixels.shape[:2]
    if height % bits or width % bits:
        raise ValueError(f"Pixel grid {width}x{height} is not divisible into {bits}x{bits} blocks.")

    rgb_sum = pixels[..., :3].astype(np.int64).sum(axis=2)
    rgb_sum[pixels[..., 3] == 0] = _TRANSPARENT_VALUE

    block_h = height // bits
    block_w = width // bits
    return rgb_sum.reshape(bits, block_h, bits, block_w).sum(axis=(1, 3))


def hash_from_pixels(pixels: np.ndarray, bits: int = PHASH_BITS) -> imagehash.ImageHash:
    """Threshold each block against the median of all blocks."""

    blocks = block_values(pixels, bits).astype(np.float64)
    pixels_per_block = (pixels.shape[0] // bits) * (pixels.shape[1] // bits)
    half_block_value = pixels_per_block * 256 * 3 / 2

    median = float(np.median(blocks))
    hash_bits = (blocks > median) | ((np.abs(blocks - median) < 1) & (median > half_block_value))
    return imagehash.ImageHash(hash_bits)


def compute_perceptual_hash(pixels: np.ndarray) -> str:
    """Return the perceptual hash of a ``PHASH_SIZE`` square RGBA grid as 64 hex characters."""

    return str(hash_from_pixels(pixels, PHASH_BITS))
